"""
Approver identity sets (``carf_kernel.domain.approvers``).

Approver lists arrive from storage and callers in three encodings: a
sequence, a JSON-encoded array, or a comma-separated string.  Everything
inside the kernel works on ``ApproverSet``: a tuple of trimmed, non-empty,
deduplicated identities in first-seen order.  Conversion happens once at
the storage boundary (``to_dto`` and patch serialization).
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

ApproverSet = tuple[str, ...]

EMPTY: ApproverSet = ()


def normalize_approvers(value: Any) -> ApproverSet:
    """Normalize any supported encoding into an ``ApproverSet``.

    Args:
        value: ``None``, a string (JSON array or comma-separated), or an
            iterable of strings.  Nested lists are flattened one level so a
            JSON array of comma-separated strings still parses.

    Returns:
        Deduplicated ordered tuple of trimmed non-empty identities.
    """
    if value is None:
        return EMPTY
    if isinstance(value, str):
        return _from_text(value)
    if isinstance(value, Iterable):
        items: list[str] = []
        for item in value:
            if item is None:
                continue
            if isinstance(item, str):
                items.extend(_split_csv(item))
            else:
                items.append(str(item))
        return dedup(items)
    return dedup([str(value)])


def dedup(*groups: Iterable[str]) -> ApproverSet:
    """Union of identity groups, trimmed and deduplicated in order."""
    seen: dict[str, None] = {}
    for group in groups:
        for identity in group:
            cleaned = identity.strip()
            if cleaned and cleaned not in seen:
                seen[cleaned] = None
    return tuple(seen)


def serialize_approvers(approvers: Iterable[str]) -> str:
    """Storage encoding: comma-joined identities."""
    return ",".join(dedup(approvers))


def contains(approvers: ApproverSet, identity: str) -> bool:
    return identity.strip() in approvers


def _from_text(text: str) -> ApproverSet:
    stripped = text.strip()
    if stripped.startswith("["):
        try:
            decoded = json.loads(stripped)
        except json.JSONDecodeError:
            # Not JSON after all; fall through to CSV parsing.
            decoded = None
        if isinstance(decoded, list):
            return normalize_approvers(decoded)
    return dedup(_split_csv(stripped))


def _split_csv(text: str) -> list[str]:
    return [part for part in text.split(",")]
