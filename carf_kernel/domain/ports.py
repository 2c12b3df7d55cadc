"""
Ports the kernel consumes from outer layers.

Implementations live in ``carf_services`` (HTTP relay, SMTP, downstream
HTTP client) and in test fakes.  Implementations raise
``NotificationDeliveryError`` / ``DownstreamSubmissionError`` for every
delivery failure so the kernel never sees transport-specific exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class SubmissionReceipt:
    """Downstream acknowledgement of one record."""

    row_ref: int
    success: bool
    idempotency_key: str
    reference: str | None = None


class MessagingTransport(Protocol):
    """Fire-and-report delivery of one message to one recipient."""

    channel: str

    def send(self, recipient: str, payload: dict[str, Any]) -> None:
        """Deliver ``payload``.

        Raises:
            NotificationDeliveryError: If the message was not accepted.
        """
        ...


class DownstreamClient(Protocol):
    """Master-data system client."""

    def submit_record(
        self, payload: dict[str, Any], idempotency_key: str,
    ) -> SubmissionReceipt:
        """Submit one mapped record.

        Raises:
            DownstreamSubmissionError: If the record was not accepted.
        """
        ...
