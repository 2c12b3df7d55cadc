"""
Structured JSON logging for the CARF kernel.

Every record under the ``carf`` logger is written as one JSON object:

    {"ts": ..., "level": ..., "logger": ..., "message": <event name>,
     <bound context fields>, <extra fields>, <exception fields>}

Action-scoped fields (correlation id, row ref, actor, action, request
type) live in ``LogContext`` and are attached to every record emitted
while they are bound.  Context values are always strings.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Mapping
from contextvars import ContextVar, Token
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, TextIO

LOGGER_NAMESPACE = "carf"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "row_ref",
    "actor_id",
    "action",
    "request_type",
)

_EMPTY: Mapping[str, str] = MappingProxyType({})
_context: ContextVar[Mapping[str, str]] = ContextVar("carf_log_context", default=_EMPTY)


def _merged(current: Mapping[str, str], fields: Mapping[str, Any]) -> Mapping[str, str]:
    updated = dict(current)
    for name, value in fields.items():
        if name in CONTEXT_FIELDS and value is not None:
            updated[name] = str(value)
    return MappingProxyType(updated)


class LogContext:
    """Action-scoped log fields, safe across threads and tasks.

    Unknown field names are ignored; ``None`` values leave a field as is.
    """

    @staticmethod
    def set(**fields: Any) -> None:
        _context.set(_merged(_context.get(), fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set(_EMPTY)

    @staticmethod
    def bind(**fields: Any) -> "_Binding":
        """Bind fields for a ``with`` block; the previous fields come back on exit."""
        return _Binding(fields)


class _Binding:
    def __init__(self, fields: Mapping[str, Any]):
        self._fields = fields
        self._token: Token | None = None

    def __enter__(self) -> type[LogContext]:
        self._token = _context.set(_merged(_context.get(), self._fields))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        if self._token is not None:
            _context.reset(self._token)
            self._token = None


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_context.get())
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and key not in entry
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry.update(self._exception_fields(record.exc_info[1]))
            entry["traceback"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=_to_json)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # Structured attributes of CarfKernelError subclasses
        for name, value in vars(exc).items():
            if not name.startswith("_") and name not in ("args", "code"):
                fields[f"exc_{name}"] = value
        return fields


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger named ``carf.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_setup_lock = threading.Lock()
_installed: logging.Handler | None = None


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach a JSON handler to the ``carf`` logger.

    Only the first call has an effect until ``reset_logging()``.
    """
    global _installed
    with _setup_lock:
        if _installed is not None:
            return
        _installed = handler or logging.StreamHandler(stream or sys.stderr)
        _installed.setFormatter(StructuredFormatter())

        namespace = logging.getLogger(LOGGER_NAMESPACE)
        namespace.setLevel(level)
        namespace.propagate = False
        namespace.addHandler(_installed)


def reset_logging() -> None:
    """Drop every handler on the ``carf`` logger. Tests only."""
    global _installed
    with _setup_lock:
        _installed = None
        namespace = logging.getLogger(LOGGER_NAMESPACE)
        for existing in list(namespace.handlers):
            namespace.removeHandler(existing)
        namespace.setLevel(logging.WARNING)
