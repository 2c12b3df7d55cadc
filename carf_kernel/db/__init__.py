"""Database layer - engine, base classes and column types."""

from carf_kernel.db.base import Base, KeyedBase, RowRefType, TrackedMixin, UTCDateTime, UUIDString
from carf_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "Base",
    "KeyedBase",
    "RowRefType",
    "TrackedMixin",
    "UTCDateTime",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
