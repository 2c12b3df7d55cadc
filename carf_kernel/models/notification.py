"""
Module: carf_kernel.models.notification
Responsibility: Append-only log of notification delivery attempts.

Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    One row per recipient per dispatch, successful or not, so a missing
    email can be traced to the transition that should have produced it.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carf_kernel.db.base import KeyedBase, RowRefType


class NotificationLogModel(KeyedBase):
    """One attempted delivery."""

    __tablename__ = "notificationlog"

    __table_args__ = (
        Index("ix_notificationlog_row_ref", "row_ref", "sent_at"),
    )

    row_ref: Mapped[int | None] = mapped_column(RowRefType, nullable=True)
    request_version: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    recipient: Mapped[str] = mapped_column(String(200), nullable=False)
    channel: Mapped[str] = mapped_column(String(30), nullable=False)
    for_final_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_return: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivered: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        state = "delivered" if self.delivered else "failed"
        return f"<NotificationLog #{self.row_ref} {self.kind} -> {self.recipient} {state}>"
