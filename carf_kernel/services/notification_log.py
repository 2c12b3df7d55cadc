"""
carf_kernel.services.notification_log -- Delivery attempt ledger.

Responsibility:
    Appends one ``notificationlog`` row per recipient per dispatch.

Architecture position:
    Kernel > Services.  Flush only.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from carf_kernel.domain.clock import Clock, SystemClock
from carf_kernel.models.notification import NotificationLogModel
from carf_kernel.services.base import BaseService


class NotificationLogService(BaseService[NotificationLogModel]):
    """Records notification delivery attempts."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        *,
        row_ref: int | None,
        request_version: int,
        kind: str,
        recipient: str,
        channel: str,
        for_final_approval: bool,
        is_return: bool,
        delivered: bool,
        error: str | None = None,
    ) -> NotificationLogModel:
        entry = NotificationLogModel(
            row_ref=row_ref,
            request_version=request_version,
            kind=kind,
            recipient=recipient,
            channel=channel,
            for_final_approval=for_final_approval,
            is_return=is_return,
            delivered=delivered,
            error=error,
            sent_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry
