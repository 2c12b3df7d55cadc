"""
carf_services.notification_dispatcher -- Workflow notification fan-out.

Responsibility:
    Sends the message produced by a committed workflow action to its
    recipients (next approvers, or the maker on final approval and on
    return) and, after a successful downstream submission, copies the
    matching executive observers.

Architecture position:
    Services -- orchestration over engines + kernel.  Uses the
    ``MessagingTransport`` port; never touches HTTP or SMTP directly.

Invariants enforced:
    - One transport call per recipient; any failure for one recipient,
      typed or not, is logged and recorded and does not stop the others.
    - Every attempt is written to ``notificationlog``.
    - Nothing here changes the request's workflow fields.

Failure modes:
    - None raised for delivery failures; the report carries them.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from carf_engines.payloads import build_notification_payload
from carf_engines.recipients import select_executive_recipients
from carf_kernel.domain.approval import ALL_COMPANIES, CustomerRequest
from carf_kernel.domain.approvers import ApproverSet, dedup
from carf_kernel.domain.clock import Clock, SystemClock
from carf_kernel.domain.ports import MessagingTransport
from carf_kernel.exceptions import NotificationDeliveryError
from carf_kernel.logging_config import get_logger
from carf_kernel.selectors.actor_selector import ActorSelector
from carf_kernel.selectors.reference_selector import ReferenceSelector
from carf_kernel.services.notification_log import NotificationLogService

logger = get_logger("services.notification")

EXECUTIVE_KIND = "executive"


@dataclass(frozen=True)
class NotificationReport:
    """Aggregate delivery result of one dispatch."""

    kind: str
    recipients: ApproverSet
    delivered: ApproverSet = ()
    failed: tuple[tuple[str, str], ...] = ()

    @property
    def skipped(self) -> bool:
        return not self.recipients

    @property
    def success(self) -> bool:
        return bool(self.recipients) and not self.failed


class NotificationDispatcher:
    """Delivers workflow notifications through a messaging transport."""

    def __init__(
        self,
        session: Session,
        transport: MessagingTransport,
        clock: Clock | None = None,
        global_url: str = "",
    ):
        self._session = session
        self._transport = transport
        self._log = NotificationLogService(session, clock or SystemClock())
        self._global_url = global_url

    def notify(
        self,
        request: CustomerRequest,
        approval_value: ApproverSet,
        for_final_approval: bool,
        return_flag: bool,
        remarks: str = "",
        kind: str = "approve",
    ) -> NotificationReport:
        """Send one workflow message to every identity in ``approval_value``."""
        recipients = dedup(approval_value)
        if not recipients:
            logger.warning(
                "notification_no_recipients",
                extra={"row_ref": request.row_ref, "kind": kind},
            )
            return NotificationReport(kind=kind, recipients=recipients)

        return self._dispatch(
            request,
            recipients,
            kind=kind,
            for_final_approval=for_final_approval,
            is_return=return_flag,
            remarks=remarks,
            already_emailed=False,
        )

    def notify_executives(self, request: CustomerRequest) -> NotificationReport:
        """Copy the matching executive observers on a submitted approval."""
        observers = ReferenceSelector(self._session).executive_observers()
        all_company_ids = [o.identity for o in observers if o.company == ALL_COMPANIES]
        own_companies = ActorSelector(self._session).companies_for(all_company_ids)

        recipients = select_executive_recipients(observers, request, own_companies)
        if not recipients:
            logger.info(
                "executive_fanout_empty",
                extra={
                    "row_ref": request.row_ref,
                    "company": request.company,
                    "request_type": request.request_type,
                    "observer_count": len(observers),
                },
            )
            return NotificationReport(kind=EXECUTIVE_KIND, recipients=recipients)

        return self._dispatch(
            request,
            recipients,
            kind=EXECUTIVE_KIND,
            for_final_approval=True,
            is_return=False,
            remarks="",
            already_emailed=True,
        )

    def _dispatch(
        self,
        request: CustomerRequest,
        recipients: ApproverSet,
        *,
        kind: str,
        for_final_approval: bool,
        is_return: bool,
        remarks: str,
        already_emailed: bool,
    ) -> NotificationReport:
        delivered: list[str] = []
        failed: list[tuple[str, str]] = []

        for recipient in recipients:
            payload = build_notification_payload(
                request,
                recipient,
                for_final_approval=for_final_approval,
                is_return=is_return,
                remarks=remarks,
                already_emailed=already_emailed,
                global_url=self._global_url,
            )
            error: str | None = None
            try:
                self._transport.send(recipient, payload)
            except NotificationDeliveryError as exc:
                error = exc.reason
                failed.append((recipient, exc.reason))
                logger.warning(
                    "notification_delivery_failed",
                    extra={"row_ref": request.row_ref, "kind": kind, "recipient": recipient, "reason": exc.reason},
                )
            except Exception as exc:
                error = f"{type(exc).__name__}: {exc}"
                failed.append((recipient, error))
                logger.warning(
                    "notification_delivery_failed",
                    extra={"row_ref": request.row_ref, "kind": kind, "recipient": recipient, "reason": error},
                    exc_info=True,
                )
            else:
                delivered.append(recipient)

            self._log.record(
                row_ref=request.row_ref,
                request_version=request.version,
                kind=kind,
                recipient=recipient,
                channel=self._transport.channel,
                for_final_approval=for_final_approval,
                is_return=is_return,
                delivered=error is None,
                error=error,
            )

        report = NotificationReport(
            kind=kind,
            recipients=recipients,
            delivered=tuple(delivered),
            failed=tuple(failed),
        )
        logger.info(
            "notification_dispatched",
            extra={
                "row_ref": request.row_ref,
                "kind": kind,
                "recipients": list(recipients),
                "delivered_count": len(delivered),
                "failed_count": len(failed),
                "for_final_approval": for_final_approval,
            },
        )
        return report
