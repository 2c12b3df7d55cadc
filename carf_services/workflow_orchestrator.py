"""
carf_services.workflow_orchestrator -- Strict side-effect pipeline for
workflow actions.

Responsibility:
    Runs every maker/approver action as an ordered pipeline, each step in
    its own transaction:

        1. apply the action (ApprovalService) and COMMIT
        2. notify the action's recipients
        3. if the action completed approval, submit downstream
        4. if the submission succeeded, copy executive observers

Architecture position:
    Services -- top of the service layer.  The only place that commits
    workflow writes and the only place that knows the step order.

Invariants enforced:
    - The status write is durable before any message or submission.
    - Downstream submission runs at most once per action, and only for the
      single transition that produced APPROVED.
    - A downstream failure never rolls back APPROVED; the outcome is
      flagged partial success and executive fan-out is skipped.
    - Every step runs under one correlation id in the log context.

Failure modes:
    - Errors from step 1 (authorization, configuration, stale version,
      persistence) propagate; nothing was written and nothing was sent.
    - Delivery errors in steps 2-4 are reported on ``WorkflowOutcome``.
      Any exception raised while submitting an APPROVED request is
      reported the same way; APPROVED is never hidden behind a raw error.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from carf_kernel.db.engine import session_scope
from carf_kernel.domain.approval import CustomerRequest
from carf_kernel.domain.clock import Clock, SystemClock
from carf_kernel.domain.ports import DownstreamClient, MessagingTransport, SubmissionReceipt
from carf_kernel.exceptions import ConfigurationError, DeliveryError
from carf_kernel.logging_config import LogContext, get_logger
from carf_services.approval_service import Action, ActionResult, ApprovalService
from carf_services.notification_dispatcher import (
    EXECUTIVE_KIND,
    NotificationDispatcher,
    NotificationReport,
)
from carf_services.submission_gateway import SubmissionGateway

logger = get_logger("services.workflow")

PARTIAL_SUCCESS_WARNING = (
    "Partial success: request approved but downstream submission failed. "
    "Please submit manually."
)


@dataclass(frozen=True)
class WorkflowOutcome:
    """Everything that happened for one action."""

    action: str
    request: CustomerRequest
    result: ActionResult
    notification: NotificationReport | None = None
    submission: SubmissionReceipt | None = None
    submission_error: str | None = None
    executive_notification: NotificationReport | None = None
    warnings: tuple[str, ...] = ()

    @property
    def submitted(self) -> bool:
        return self.submission is not None

    @property
    def partial_success(self) -> bool:
        return self.submission_error is not None


class ApprovalWorkflow:
    """Entry point for maker and approver actions.

    Contract:
        Receives a session factory plus the messaging and downstream ports.
        Owns the transaction boundary of every step.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        transport: MessagingTransport,
        downstream_client: DownstreamClient,
        clock: Clock | None = None,
        global_url: str = "",
    ):
        self._session_factory = session_factory
        self._transport = transport
        self._downstream = downstream_client
        self._clock = clock or SystemClock()
        self._global_url = global_url

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def submit_for_approval(
        self, row_ref: int, actor_id: str, has_required_attachments: bool,
    ) -> WorkflowOutcome:
        return self._run(
            Action.SUBMIT, row_ref, actor_id,
            lambda svc: svc.submit_for_approval(row_ref, actor_id, has_required_attachments),
        )

    def approve(self, row_ref: int, actor_id: str) -> WorkflowOutcome:
        return self._run(
            Action.APPROVE, row_ref, actor_id,
            lambda svc: svc.approve(row_ref, actor_id),
        )

    def cancel(self, row_ref: int, actor_id: str) -> WorkflowOutcome:
        return self._run(
            Action.CANCEL, row_ref, actor_id,
            lambda svc: svc.cancel(row_ref, actor_id),
        )

    def return_request(self, row_ref: int, actor_id: str, remarks: str) -> WorkflowOutcome:
        return self._run(
            Action.RETURN, row_ref, actor_id,
            lambda svc: svc.return_request(row_ref, actor_id, remarks),
        )

    def return_to_maker(self, row_ref: int, actor_id: str, remarks: str) -> WorkflowOutcome:
        return self._run(
            Action.RETURN_TO_MAKER, row_ref, actor_id,
            lambda svc: svc.return_request(row_ref, actor_id, remarks, to_maker=True),
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run(
        self,
        action: str,
        row_ref: int,
        actor_id: str,
        apply: Callable[[ApprovalService], ActionResult],
    ) -> WorkflowOutcome:
        with LogContext.bind(
            correlation_id=uuid4().hex, row_ref=row_ref, actor_id=actor_id, action=action,
        ):
            with session_scope(self._session_factory) as session:
                result = apply(ApprovalService(session, self._clock))

            notification = self._notify(result)

            submission: SubmissionReceipt | None = None
            submission_error: str | None = None
            executive: NotificationReport | None = None
            warnings: list[str] = []

            if result.became_final:
                submission, submission_error = self._submit(result.request)
                if submission is not None:
                    executive = self._notify_executives(result.request)
                    if executive.failed:
                        warnings.append("Executive observers were not all notified.")
                else:
                    warnings.append(PARTIAL_SUCCESS_WARNING)

            if notification is not None and not notification.success:
                warnings.append(f"Notification not delivered to every recipient ({notification.kind}).")

            outcome = WorkflowOutcome(
                action=action,
                request=result.request,
                result=result,
                notification=notification,
                submission=submission,
                submission_error=submission_error,
                executive_notification=executive,
                warnings=tuple(warnings),
            )
            logger.info(
                "workflow_action_completed",
                extra={
                    "status": result.request.status.value,
                    "version": result.request.version,
                    "became_final": result.became_final,
                    "submitted": outcome.submitted,
                    "partial_success": outcome.partial_success,
                },
            )
            return outcome

    def _notify(self, result: ActionResult) -> NotificationReport | None:
        plan = result.notification
        if plan is None:
            return None
        try:
            with session_scope(self._session_factory) as session:
                return self._dispatcher(session).notify(
                    result.request,
                    plan.recipients,
                    for_final_approval=plan.for_final_approval,
                    return_flag=plan.is_return,
                    remarks=plan.remarks,
                    kind=plan.kind,
                )
        except Exception as exc:
            return _failed_report(plan.kind, plan.recipients, exc)

    def _submit(
        self, request: CustomerRequest,
    ) -> tuple[SubmissionReceipt | None, str | None]:
        try:
            with session_scope(self._session_factory) as session:
                return SubmissionGateway(session, self._downstream).submit(request), None
        except (DeliveryError, ConfigurationError) as exc:
            logger.error(
                "approval_partial_success",
                extra={"error_code": exc.code, "error": str(exc)},
            )
            return None, str(exc)
        except Exception as exc:
            logger.error(
                "approval_partial_success",
                extra={"error_code": type(exc).__name__, "error": str(exc)},
                exc_info=True,
            )
            return None, str(exc) or type(exc).__name__

    def _notify_executives(self, request: CustomerRequest) -> NotificationReport:
        try:
            with session_scope(self._session_factory) as session:
                return self._dispatcher(session).notify_executives(request)
        except Exception as exc:
            return _failed_report(EXECUTIVE_KIND, (), exc)

    def _dispatcher(self, session: Session) -> NotificationDispatcher:
        return NotificationDispatcher(
            session, self._transport, clock=self._clock, global_url=self._global_url,
        )


def _failed_report(kind: str, recipients: tuple[str, ...], exc: Exception) -> NotificationReport:
    """Report for a notification step that failed outside the per-recipient loop."""
    reason = f"{type(exc).__name__}: {exc}"
    logger.error("notification_step_failed", extra={"kind": kind, "error": reason}, exc_info=True)
    return NotificationReport(
        kind=kind,
        recipients=recipients,
        failed=tuple((recipient, reason) for recipient in recipients) or (("", reason),),
    )
