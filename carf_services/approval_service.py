"""
carf_services.approval_service -- Customer request workflow actions.

Responsibility:
    Applies the maker and approver actions to a customer request: submit
    for approval, approve, cancel, return and return-to-maker.  Resolves
    the actor and the approval matrix, delegates the approve decision to
    the pure engine, and persists through ``RequestStore``.  Each action
    returns an ``ActionResult`` describing the notification the caller must
    send after committing.

Architecture position:
    Services -- stateful orchestration over engines + kernel.  Composes
    kernel selectors and RequestStore with the pure approval engine.

Invariants enforced:
    - Every action takes the acting identity explicitly.
    - No write happens unless every precondition passed: actor resolved,
      matrix found, actor authorized, status allows the action and, for a
      transition that completes approval, downstream classification codes
      exist.
    - Terminal requests are never re-stamped within the cycle.
    - Saves are version-checked (StaleRequestError on a concurrent save).
    - Flush only; the orchestrator commits before any side effect.

Failure modes:
    - ActorNotFoundError, ApprovalMatrixNotFoundError,
      ClassificationCodeNotFoundError -- nothing written.
    - NotAuthorizedError -- nothing written, nothing sent.
    - RequestAlreadyResolvedError / InvalidRequestTransitionError.
    - MissingAttachmentsError on submission without attachments.
    - StaleRequestError if another action saved first.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from carf_engines.approval import (
    evaluate_approval,
    plan_submission,
    resolve_business_center_approvers,
)
from carf_kernel.domain.approval import (
    ActorContext,
    ApprovalMatrixEntry,
    ApprovalRejection,
    ApprovalTransition,
    CustomerRequest,
    RequestPatch,
    RequestStatus,
    SUBMITTABLE_STATUSES,
    TERMINAL_REQUEST_STATUSES,
    Tier,
    TierStamp,
)
from carf_kernel.domain.approvers import EMPTY, ApproverSet, contains
from carf_kernel.domain.clock import Clock, SystemClock
from carf_kernel.exceptions import (
    InvalidRequestTransitionError,
    MissingAttachmentsError,
    NotAuthorizedError,
    RequestAlreadyResolvedError,
)
from carf_kernel.logging_config import get_logger
from carf_kernel.selectors.actor_selector import ActorSelector
from carf_kernel.selectors.matrix_selector import ApprovalMatrixSelector
from carf_kernel.selectors.reference_selector import ReferenceSelector
from carf_kernel.services.request_store import RequestStore

logger = get_logger("services.approval")


class Action:
    SUBMIT = "submit"
    APPROVE = "approve"
    CANCEL = "cancel"
    RETURN = "return"
    RETURN_TO_MAKER = "return_to_maker"


@dataclass(frozen=True)
class NotificationPlan:
    """Message the caller sends once the action is committed."""

    kind: str
    recipients: ApproverSet
    for_final_approval: bool = False
    is_return: bool = False
    remarks: str = ""


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one committed-ready workflow action."""

    action: str
    actor: ActorContext
    previous: CustomerRequest
    request: CustomerRequest
    transition: ApprovalTransition | None = None
    notification: NotificationPlan | None = None

    @property
    def became_final(self) -> bool:
        return self.transition is not None and self.transition.became_final


class ApprovalService:
    """Workflow actions over customer requests.

    Contract:
        Receives a SQLAlchemy Session and an optional Clock.  Never commits.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = RequestStore(session)
        self._actors = ActorSelector(session)
        self._matrix = ApprovalMatrixSelector(session)
        self._reference = ReferenceSelector(session)

    # ------------------------------------------------------------------
    # Maker submission
    # ------------------------------------------------------------------

    def submit_for_approval(
        self,
        row_ref: int,
        actor_id: str,
        has_required_attachments: bool,
    ) -> ActionResult:
        """Move a draft, returned or cancelled request into PENDING.

        Starts a new workflow cycle: tier stamps and remarks are cleared,
        every tier plus the business-center approvers become next
        approvers, and tier 3 holds the final hint.
        """
        actor = self._actors.get_actor(actor_id)
        request = self._store.load(row_ref)

        if actor.identity != request.maker:
            raise NotAuthorizedError(actor.identity, row_ref, Action.SUBMIT, "only the maker may submit")
        if request.status not in SUBMITTABLE_STATUSES:
            raise InvalidRequestTransitionError(row_ref, request.status.value, Action.SUBMIT)
        if not has_required_attachments:
            raise MissingAttachmentsError(row_ref)

        matrix = self._matrix.require(request.request_type, request.company)
        bc_rows = self._matrix.business_center_approvers(
            request.details.bu_center, request.company,
        )
        next_approver, final_approver = plan_submission(
            matrix, resolve_business_center_approvers(bc_rows, request.request_type),
        )

        patch = RequestPatch(
            status=RequestStatus.PENDING,
            next_approver=next_approver,
            final_approver=final_approver,
            stamps=tuple((tier, TierStamp.clear()) for tier in Tier),
            clear_remarks=True,
        )
        saved = self._store.transition(request, patch, Action.SUBMIT)

        logger.info(
            "customer_request_submitted",
            extra={
                "row_ref": row_ref,
                "from_status": request.status.value,
                "next_approver": list(next_approver),
                "final_approver": list(final_approver),
            },
        )
        return ActionResult(
            action=Action.SUBMIT,
            actor=actor,
            previous=request,
            request=saved,
            notification=NotificationPlan(kind=Action.SUBMIT, recipients=next_approver),
        )

    # ------------------------------------------------------------------
    # Approve
    # ------------------------------------------------------------------

    def approve(self, row_ref: int, actor_id: str) -> ActionResult:
        """Record one approval and compute who acts next.

        Raises:
            NotAuthorizedError: The actor may not approve at this point.
        """
        actor = self._actors.get_actor(actor_id)
        request = self._store.load(row_ref)
        self._require_pending(request, Action.APPROVE)
        matrix = self._matrix.require(request.request_type, request.company)

        outcome = evaluate_approval(request, matrix, actor, self._clock.now())
        if isinstance(outcome, ApprovalRejection):
            logger.warning(
                "approval_rejected",
                extra={"row_ref": row_ref, "actor_id": actor.identity, "reason": outcome.reason},
            )
            raise NotAuthorizedError(actor.identity, row_ref, Action.APPROVE, outcome.reason)

        if outcome.became_final:
            # Downstream codes must exist before APPROVED is written.
            self._reference.classification_codes(request.request_type)

        patch = RequestPatch(
            status=outcome.new_status,
            next_approver=outcome.next_approver,
            final_approver=outcome.final_approver,
            stamps=((outcome.stamped_tier, outcome.stamp),),
        )
        saved = self._store.transition(request, patch, Action.APPROVE)

        logger.info(
            "approval_transition_applied",
            extra={
                "row_ref": row_ref,
                "stamped_tier": outcome.stamped_tier.value,
                "from_status": request.status.value,
                "to_status": outcome.new_status.value,
                "became_final": outcome.became_final,
                "compliance_override": outcome.compliance_override,
                "next_approver": list(outcome.next_approver),
                "final_approver": list(outcome.final_approver),
            },
        )
        return ActionResult(
            action=Action.APPROVE,
            actor=actor,
            previous=request,
            request=saved,
            transition=outcome,
            notification=NotificationPlan(
                kind=Action.APPROVE,
                recipients=outcome.approval_value_to_send(saved),
                for_final_approval=outcome.for_final_approval,
            ),
        )

    # ------------------------------------------------------------------
    # Cancel / return
    # ------------------------------------------------------------------

    def cancel(self, row_ref: int, actor_id: str) -> ActionResult:
        """Cancel a PENDING request (maker or a matrix approver)."""
        actor = self._actors.get_actor(actor_id)
        request = self._store.load(row_ref)
        self._require_pending(request, Action.CANCEL)
        if actor.identity != request.maker:
            matrix = self._matrix.require(request.request_type, request.company)
            self._require_chain_member(actor, matrix, request, Action.CANCEL)

        saved = self._store.transition(
            request,
            RequestPatch(status=RequestStatus.CANCELLED, next_approver=EMPTY, final_approver=EMPTY),
            Action.CANCEL,
        )
        logger.info("customer_request_cancelled", extra={"row_ref": row_ref})
        return ActionResult(action=Action.CANCEL, actor=actor, previous=request, request=saved)

    def return_request(
        self,
        row_ref: int,
        actor_id: str,
        remarks: str,
        to_maker: bool = False,
    ) -> ActionResult:
        """Send a PENDING request back to its maker with remarks.

        ``to_maker=True`` is the return-to-maker variant: the maker's
        notification carries final-approval semantics.  Tier fields are
        left untouched.
        """
        action = Action.RETURN_TO_MAKER if to_maker else Action.RETURN
        if not remarks or not remarks.strip():
            raise ValueError("Remarks are required to return a request")

        actor = self._actors.get_actor(actor_id)
        request = self._store.load(row_ref)
        self._require_pending(request, action)
        matrix = self._matrix.require(request.request_type, request.company)
        self._require_chain_member(actor, matrix, request, action)

        saved = self._store.transition(
            request,
            RequestPatch(
                status=RequestStatus.RETURN_TO_MAKER,
                next_approver=EMPTY,
                final_approver=EMPTY,
                remarks=remarks.strip(),
            ),
            action,
        )
        logger.info(
            "customer_request_returned",
            extra={"row_ref": row_ref, "to_maker": to_maker},
        )
        return ActionResult(
            action=action,
            actor=actor,
            previous=request,
            request=saved,
            notification=NotificationPlan(
                kind=action,
                recipients=(request.maker,),
                for_final_approval=to_maker,
                is_return=True,
                remarks=remarks.strip(),
            ),
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_pending(self, request: CustomerRequest, action: str) -> None:
        if request.status in TERMINAL_REQUEST_STATUSES:
            raise RequestAlreadyResolvedError(request.row_ref, request.status.value)
        if request.status != RequestStatus.PENDING:
            raise InvalidRequestTransitionError(request.row_ref, request.status.value, action)

    def _require_chain_member(
        self,
        actor: ActorContext,
        matrix: ApprovalMatrixEntry,
        request: CustomerRequest,
        action: str,
    ) -> None:
        if not actor.is_designated_approver or not contains(matrix.all_approvers, actor.identity):
            logger.warning(
                "workflow_action_rejected",
                extra={"row_ref": request.row_ref, "actor_id": actor.identity, "action": action},
            )
            raise NotAuthorizedError(
                actor.identity, request.row_ref, action, "not an approver for this request",
            )
