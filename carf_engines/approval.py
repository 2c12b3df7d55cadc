"""
carf_engines.approval -- Pure approval state machine.

Responsibility:
    Given a request snapshot, its approval matrix entry and the acting
    user, decide the request's next status, next/final approver hints and
    which tier to stamp.  Also computes the approver hints for a maker
    submission into PENDING.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import carf_kernel/domain/ types.

Invariants enforced:
    - Fixed precedence: compliance short-circuit, tier 1, tier 2, tier 3.
    - Compliance grants fast-forward, never bypass of tier membership.
    - Tiers 2 and 3 may sign in either order; whichever signs first is
      never final.  APPROVED is produced only by the transition that
      completes the second of the two, or by the compliance short-circuit.
    - Tiers 2 and 3 wait for tier 1 unless the chain has none.  A tier 1
      member holding the final hint signs tier 3 instead, and that stamp
      stands in for tier 1.
    - Rejections carry a reason and describe no mutation.
    - Purity: the stamp time is passed in by the caller.

Failure modes:
    - Returns ``ApprovalRejection`` for every non-eligible actor; callers
      turn it into ``NotAuthorizedError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from carf_kernel.domain.approval import (
    ActorContext,
    ApprovalMatrixEntry,
    ApprovalOutcome,
    ApprovalRejection,
    ApprovalTransition,
    BusinessCenterApprover,
    CustomerRequest,
    RequestStatus,
    Tier,
    TierStamp,
)
from carf_kernel.domain.approvers import EMPTY, ApproverSet, contains, dedup

NOT_AUTHORIZED = "not authorized"


def evaluate_approval(
    request: CustomerRequest,
    matrix: ApprovalMatrixEntry,
    actor: ActorContext,
    now: datetime,
) -> ApprovalOutcome:
    """Evaluate one approve action.

    Args:
        request: Current request snapshot (must be PENDING).
        matrix: Matrix entry for (request.request_type, request.company).
        actor: Resolved acting user.
        now: Stamp time for the tier being signed.

    Returns:
        ``ApprovalTransition`` describing the new state, or
        ``ApprovalRejection`` when the actor may not act.
    """
    if request.status != RequestStatus.PENDING:
        return ApprovalRejection(f"request is {request.status.value}, not PENDING")
    if not actor.is_designated_approver:
        return ApprovalRejection(f"{NOT_AUTHORIZED}: not a designated approver")

    identity = actor.identity
    final_hint = request.final_approver

    def stamp() -> TierStamp:
        return TierStamp(approver=identity, approve_date=now, approver_name=actor.display_name)

    # 1. Compliance short-circuit
    if actor.is_compliance_final_approver:
        tier = matrix.first_tier_of(identity)
        if tier is None:
            return ApprovalRejection(f"{NOT_AUTHORIZED}: compliance approver not in any tier")
        return ApprovalTransition(
            new_status=RequestStatus.APPROVED,
            next_approver=EMPTY,
            final_approver=EMPTY,
            stamped_tier=tier,
            stamp=stamp(),
            became_final=True,
            compliance_override=True,
        )

    # 2. Tier 1
    if contains(matrix.tier1, identity) and not contains(final_hint, identity):
        return ApprovalTransition(
            new_status=RequestStatus.PENDING,
            next_approver=dedup(matrix.tier2, matrix.tier3),
            final_approver=final_hint,
            stamped_tier=Tier.FIRST,
            stamp=stamp(),
            became_final=False,
        )

    # Tiers 2 and 3 wait for tier 1 when the chain has one.  A tier 1 member
    # who also holds the final hint signs as tier 3, and that stamp stands
    # in for tier 1.
    tier1_final = contains(matrix.tier1, identity) and contains(final_hint, identity)
    tier1_done = request.tier1.stamped or (
        request.tier3.stamped and contains(matrix.tier1, request.tier3.approver)
    )
    if matrix.tier1 and not tier1_done and not tier1_final:
        if contains(matrix.tier2, identity) or contains(matrix.tier3, identity):
            return ApprovalRejection(f"{NOT_AUTHORIZED}: 1st approver has not signed")

    tier3_done = request.tier3.stamped
    tier2_done = request.tier2.stamped

    # 3. Tier 2.  Being named in the final hint only blocks this path while
    # tier 3 is still open; after tier 3 signs, the hint names tier 2.
    if contains(matrix.tier2, identity) and (not contains(final_hint, identity) or tier3_done):
        if tier3_done:
            return ApprovalTransition(
                new_status=RequestStatus.APPROVED,
                next_approver=EMPTY,
                final_approver=EMPTY,
                stamped_tier=Tier.SECOND,
                stamp=stamp(),
                became_final=True,
            )
        return ApprovalTransition(
            new_status=RequestStatus.PENDING,
            next_approver=matrix.tier3,
            final_approver=matrix.tier3,
            stamped_tier=Tier.SECOND,
            stamp=stamp(),
            became_final=False,
        )

    # 4. Tier 3 (final)
    if contains(matrix.tier3, identity) and contains(final_hint, identity):
        if tier2_done:
            return ApprovalTransition(
                new_status=RequestStatus.APPROVED,
                next_approver=EMPTY,
                final_approver=EMPTY,
                stamped_tier=Tier.THIRD,
                stamp=stamp(),
                became_final=True,
            )
        return ApprovalTransition(
            new_status=RequestStatus.PENDING,
            next_approver=matrix.tier2,
            final_approver=matrix.tier2,
            stamped_tier=Tier.THIRD,
            stamp=stamp(),
            became_final=False,
        )

    return ApprovalRejection(NOT_AUTHORIZED)


def resolve_business_center_approvers(
    rows: Iterable[BusinessCenterApprover],
    request_type: str,
) -> ApproverSet:
    """Approvers contributed by the request's business center.

    A row whose exception request type matches contributes its exception
    approvers instead of the regular first approvers of every row.
    """
    rows = list(rows)
    for row in rows:
        if row.exception_request_type and row.exception_request_type == request_type:
            return dedup(row.exception_approver)
    return dedup(*(row.first_approver for row in rows))


def plan_submission(
    matrix: ApprovalMatrixEntry,
    business_center_approvers: ApproverSet = EMPTY,
) -> tuple[ApproverSet, ApproverSet]:
    """Next and final approver hints for a request entering PENDING.

    Returns:
        ``(next_approver, final_approver)``: every tier plus the business
        center approvers may be notified; tier 3 holds the final hint.
    """
    next_approver = dedup(matrix.tier1, matrix.tier2, matrix.tier3, business_center_approvers)
    return next_approver, matrix.tier3
