"""
carf_engines.timeline -- Read model projector for the approval timeline.

Derives the four display steps (maker, 1st, 2nd, 3rd) from a request
snapshot.  Presentation only: no authorization, no writes.

Step states:
    done       approver identity and date are both present
    active     eligible to act next but not yet done
    waiting    otherwise
    cancelled  every step, when the request is CANCELLED
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from carf_kernel.domain.approval import CustomerRequest, RequestStatus, Tier, TierStamp

PLACEHOLDER = "—"


class StepState(str, Enum):
    DONE = "done"
    ACTIVE = "active"
    WAITING = "waiting"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TimelineStep:
    key: str
    label: str
    role: str
    person: str
    date: datetime | None
    state: StepState


@dataclass(frozen=True)
class ApprovalTimeline:
    row_ref: int | None
    status_label: str
    steps: tuple[TimelineStep, ...]

    @property
    def cancelled(self) -> bool:
        return all(step.state == StepState.CANCELLED for step in self.steps)


_TIER_STEPS: tuple[tuple[Tier, str, str], ...] = (
    (Tier.FIRST, "firstapprover", "Initial Review"),
    (Tier.SECOND, "secondapprover", "Secondary Review"),
    (Tier.THIRD, "thirdapprover", "Final Approval"),
)


def project_timeline(
    request: CustomerRequest,
    display_names: Mapping[str, str] | None = None,
    first_tier_required: bool = True,
) -> ApprovalTimeline:
    """Build the display timeline for ``request``.

    Args:
        request: Request snapshot.
        display_names: Optional identity -> name map used when a tier has
            no cached approver name.
        first_tier_required: False when the chain has no tier 1 members;
            tiers 2 and 3 are then active as soon as the request is pending
            and the 1st step is never active.
    """
    names = display_names or {}
    status = request.status
    cancelled = status == RequestStatus.CANCELLED
    pending = status == RequestStatus.PENDING

    maker_state = StepState.DONE if status != RequestStatus.DRAFT else StepState.ACTIVE
    steps = [
        TimelineStep(
            key="maker",
            label="Request Created",
            role="Maker",
            person=names.get(request.maker) or request.maker or PLACEHOLDER,
            date=request.created_at,
            state=StepState.CANCELLED if cancelled else maker_state,
        )
    ]

    tier1_done = request.tier1.stamped or not first_tier_required
    for tier, key, label in _TIER_STEPS:
        stamp = request.stamp_for(tier)
        if cancelled:
            state = StepState.CANCELLED
        elif stamp.stamped:
            state = StepState.DONE
        elif pending and (first_tier_required if tier == Tier.FIRST else tier1_done):
            state = StepState.ACTIVE
        else:
            state = StepState.WAITING
        steps.append(
            TimelineStep(
                key=key,
                label=label,
                role=tier.label,
                person=_person(stamp, names),
                date=stamp.approve_date,
                state=state,
            )
        )

    return ApprovalTimeline(
        row_ref=request.row_ref,
        status_label=status.label,
        steps=tuple(steps),
    )


def _person(stamp: TierStamp, names: Mapping[str, str]) -> str:
    if stamp.approver_name:
        return stamp.approver_name
    if stamp.approver:
        return names.get(stamp.approver) or stamp.approver
    return PLACEHOLDER
