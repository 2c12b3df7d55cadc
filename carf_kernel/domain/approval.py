"""
Approval domain types (``carf_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the CARF approval workflow: the request status
lifecycle, approval matrix entries, the acting user's context, the
customer request snapshot, and the outcome of an approval evaluation.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/``, ``selectors/`` or outer layers.

Invariants enforced
-------------------
* Lifecycle state machine -- ``REQUEST_TRANSITIONS`` lists the only valid
  status moves.  APPROVED, CANCELLED and RETURN TO MAKER end a cycle; only
  a maker resubmission re-enters PENDING.
* Atomic tier stamping -- ``TierStamp.stamped`` requires both approver and
  date; ``TierStamp.clear()`` removes both together.
* Approver sets are ``ApproverSet`` tuples, never raw strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from carf_kernel.domain.approvers import EMPTY, ApproverSet, contains, dedup

# Matrix company value meaning "applies to all companies".
ALL_COMPANIES = "ALL"


# =========================================================================
# Request Status Lifecycle
# =========================================================================


class RequestStatus(str, Enum):
    """Customer request workflow states (stored values)."""

    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"
    RETURN_TO_MAKER = "RETURN TO MAKER"

    @classmethod
    def parse(cls, value: str | None) -> RequestStatus:
        """Stored status; blank means a draft not yet submitted."""
        if value is None or not value.strip():
            return cls.DRAFT
        return cls(value.strip().upper())

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS: dict[RequestStatus, str] = {
    RequestStatus.DRAFT: "Draft",
    RequestStatus.PENDING: "Pending",
    RequestStatus.APPROVED: "Approved",
    RequestStatus.CANCELLED: "Cancelled",
    RequestStatus.RETURN_TO_MAKER: "Returned",
}


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.DRAFT: frozenset({RequestStatus.PENDING}),
    RequestStatus.PENDING: frozenset({
        RequestStatus.PENDING,
        RequestStatus.APPROVED,
        RequestStatus.CANCELLED,
        RequestStatus.RETURN_TO_MAKER,
    }),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.CANCELLED: frozenset({RequestStatus.PENDING}),
    RequestStatus.RETURN_TO_MAKER: frozenset({RequestStatus.PENDING}),
}

# Terminal within a workflow cycle.
TERMINAL_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.CANCELLED,
    RequestStatus.RETURN_TO_MAKER,
})

SUBMITTABLE_STATUSES: frozenset[RequestStatus] = frozenset({
    RequestStatus.DRAFT,
    RequestStatus.CANCELLED,
    RequestStatus.RETURN_TO_MAKER,
})


def is_valid_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    return to_status in REQUEST_TRANSITIONS.get(from_status, frozenset())


class Tier(int, Enum):
    """Approval tiers in chain order."""

    FIRST = 1
    SECOND = 2
    THIRD = 3

    @property
    def label(self) -> str:
        return {1: "1st Approver", 2: "2nd Approver", 3: "3rd Approver"}[self.value]


# =========================================================================
# Reference data
# =========================================================================


@dataclass(frozen=True)
class ApprovalMatrixEntry:
    """Approver chain for one (request type, company) pair."""

    request_type: str
    company: str
    tier1: ApproverSet = EMPTY
    tier2: ApproverSet = EMPTY
    tier3: ApproverSet = EMPTY
    compliance_final_approver: bool = False

    def approvers_for(self, tier: Tier) -> ApproverSet:
        return {Tier.FIRST: self.tier1, Tier.SECOND: self.tier2, Tier.THIRD: self.tier3}[tier]

    def first_tier_of(self, identity: str) -> Tier | None:
        """Lowest tier listing ``identity``, or None."""
        for tier in Tier:
            if contains(self.approvers_for(tier), identity):
                return tier
        return None

    @property
    def all_approvers(self) -> ApproverSet:
        return dedup(self.tier1, self.tier2, self.tier3)


@dataclass(frozen=True)
class ActorContext:
    """The acting user, resolved once per action."""

    identity: str
    display_name: str
    company: str = ""
    email: str | None = None
    is_designated_approver: bool = False
    is_compliance_final_approver: bool = False


@dataclass(frozen=True)
class ExecutiveObserver:
    """A user copied on every successfully submitted approval."""

    identity: str
    company: str
    exceptions: ApproverSet = EMPTY
    all_access: bool = False


@dataclass(frozen=True)
class BusinessCenterApprover:
    """One business-center approver row."""

    business_center: str
    company: str
    first_approver: ApproverSet = EMPTY
    exception_request_type: str | None = None
    exception_approver: ApproverSet = EMPTY


@dataclass(frozen=True)
class ClassificationCodes:
    """Downstream classification for a request type."""

    request_type: str
    bos_type: str
    bos_series: str
    bos_group: str


# =========================================================================
# Customer request snapshot
# =========================================================================


@dataclass(frozen=True)
class TierStamp:
    """Audit fields for one tier."""

    approver: str | None = None
    approve_date: datetime | None = None
    approver_name: str | None = None

    @property
    def stamped(self) -> bool:
        return bool(self.approver) and self.approve_date is not None

    @classmethod
    def clear(cls) -> TierStamp:
        return cls()


@dataclass(frozen=True)
class CustomerDetails:
    """Business fields carried to notifications and the downstream record."""

    request_for: str = ""
    bos_code: str = ""
    sold_to_party: str = ""
    ship_to_party: str = ""
    tin: str = ""
    store_code: str = ""
    bus_style: str = ""
    sale_type: str = ""
    delivery_address: str = ""
    bill_address: str = ""
    contact_person: str = ""
    contact_number: str = ""
    email: str = ""
    bu_center: str = ""
    region: str = ""
    district: str = ""
    date_start: str = ""
    terms: str = ""
    credit_limit: str = ""
    bc_code: str = ""
    bc_name: str = ""
    sao_code: str = ""
    sao_name: str = ""
    sup_code: str = ""
    sup_name: str = ""
    ops_code: str = ""
    ops_name: str = ""
    type: str = ""
    position: str = ""
    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    is_mother: str = ""
    sales_org: str = ""
    distribution_channel: str = ""
    division: str = ""
    sales_territory: str = ""

    @property
    def customer_number(self) -> str:
        """Party number selected by the mother-account flag."""
        flag = self.is_mother.strip().upper()
        if flag == "SOLD TO PARTY":
            return self.sold_to_party
        if flag == "SHIP TO PARTY":
            return self.ship_to_party
        return ""


@dataclass(frozen=True)
class CustomerRequest:
    """Immutable snapshot of a customer activation request."""

    row_ref: int | None
    request_type: str
    company: str
    maker: str
    status: RequestStatus = RequestStatus.DRAFT
    next_approver: ApproverSet = EMPTY
    final_approver: ApproverSet = EMPTY
    tier1: TierStamp = field(default_factory=TierStamp)
    tier2: TierStamp = field(default_factory=TierStamp)
    tier3: TierStamp = field(default_factory=TierStamp)
    remarks: str | None = None
    version: int = 1
    created_at: datetime | None = None
    details: CustomerDetails = field(default_factory=CustomerDetails)

    def stamp_for(self, tier: Tier) -> TierStamp:
        return {Tier.FIRST: self.tier1, Tier.SECOND: self.tier2, Tier.THIRD: self.tier3}[tier]

    def with_stamp(self, tier: Tier, stamp: TierStamp) -> CustomerRequest:
        return replace(self, **{f"tier{tier.value}": stamp})


@dataclass(frozen=True)
class RequestPatch:
    """Partial update of workflow fields.

    ``None`` leaves a field unchanged; an empty ``ApproverSet`` clears it.
    A ``TierStamp()`` in ``stamps`` clears that tier's audit fields.
    """

    status: RequestStatus | None = None
    next_approver: ApproverSet | None = None
    final_approver: ApproverSet | None = None
    stamps: tuple[tuple[Tier, TierStamp], ...] = ()
    remarks: str | None = None
    clear_remarks: bool = False

    @property
    def is_empty(self) -> bool:
        return (
            self.status is None
            and self.next_approver is None
            and self.final_approver is None
            and not self.stamps
            and self.remarks is None
            and not self.clear_remarks
        )


# =========================================================================
# Evaluation results
# =========================================================================


@dataclass(frozen=True)
class ApprovalTransition:
    """Outcome of a successful approve evaluation."""

    new_status: RequestStatus
    next_approver: ApproverSet
    final_approver: ApproverSet
    stamped_tier: Tier
    stamp: TierStamp
    became_final: bool
    compliance_override: bool = False

    @property
    def for_final_approval(self) -> bool:
        return self.became_final

    def approval_value_to_send(self, request: CustomerRequest) -> ApproverSet:
        """Maker when the request is now APPROVED, else the new next approvers."""
        if self.new_status == RequestStatus.APPROVED:
            return (request.maker,)
        return self.next_approver


@dataclass(frozen=True)
class ApprovalRejection:
    """Outcome of an approve evaluation that must not mutate the request."""

    reason: str


ApprovalOutcome = ApprovalTransition | ApprovalRejection
