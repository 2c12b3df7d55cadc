"""
Pure domain layer.

Value objects and normalization helpers with NO dependencies on the ORM,
the database, the clock or any I/O.  All domain objects are immutable.
"""

from carf_kernel.domain.approval import (
    ALL_COMPANIES,
    ActorContext,
    ApprovalMatrixEntry,
    ApprovalOutcome,
    ApprovalRejection,
    ApprovalTransition,
    BusinessCenterApprover,
    ClassificationCodes,
    CustomerDetails,
    CustomerRequest,
    ExecutiveObserver,
    RequestPatch,
    RequestStatus,
    Tier,
    TierStamp,
)
from carf_kernel.domain.approvers import ApproverSet, dedup, normalize_approvers
from carf_kernel.domain.clock import Clock, DeterministicClock, SystemClock

__all__ = [
    "ALL_COMPANIES",
    "ActorContext",
    "ApprovalMatrixEntry",
    "ApprovalOutcome",
    "ApprovalRejection",
    "ApprovalTransition",
    "ApproverSet",
    "BusinessCenterApprover",
    "ClassificationCodes",
    "Clock",
    "CustomerDetails",
    "CustomerRequest",
    "DeterministicClock",
    "ExecutiveObserver",
    "RequestPatch",
    "RequestStatus",
    "SystemClock",
    "Tier",
    "TierStamp",
    "dedup",
    "normalize_approvers",
]
