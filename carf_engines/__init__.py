"""
Module: carf_engines
Responsibility:
    Re-exports the pure calculation engines used by the kernel services and
    the workflow orchestrator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import carf_kernel/domain (and sibling engine modules).
    MUST NOT import carf_kernel services/selectors/models or carf_services.

Invariants enforced:
    - Purity: engines never read the clock; timestamps are parameters.
    - Determinism: identical inputs always produce identical outputs.
"""

from carf_engines.approval import (
    NOT_AUTHORIZED,
    evaluate_approval,
    plan_submission,
    resolve_business_center_approvers,
)
from carf_engines.payloads import (
    build_downstream_record,
    build_notification_payload,
    parse_credit_limit,
)
from carf_engines.recipients import observer_matches, select_executive_recipients
from carf_engines.timeline import (
    ApprovalTimeline,
    StepState,
    TimelineStep,
    project_timeline,
)

__all__ = [
    "NOT_AUTHORIZED",
    "ApprovalTimeline",
    "StepState",
    "TimelineStep",
    "build_downstream_record",
    "build_notification_payload",
    "evaluate_approval",
    "observer_matches",
    "parse_credit_limit",
    "plan_submission",
    "project_timeline",
    "resolve_business_center_approvers",
    "select_executive_recipients",
]
