"""
carf_services -- Workflow orchestration for customer requests.

Architecture position:
    Services -- the only layer that composes the pure engines with kernel
    selectors and services, and the only layer that owns transactions and
    talks to external systems through the kernel ports.
"""

from carf_services.approval_service import (
    Action,
    ActionResult,
    ApprovalService,
    NotificationPlan,
)
from carf_services.downstream_client import HttpDownstreamClient
from carf_services.notification_dispatcher import NotificationDispatcher, NotificationReport
from carf_services.submission_gateway import SubmissionGateway
from carf_services.timeline_service import timeline_for
from carf_services.transports import HttpRelayTransport, SmtpTransport
from carf_services.wiring import build_downstream_client, build_transport, build_workflow
from carf_services.workflow_orchestrator import (
    PARTIAL_SUCCESS_WARNING,
    ApprovalWorkflow,
    WorkflowOutcome,
)

__all__ = [
    "PARTIAL_SUCCESS_WARNING",
    "Action",
    "ActionResult",
    "ApprovalService",
    "ApprovalWorkflow",
    "HttpDownstreamClient",
    "HttpRelayTransport",
    "NotificationDispatcher",
    "NotificationPlan",
    "NotificationReport",
    "SmtpTransport",
    "SubmissionGateway",
    "WorkflowOutcome",
    "build_downstream_client",
    "build_transport",
    "build_workflow",
    "timeline_for",
]
