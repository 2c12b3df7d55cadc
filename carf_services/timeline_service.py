"""
carf_services.timeline_service -- Timeline read model for one request.

Loads the request, its matrix entry and the approvers' display names, then
projects the timeline with the pure engine.  Read-only.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from carf_engines.timeline import ApprovalTimeline, project_timeline
from carf_kernel.domain.approval import Tier
from carf_kernel.selectors.actor_selector import ActorSelector
from carf_kernel.selectors.matrix_selector import ApprovalMatrixSelector
from carf_kernel.selectors.request_selector import RequestSelector


def timeline_for(session: Session, row_ref: int) -> ApprovalTimeline:
    """Raises RequestNotFoundError if ``row_ref`` does not exist.

    A request whose matrix entry is missing is projected as if the chain
    had a tier 1.
    """
    request = RequestSelector(session).get(row_ref)
    identities = [request.maker] + [request.stamp_for(tier).approver for tier in Tier]
    names = ActorSelector(session).display_names(i for i in identities if i)
    matrix = ApprovalMatrixSelector(session).lookup(request.request_type, request.company)
    first_tier_required = matrix is None or bool(matrix.tier1)
    return project_timeline(request, names, first_tier_required=first_tier_required)
