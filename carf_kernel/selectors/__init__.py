"""Read-only selectors for the CARF kernel."""

from carf_kernel.selectors.actor_selector import ActorSelector
from carf_kernel.selectors.base import BaseSelector
from carf_kernel.selectors.matrix_selector import ApprovalMatrixSelector
from carf_kernel.selectors.reference_selector import ReferenceSelector
from carf_kernel.selectors.request_selector import RequestSelector

__all__ = [
    "ActorSelector",
    "ApprovalMatrixSelector",
    "BaseSelector",
    "ReferenceSelector",
    "RequestSelector",
]
