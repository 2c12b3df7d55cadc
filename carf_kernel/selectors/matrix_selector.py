"""
Module: carf_kernel.selectors.matrix_selector
Responsibility: Approval matrix resolver.  Exact (request type, company)
    lookup of the approver chain, plus the business-center approver rows
    used when a maker submits a request.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Exact match only: a company-specific row is never merged with, or
      replaced by, an ``ALL`` row.
    - Approver lists come back normalized (see ``ApprovalMatrixModel.to_dto``).

Failure modes:
    - ``require`` raises ApprovalMatrixNotFoundError when no row matches.
"""

from __future__ import annotations

from sqlalchemy import select

from carf_kernel.domain.approval import ApprovalMatrixEntry, BusinessCenterApprover
from carf_kernel.exceptions import ApprovalMatrixNotFoundError
from carf_kernel.models.approval_matrix import ApprovalMatrixModel, BusinessCenterApproverModel
from carf_kernel.selectors.base import BaseSelector


class ApprovalMatrixSelector(BaseSelector[ApprovalMatrixModel]):
    """Read-only access to approval chains."""

    def lookup(self, request_type: str, company: str) -> ApprovalMatrixEntry | None:
        model = self.session.execute(
            select(ApprovalMatrixModel).where(
                ApprovalMatrixModel.request_type == request_type,
                ApprovalMatrixModel.company == company,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def require(self, request_type: str, company: str) -> ApprovalMatrixEntry:
        entry = self.lookup(request_type, company)
        if entry is None:
            raise ApprovalMatrixNotFoundError(request_type, company)
        return entry

    def business_center_approvers(
        self, business_center: str, company: str,
    ) -> list[BusinessCenterApprover]:
        if not business_center:
            return []
        rows = self.session.execute(
            select(BusinessCenterApproverModel)
            .where(
                BusinessCenterApproverModel.business_center == business_center,
                BusinessCenterApproverModel.company == company,
            )
            .order_by(BusinessCenterApproverModel.first_approver)
        ).scalars()
        return [row.to_dto() for row in rows]
