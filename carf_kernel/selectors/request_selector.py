"""
Module: carf_kernel.selectors.request_selector
Responsibility: Read access to customer requests, including the pending
    queue of a given approver.
Architecture position: Kernel > Selectors.
"""

from __future__ import annotations

from sqlalchemy import select

from carf_kernel.domain.approval import CustomerRequest, RequestStatus
from carf_kernel.domain.approvers import contains
from carf_kernel.exceptions import RequestNotFoundError
from carf_kernel.models.customer_request import CustomerRequestModel
from carf_kernel.selectors.base import BaseSelector


class RequestSelector(BaseSelector[CustomerRequestModel]):
    """Read-only access to customer requests."""

    def find(self, row_ref: int) -> CustomerRequest | None:
        model = self.session.get(CustomerRequestModel, row_ref, populate_existing=True)
        return model.to_dto() if model is not None else None

    def get(self, row_ref: int) -> CustomerRequest:
        """Load a request by row reference.

        Raises:
            RequestNotFoundError: If no request has this row reference.
        """
        request = self.find(row_ref)
        if request is None:
            raise RequestNotFoundError(row_ref)
        return request

    def pending_for(self, identity: str) -> list[CustomerRequest]:
        """PENDING requests whose next-approver set names ``identity``."""
        rows = self.session.execute(
            select(CustomerRequestModel)
            .where(CustomerRequestModel.status == RequestStatus.PENDING.value)
            .order_by(CustomerRequestModel.row_ref)
        ).scalars()
        requests = (row.to_dto() for row in rows)
        return [r for r in requests if contains(r.next_approver, identity)]

    def by_maker(self, maker: str) -> list[CustomerRequest]:
        rows = self.session.execute(
            select(CustomerRequestModel)
            .where(CustomerRequestModel.maker == maker)
            .order_by(CustomerRequestModel.row_ref)
        ).scalars()
        return [row.to_dto() for row in rows]
