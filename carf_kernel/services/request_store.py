"""
carf_kernel.services.request_store -- Versioned request persistence.

Responsibility:
    Creates customer requests and applies partial workflow updates with an
    optimistic-concurrency check on the row reference.

Architecture position:
    Kernel > Services.  May import from domain/, models/, selectors/, db/.

Invariants enforced:
    - Partial update: only the columns named by the ``RequestPatch`` are
      written; business fields are never rewritten by the workflow.
    - Conditional update: ``WHERE row_ref = :ref AND version = :expected``;
      the version is incremented in the same statement.
    - Status moves follow ``REQUEST_TRANSITIONS`` when written through
      ``transition()``.
    - Flush only; the caller owns the transaction.

Failure modes:
    - RequestNotFoundError if the row reference does not exist.
    - StaleRequestError if another action saved the row first.
    - InvalidRequestTransitionError if a patch moves the status along an
      edge the lifecycle does not allow.
"""

from __future__ import annotations

from sqlalchemy import update

from carf_kernel.domain.approval import CustomerRequest, RequestPatch, is_valid_transition
from carf_kernel.exceptions import (
    InvalidRequestTransitionError,
    RequestNotFoundError,
    StaleRequestError,
)
from carf_kernel.logging_config import get_logger
from carf_kernel.models.customer_request import CustomerRequestModel, patch_columns
from carf_kernel.selectors.request_selector import RequestSelector
from carf_kernel.services.base import BaseService

logger = get_logger("services.request_store")


class RequestStore(BaseService[CustomerRequestModel]):
    """Writes customer requests."""

    def create(self, request: CustomerRequest) -> CustomerRequest:
        """Insert a new request and return it with its row reference."""
        model = CustomerRequestModel.from_dto(request)
        self.session.add(model)
        self.session.flush()
        logger.info(
            "customer_request_created",
            extra={
                "row_ref": model.row_ref,
                "request_type": model.request_type,
                "company": model.company,
                "maker": model.maker,
                "status": model.status,
            },
        )
        return self.load(model.row_ref)

    def load(self, row_ref: int) -> CustomerRequest:
        return RequestSelector(self.session).get(row_ref)

    def save(
        self,
        row_ref: int,
        patch: RequestPatch,
        expected_version: int,
    ) -> CustomerRequest:
        """Apply ``patch`` if the stored version still equals ``expected_version``.

        Returns:
            The reloaded request carrying the new version.
        """
        values = patch_columns(patch)
        values["version"] = CustomerRequestModel.version + 1

        result = self.session.execute(
            update(CustomerRequestModel)
            .where(
                CustomerRequestModel.row_ref == row_ref,
                CustomerRequestModel.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            if RequestSelector(self.session).find(row_ref) is None:
                raise RequestNotFoundError(row_ref)
            logger.warning(
                "customer_request_stale",
                extra={"row_ref": row_ref, "expected_version": expected_version},
            )
            raise StaleRequestError(row_ref, expected_version)

        self.session.flush()
        saved = self.load(row_ref)
        logger.debug(
            "customer_request_saved",
            extra={
                "row_ref": row_ref,
                "version": saved.version,
                "columns": sorted(k for k in values if k != "version"),
            },
        )
        return saved

    def transition(
        self,
        request: CustomerRequest,
        patch: RequestPatch,
        action: str,
    ) -> CustomerRequest:
        """Save ``patch`` against the ``request`` snapshot it was computed from.

        A status change must be an edge of ``REQUEST_TRANSITIONS``; the
        snapshot's version is the expected version.
        """
        if patch.status is not None and not is_valid_transition(request.status, patch.status):
            raise InvalidRequestTransitionError(request.row_ref, request.status.value, action)
        return self.save(request.row_ref, patch, request.version)
