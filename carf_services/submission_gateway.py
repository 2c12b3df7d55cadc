"""
carf_services.submission_gateway -- Downstream master-data submission.

Responsibility:
    Maps an APPROVED customer request into the downstream record and
    submits it through the ``DownstreamClient`` port.

Architecture position:
    Services -- orchestration over engines + kernel.

Invariants enforced:
    - Only APPROVED requests with a row reference are submitted.
    - Classification codes come from ``customertypeseries``; there are no
      defaults.
    - One client call per invocation; the gateway does not retry or
      deduplicate.  The idempotency key (row reference + version) lets the
      downstream side reject a duplicate.

Failure modes:
    - InvalidRequestTransitionError if the request is not APPROVED.
    - MissingRowReferenceError if the request has no row reference.
    - ClassificationCodeNotFoundError if the request type is unmapped.
    - DownstreamSubmissionError if the record cannot be built or the
      client rejects it.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from carf_engines.payloads import build_downstream_record
from carf_kernel.domain.approval import CustomerRequest, RequestStatus
from carf_kernel.domain.ports import DownstreamClient, SubmissionReceipt
from carf_kernel.exceptions import (
    DownstreamSubmissionError,
    InvalidRequestTransitionError,
    MissingRowReferenceError,
)
from carf_kernel.logging_config import get_logger
from carf_kernel.selectors.reference_selector import ReferenceSelector
from carf_kernel.utils.idempotency import generate_idempotency_key

logger = get_logger("services.submission")

DOWNSTREAM_CHANNEL = "downstream"


class SubmissionGateway:
    """Submits approved requests to the downstream system."""

    def __init__(self, session: Session, client: DownstreamClient):
        self._reference = ReferenceSelector(session)
        self._client = client

    def submit(self, request: CustomerRequest) -> SubmissionReceipt:
        if request.row_ref is None:
            raise MissingRowReferenceError(request.request_type)
        if request.status != RequestStatus.APPROVED:
            raise InvalidRequestTransitionError(
                request.row_ref, request.status.value, "submit downstream",
            )

        codes = self._reference.classification_codes(request.request_type)
        try:
            record = build_downstream_record(request, codes)
        except ValueError as exc:
            raise DownstreamSubmissionError(request.row_ref, str(exc)) from exc

        key = generate_idempotency_key(DOWNSTREAM_CHANNEL, request.row_ref, request.version)
        logger.info(
            "downstream_submission_started",
            extra={"row_ref": request.row_ref, "idempotency_key": key, "bos_type": codes.bos_type},
        )
        try:
            receipt = self._client.submit_record(record, key)
        except DownstreamSubmissionError as exc:
            logger.error(
                "downstream_submission_failed",
                extra={"row_ref": request.row_ref, "reason": exc.reason, "status_code": exc.status_code},
            )
            raise

        if not receipt.success:
            logger.error(
                "downstream_submission_rejected",
                extra={"row_ref": request.row_ref, "idempotency_key": key},
            )
            raise DownstreamSubmissionError(request.row_ref, "downstream reported failure")

        logger.info(
            "downstream_submission_completed",
            extra={"row_ref": request.row_ref, "reference": receipt.reference},
        )
        return receipt
