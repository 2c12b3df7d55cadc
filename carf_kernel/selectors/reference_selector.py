"""
Module: carf_kernel.selectors.reference_selector
Responsibility: Executive observer rows and downstream classification
    codes.
Architecture position: Kernel > Selectors.

Failure modes:
    - ``classification_codes`` raises ClassificationCodeNotFoundError; the
      downstream gateway never submits with guessed codes.
"""

from __future__ import annotations

from sqlalchemy import select

from carf_kernel.domain.approval import ClassificationCodes, ExecutiveObserver
from carf_kernel.exceptions import ClassificationCodeNotFoundError
from carf_kernel.models.directory import CustomerTypeSeriesModel, ExecutiveObserverModel
from carf_kernel.selectors.base import BaseSelector


class ReferenceSelector(BaseSelector[ExecutiveObserverModel]):
    """Read-only access to observer and classification reference data."""

    def executive_observers(self) -> list[ExecutiveObserver]:
        rows = self.session.execute(
            select(ExecutiveObserverModel).order_by(ExecutiveObserverModel.identity)
        ).scalars()
        return [row.to_dto() for row in rows]

    def classification_codes(self, request_type: str) -> ClassificationCodes:
        model = self.session.execute(
            select(CustomerTypeSeriesModel).where(
                CustomerTypeSeriesModel.request_type == request_type
            )
        ).scalar_one_or_none()
        if model is None:
            raise ClassificationCodeNotFoundError(request_type)
        return model.to_dto()
