"""
Base class for kernel writers.

Writers ``flush()`` inside the caller's transaction and never commit or
roll back; ``ApprovalWorkflow`` owns every commit.  Reads belong in
selectors.
"""

from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from carf_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(Generic[ModelType]):
    def __init__(self, session: Session):
        self.session = session
