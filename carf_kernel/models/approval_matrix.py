"""
Module: carf_kernel.models.approval_matrix
Responsibility: ORM persistence for the approval matrix and the
    business-center approver matrix.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - One matrix row per exact (approvaltype, company) pair (unique constraint).
    - Approver columns hold free text (comma-separated or JSON array);
      ``to_dto`` is the single place they are normalized.

Audit relevance:
    Maintained by an administrative surface outside this package; the
    engine only reads these tables.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from carf_kernel.db.base import KeyedBase
from carf_kernel.domain.approval import ApprovalMatrixEntry, BusinessCenterApprover
from carf_kernel.domain.approvers import normalize_approvers, serialize_approvers


class ApprovalMatrixModel(KeyedBase):
    """Approver chain per (request type, company)."""

    __tablename__ = "approvalmatrix"

    __table_args__ = (
        UniqueConstraint("approvaltype", "company", name="uq_approvalmatrix_type_company"),
    )

    request_type: Mapped[str] = mapped_column("approvaltype", String(100), nullable=False)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    tier1_approvers: Mapped[str | None] = mapped_column("firstapprover", Text, nullable=True)
    tier2_approvers: Mapped[str | None] = mapped_column("secondapprover", Text, nullable=True)
    tier3_approvers: Mapped[str | None] = mapped_column("thirdapprover", Text, nullable=True)
    compliance_final_approver: Mapped[bool] = mapped_column(
        "complianceandfinalapprover", Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return f"<ApprovalMatrix {self.request_type}/{self.company}>"

    def to_dto(self) -> ApprovalMatrixEntry:
        return ApprovalMatrixEntry(
            request_type=self.request_type,
            company=self.company,
            tier1=normalize_approvers(self.tier1_approvers),
            tier2=normalize_approvers(self.tier2_approvers),
            tier3=normalize_approvers(self.tier3_approvers),
            compliance_final_approver=bool(self.compliance_final_approver),
        )

    @classmethod
    def from_dto(cls, entry: ApprovalMatrixEntry) -> ApprovalMatrixModel:
        return cls(
            request_type=entry.request_type,
            company=entry.company,
            tier1_approvers=serialize_approvers(entry.tier1),
            tier2_approvers=serialize_approvers(entry.tier2),
            tier3_approvers=serialize_approvers(entry.tier3),
            compliance_final_approver=entry.compliance_final_approver,
        )


class BusinessCenterApproverModel(KeyedBase):
    """Approvers contributed by a business center at submission time."""

    __tablename__ = "bcapprovalmatrix"

    __table_args__ = (
        Index("ix_bcapprovalmatrix_center_company", "approvaltype", "company"),
    )

    business_center: Mapped[str] = mapped_column("approvaltype", String(100), nullable=False)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    first_approver: Mapped[str | None] = mapped_column("firstapprover", Text, nullable=True)
    exception_request_type: Mapped[str | None] = mapped_column("exception", String(100), nullable=True)
    exception_approver: Mapped[str | None] = mapped_column("exceptionapprover", Text, nullable=True)

    def to_dto(self) -> BusinessCenterApprover:
        return BusinessCenterApprover(
            business_center=self.business_center,
            company=self.company,
            first_approver=normalize_approvers(self.first_approver),
            exception_request_type=(self.exception_request_type or "").strip() or None,
            exception_approver=normalize_approvers(self.exception_approver),
        )
