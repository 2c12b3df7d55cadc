"""
Module: carf_kernel.models.directory
Responsibility: ORM persistence for the actor directory, executive
    observers and downstream classification codes.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.
"""

from __future__ import annotations

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carf_kernel.db.base import KeyedBase
from carf_kernel.domain.approval import ActorContext, ClassificationCodes, ExecutiveObserver
from carf_kernel.domain.approvers import normalize_approvers


class UserModel(KeyedBase):
    """Directory entry for a maker or approver."""

    __tablename__ = "users"

    identity: Mapped[str] = mapped_column("userid", String(100), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column("fullname", String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    company: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_approver: Mapped[bool] = mapped_column("approver", Boolean, nullable=False, default=False)
    is_compliance_final_approver: Mapped[bool] = mapped_column(
        "complianceandfinalapprover", Boolean, nullable=False, default=False,
    )

    def __repr__(self) -> str:
        return f"<User {self.identity}>"

    def to_actor(self) -> ActorContext:
        return ActorContext(
            identity=self.identity,
            display_name=self.full_name or self.identity,
            company=self.company or "",
            email=self.email,
            is_designated_approver=bool(self.is_approver),
            is_compliance_final_approver=bool(self.is_compliance_final_approver),
        )


class ExecutiveObserverModel(KeyedBase):
    """Executive copied on approved and submitted requests."""

    __tablename__ = "execemail"

    identity: Mapped[str] = mapped_column("userid", String(100), nullable=False)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    exceptions: Mapped[str | None] = mapped_column("exception", Text, nullable=True)
    all_access: Mapped[bool] = mapped_column("allaccess", Boolean, nullable=False, default=False)

    def to_dto(self) -> ExecutiveObserver:
        return ExecutiveObserver(
            identity=self.identity.strip(),
            company=(self.company or "").strip(),
            exceptions=normalize_approvers(self.exceptions),
            all_access=bool(self.all_access),
        )


class CustomerTypeSeriesModel(KeyedBase):
    """Downstream classification codes per request type."""

    __tablename__ = "customertypeseries"

    request_type: Mapped[str] = mapped_column("carftype", String(100), nullable=False, unique=True)
    bos_type: Mapped[str | None] = mapped_column("bostype", String(100), nullable=True)
    bos_series: Mapped[str | None] = mapped_column("bosseries", String(100), nullable=True)
    bos_group: Mapped[str | None] = mapped_column("bosgroup", String(100), nullable=True)

    def to_dto(self) -> ClassificationCodes:
        return ClassificationCodes(
            request_type=self.request_type,
            bos_type=self.bos_type or "",
            bos_series=self.bos_series or "",
            bos_group=self.bos_group or "",
        )
