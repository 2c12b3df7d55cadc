"""
Module: carf_kernel.models.customer_request
Responsibility: ORM persistence for customer activation requests.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - ``row_ref`` is the immutable row reference ('#'), assigned on insert.
    - ``version`` is the optimistic-concurrency token; every workflow save
      is a conditional UPDATE on (row_ref, version) and increments it.
    - Tier approver/date pairs are written together by ``patch_columns``.
    - Approver sets are stored comma-joined and parsed only in ``to_dto``.

Failure modes:
    - CheckConstraint violation on an unknown approvestatus value.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from carf_kernel.db.base import Base, RowRefType, TrackedMixin
from carf_kernel.domain.approval import (
    CustomerDetails,
    CustomerRequest,
    RequestPatch,
    RequestStatus,
    Tier,
    TierStamp,
)
from carf_kernel.domain.approvers import normalize_approvers, serialize_approvers

# Domain tier -> (approver column, date column, name column) attribute names.
TIER_COLUMNS: dict[Tier, tuple[str, str, str]] = {
    Tier.FIRST: ("initial_approver", "initial_approve_date", "first_approver_name"),
    Tier.SECOND: ("second_approver", "second_approver_date", "second_approver_name"),
    Tier.THIRD: ("third_approver", "third_approver_date", "final_approver_name"),
}

_STATUS_VALUES = ", ".join(f"'{s.value}'" for s in RequestStatus)


class CustomerRequestModel(TrackedMixin, Base):
    """Persistent customer activation request."""

    __tablename__ = "customerrequests"

    __table_args__ = (
        CheckConstraint(
            f"approvestatus IN ({_STATUS_VALUES})",
            name="ck_customerrequests_valid_status",
        ),
        Index("ix_customerrequests_status", "approvestatus"),
        Index("ix_customerrequests_maker", "maker"),
    )

    row_ref: Mapped[int] = mapped_column(RowRefType, primary_key=True, autoincrement=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    request_type: Mapped[str] = mapped_column("custtype", String(100), nullable=False)
    company: Mapped[str] = mapped_column(String(100), nullable=False)
    maker: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(
        "approvestatus", String(30), nullable=False, default=RequestStatus.DRAFT.value,
    )
    next_approver: Mapped[str | None] = mapped_column("nextapprover", Text, nullable=True)
    final_approver: Mapped[str | None] = mapped_column("finalapprover", Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    initial_approver: Mapped[str | None] = mapped_column("initialapprover", String(100), nullable=True)
    initial_approve_date: Mapped[datetime | None] = mapped_column("initialapprovedate", nullable=True)
    first_approver_name: Mapped[str | None] = mapped_column("firstapprovername", String(200), nullable=True)
    second_approver: Mapped[str | None] = mapped_column("secondapprover", String(100), nullable=True)
    second_approver_date: Mapped[datetime | None] = mapped_column("secondapproverdate", nullable=True)
    second_approver_name: Mapped[str | None] = mapped_column("secondapprovername", String(200), nullable=True)
    third_approver: Mapped[str | None] = mapped_column("thirdapprover", String(100), nullable=True)
    third_approver_date: Mapped[datetime | None] = mapped_column("thirdapproverdate", nullable=True)
    final_approver_name: Mapped[str | None] = mapped_column("finalapprovername", String(200), nullable=True)

    # Business fields
    request_for: Mapped[str | None] = mapped_column("requestfor", String(100), nullable=True)
    bos_code: Mapped[str | None] = mapped_column("boscode", String(100), nullable=True)
    sold_to_party: Mapped[str | None] = mapped_column("soldtoparty", String(200), nullable=True)
    ship_to_party: Mapped[str | None] = mapped_column("shiptoparty", String(200), nullable=True)
    tin: Mapped[str | None] = mapped_column(String(50), nullable=True)
    store_code: Mapped[str | None] = mapped_column("storecode", String(100), nullable=True)
    bus_style: Mapped[str | None] = mapped_column("busstyle", String(200), nullable=True)
    sale_type: Mapped[str | None] = mapped_column("saletype", String(100), nullable=True)
    delivery_address: Mapped[str | None] = mapped_column("deladdress", Text, nullable=True)
    bill_address: Mapped[str | None] = mapped_column("billaddress", Text, nullable=True)
    contact_person: Mapped[str | None] = mapped_column("contactperson", String(200), nullable=True)
    contact_number: Mapped[str | None] = mapped_column("contactnumber", String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bu_center: Mapped[str | None] = mapped_column("bucenter", String(100), nullable=True)
    region: Mapped[str | None] = mapped_column(String(100), nullable=True)
    district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date_start: Mapped[str | None] = mapped_column("datestart", String(30), nullable=True)
    terms: Mapped[str | None] = mapped_column(String(100), nullable=True)
    credit_limit: Mapped[str | None] = mapped_column("creditlimit", String(50), nullable=True)
    bc_code: Mapped[str | None] = mapped_column("bccode", String(100), nullable=True)
    bc_name: Mapped[str | None] = mapped_column("bcname", String(200), nullable=True)
    sao_code: Mapped[str | None] = mapped_column("saocode", String(100), nullable=True)
    sao_name: Mapped[str | None] = mapped_column("saoname", String(200), nullable=True)
    sup_code: Mapped[str | None] = mapped_column("supcode", String(100), nullable=True)
    sup_name: Mapped[str | None] = mapped_column("supname", String(200), nullable=True)
    ops_code: Mapped[str | None] = mapped_column("opscode", String(100), nullable=True)
    ops_name: Mapped[str | None] = mapped_column("opsname", String(200), nullable=True)
    type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    first_name: Mapped[str | None] = mapped_column("firstname", String(100), nullable=True)
    middle_name: Mapped[str | None] = mapped_column("middlename", String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column("lastname", String(100), nullable=True)
    is_mother: Mapped[str | None] = mapped_column("ismother", String(50), nullable=True)
    sales_org: Mapped[str | None] = mapped_column("salesinfosalesorg", String(100), nullable=True)
    distribution_channel: Mapped[str | None] = mapped_column(
        "salesinfodistributionchannel", String(100), nullable=True,
    )
    division: Mapped[str | None] = mapped_column("salesinfodivision", String(100), nullable=True)
    sales_territory: Mapped[str | None] = mapped_column("salesterritory", String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<CustomerRequest #{self.row_ref} {self.request_type}/{self.company} status={self.status}>"

    def _stamp(self, tier: Tier) -> TierStamp:
        approver_col, date_col, name_col = TIER_COLUMNS[tier]
        return TierStamp(
            approver=getattr(self, approver_col),
            approve_date=getattr(self, date_col),
            approver_name=getattr(self, name_col),
        )

    def to_dto(self) -> CustomerRequest:
        """Convert ORM model to frozen domain DTO."""
        details = CustomerDetails(
            **{f.name: getattr(self, f.name) or "" for f in fields(CustomerDetails)}
        )
        return CustomerRequest(
            row_ref=self.row_ref,
            request_type=self.request_type,
            company=self.company,
            maker=self.maker,
            status=RequestStatus.parse(self.status),
            next_approver=normalize_approvers(self.next_approver),
            final_approver=normalize_approvers(self.final_approver),
            tier1=self._stamp(Tier.FIRST),
            tier2=self._stamp(Tier.SECOND),
            tier3=self._stamp(Tier.THIRD),
            remarks=self.remarks,
            version=self.version,
            created_at=self.created_at,
            details=details,
        )

    @classmethod
    def from_dto(cls, request: CustomerRequest) -> CustomerRequestModel:
        """Build a new row from a DTO; ``row_ref`` is assigned on insert."""
        model = cls(
            request_type=request.request_type,
            company=request.company,
            maker=request.maker,
            status=request.status.value,
            next_approver=serialize_approvers(request.next_approver) or None,
            final_approver=serialize_approvers(request.final_approver) or None,
            remarks=request.remarks,
            version=1,
            **{f.name: getattr(request.details, f.name) or None for f in fields(CustomerDetails)},
        )
        if request.row_ref is not None:
            model.row_ref = request.row_ref
        for tier in Tier:
            for attr, value in _stamp_columns(tier, request.stamp_for(tier)).items():
                setattr(model, attr, value)
        return model


def _stamp_columns(tier: Tier, stamp: TierStamp) -> dict[str, Any]:
    approver_col, date_col, name_col = TIER_COLUMNS[tier]
    if not stamp.stamped:
        return {approver_col: None, date_col: None, name_col: None}
    return {
        approver_col: stamp.approver,
        date_col: stamp.approve_date,
        name_col: stamp.approver_name,
    }


def patch_columns(patch: RequestPatch) -> dict[str, Any]:
    """Column values for a partial update, keyed by ORM attribute name.

    Approver sets are serialized here and nowhere else.  A tier stamp that
    is not fully stamped clears all three tier columns together.
    """
    values: dict[str, Any] = {}
    if patch.status is not None:
        values["status"] = patch.status.value
    if patch.next_approver is not None:
        values["next_approver"] = serialize_approvers(patch.next_approver) or None
    if patch.final_approver is not None:
        values["final_approver"] = serialize_approvers(patch.final_approver) or None
    for tier, stamp in patch.stamps:
        values.update(_stamp_columns(tier, stamp))
    if patch.clear_remarks:
        values["remarks"] = None
    if patch.remarks is not None:
        values["remarks"] = patch.remarks
    return values
