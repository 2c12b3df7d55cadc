"""
carf_engines.payloads -- Wire payloads for the messaging relay and the
downstream master-data system.

Architecture position:
    Engines -- pure mapping, zero I/O.  Field names are the contract the
    relay and the downstream system read; do not rename them.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from carf_kernel.domain.approval import ClassificationCodes, CustomerRequest


def parse_credit_limit(raw: str | None) -> int | float:
    """Credit limit as a JSON number; thousands separators are dropped.

    Raises:
        ValueError: If the value is not a finite number.
    """
    text = (raw or "").replace(",", "").strip()
    if not text:
        return 0
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"Credit limit is not numeric: {raw!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Credit limit is not a finite number: {raw!r}")
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def build_notification_payload(
    request: CustomerRequest,
    recipient: str,
    *,
    for_final_approval: bool,
    is_return: bool,
    remarks: str,
    already_emailed: bool = False,
    global_url: str = "",
) -> dict[str, Any]:
    """Relay message for one recipient.

    ``return`` is 0 for a return-to-maker message and 1 otherwise.
    """
    d = request.details
    return {
        "refid": request.row_ref,
        "approvalValue": recipient,
        "customerNo": d.customer_number,
        "customerName": d.sold_to_party,
        "acValue": request.request_type,
        "globalUrl": global_url,
        "alreadyemail": 1 if already_emailed else 0,
        "forfinalapproval": 1 if for_final_approval else 0,
        "boscode": "",
        "bc": d.bu_center,
        "maker": request.maker,
        "requestfor": d.request_for,
        "salestype": d.sale_type,
        "soldtoparty": d.sold_to_party,
        "shiptoparty": d.ship_to_party,
        "tin": d.tin,
        "biladdress": d.bill_address,
        "deladdress": d.delivery_address,
        "creditterms": d.terms,
        "creditlimit": d.credit_limit,
        "executive": d.bc_name,
        "gm": d.sao_name,
        "sao": d.sup_name,
        "return": 0 if is_return else 1,
        "remarks": remarks,
    }


def build_downstream_record(
    request: CustomerRequest,
    codes: ClassificationCodes,
) -> dict[str, Any]:
    """Downstream master-data record for an APPROVED request."""
    d = request.details
    return {
        "#": request.row_ref,
        "requestfor": d.request_for,
        "boscode": d.bos_code,
        "soldtoparty": d.sold_to_party,
        "tin": d.tin,
        "shiptoparty": d.ship_to_party,
        "storecode": d.store_code,
        "busstyle": d.bus_style,
        "saletype": d.sale_type,
        "deladdress": d.delivery_address,
        "billaddress": d.bill_address,
        "contactperson": d.contact_person,
        "contactnumber": d.contact_number,
        "email": d.email,
        "bucenter": d.bu_center,
        "region": d.region,
        "district": d.district,
        "datestart": d.date_start,
        "terms": d.terms,
        "creditlimit": parse_credit_limit(d.credit_limit),
        "bccode": d.bc_code,
        "bcname": d.bc_name,
        "saocode": d.sao_code,
        "saoname": d.sao_name,
        "supcode": d.sup_code,
        "supname": d.sup_name,
        "opscode": d.ops_code,
        "opsname": d.ops_name,
        "custtype": request.request_type,
        "approvestatus": request.status.value,
        "type": d.type,
        "position": d.position,
        "isuploaded": 0,
        "refid": request.row_ref,
        "boscusttype": codes.bos_type,
        "series": codes.bos_series,
        "group": codes.bos_group,
        "firstname": d.first_name,
        "middlename": d.middle_name,
        "lastname": d.last_name,
        "ismother": d.is_mother,
        "salesinfosalesorg": d.sales_org,
        "salesinfodistributionchannel": d.distribution_channel,
        "salesinfodivision": d.division,
        "salesterritory": d.sales_territory,
    }
