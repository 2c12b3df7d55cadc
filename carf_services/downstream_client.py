"""
carf_services.downstream_client -- HTTP client for the master-data system.

Posts ``{"rows": [record]}`` to ``/api/submittobos`` with an
``Idempotency-Key`` header and turns every failure into
``DownstreamSubmissionError``.  No automatic retry.
"""

from __future__ import annotations

from typing import Any

import requests

from carf_kernel.domain.ports import SubmissionReceipt
from carf_kernel.exceptions import DownstreamSubmissionError

SUBMIT_PATH = "/api/submittobos"


class HttpDownstreamClient:
    """DownstreamClient over HTTP."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = session or requests.Session()

    def submit_record(
        self, payload: dict[str, Any], idempotency_key: str,
    ) -> SubmissionReceipt:
        row_ref = payload.get("#")
        try:
            response = self._http.post(
                f"{self._base_url}{SUBMIT_PATH}",
                json={"rows": [payload]},
                headers={"Idempotency-Key": idempotency_key},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise DownstreamSubmissionError(row_ref, f"downstream unreachable: {exc}") from exc

        try:
            result = response.json()
        except ValueError:
            result = {}

        if not response.ok:
            error = result.get("error") if isinstance(result, dict) else None
            raise DownstreamSubmissionError(
                row_ref,
                error or f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not isinstance(result, dict):
            raise DownstreamSubmissionError(
                row_ref, "downstream returned a non-object JSON body", status_code=response.status_code,
            )

        return SubmissionReceipt(
            row_ref=row_ref,
            success=bool(result.get("success")),
            idempotency_key=idempotency_key,
            reference=result.get("reference"),
        )
