"""
carf_services.transports -- MessagingTransport implementations.

``HttpRelayTransport`` posts ``{"rows": [payload]}`` to the email relay
endpoint (``/api/submittoemail`` or ``/api/submittoexecemail``), which
renders and sends the mail.  ``SmtpTransport`` sends a plain-text mail
directly, resolving the recipient identity to an address first.

Both raise ``NotificationDeliveryError`` for every failure.
"""

from __future__ import annotations

import re
import smtplib
from collections.abc import Callable
from email.message import EmailMessage
from typing import Any

import requests

from carf_kernel.exceptions import NotificationDeliveryError
from carf_kernel.logging_config import get_logger

logger = get_logger("services.transports")

_EMAIL_RE = re.compile(r"^[^@\s\r\n]+@[^@\s\r\n]+\.[^@\s\r\n]+$")

EMAIL_PATH = "/api/submittoemail"
EXEC_EMAIL_PATH = "/api/submittoexecemail"


class HttpRelayTransport:
    """Posts notification rows to the HTTP email relay."""

    channel = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = session or requests.Session()

    def send(self, recipient: str, payload: dict[str, Any]) -> None:
        path = EXEC_EMAIL_PATH if payload.get("alreadyemail") else EMAIL_PATH
        body = {"rows": [dict(payload, approvalValue=recipient)]}
        try:
            response = self._http.post(
                f"{self._base_url}{path}", json=body, timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise NotificationDeliveryError(recipient, f"relay unreachable: {exc}") from exc

        if not response.ok:
            raise NotificationDeliveryError(recipient, f"relay returned HTTP {response.status_code}")
        try:
            result = response.json()
        except ValueError as exc:
            raise NotificationDeliveryError(recipient, "relay returned a non-JSON body") from exc
        if not isinstance(result, dict):
            raise NotificationDeliveryError(recipient, "relay returned a non-object JSON body")
        if not result.get("success"):
            raise NotificationDeliveryError(recipient, result.get("error") or "relay reported failure")


class SmtpTransport:
    """Sends notifications straight to the recipient's mailbox."""

    channel = "smtp"

    def __init__(
        self,
        host: str,
        email_lookup: Callable[[str], str | None],
        port: int = 25,
        sender: str = "noreply@carf.local",
        username: str = "",
        password: str = "",
        starttls: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout
        self._email_lookup = email_lookup

    def send(self, recipient: str, payload: dict[str, Any]) -> None:
        address = self._email_lookup(recipient)
        if not address or not _EMAIL_RE.match(address):
            raise NotificationDeliveryError(recipient, "no valid email address on file")

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = address
        message["Subject"] = _subject(payload)
        message.set_content(_body(payload))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationDeliveryError(recipient, f"smtp error: {exc}") from exc


def _subject(payload: dict[str, Any]) -> str:
    ref = payload.get("refid")
    if payload.get("return") == 0:
        return f"[CARF #{ref}] Returned to maker"
    if payload.get("forfinalapproval"):
        return f"[CARF #{ref}] Approved"
    return f"[CARF #{ref}] Awaiting your approval"


def _body(payload: dict[str, Any]) -> str:
    lines = [
        f"Request: #{payload.get('refid')} ({payload.get('acValue')})",
        f"Customer: {payload.get('customerName')} {payload.get('customerNo')}".rstrip(),
        f"Maker: {payload.get('maker')}",
        f"Business center: {payload.get('bc')}",
        f"Credit terms: {payload.get('creditterms')}  Credit limit: {payload.get('creditlimit')}",
    ]
    if payload.get("remarks"):
        lines.append(f"Remarks: {payload['remarks']}")
    if payload.get("globalUrl"):
        lines.append(f"Open: {payload['globalUrl']}")
    return "\n".join(lines)
