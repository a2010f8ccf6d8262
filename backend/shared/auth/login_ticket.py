"""HMAC-SHA256 signed login tickets.

``POST /api/login`` checks the password once and hands the client a ticket.
The client presents the ticket in the WebSocket ``login`` event and the game
server verifies it locally with the shared secret; the password never
travels over the socket.

Token format: base64url(json_payload_bytes).base64url(hmac_sha256_signature)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import math
import time
from dataclasses import asdict, dataclass

import structlog

logger = structlog.get_logger()

DEFAULT_TICKET_TTL_SECONDS = 3600
CLOCK_SKEW_SECONDS = 60


@dataclass(frozen=True)
class LoginTicket:
    """Claims carried inside a signed login ticket."""

    account_id: int
    email: str
    issued_at: float
    expires_at: float


def issue_login_ticket(
    account_id: int,
    email: str,
    secret: str,
    ttl_seconds: int = DEFAULT_TICKET_TTL_SECONDS,
) -> str:
    now = time.time()
    ticket = LoginTicket(account_id=account_id, email=email, issued_at=now, expires_at=now + ttl_seconds)
    return sign_login_ticket(ticket, secret)


def sign_login_ticket(ticket: LoginTicket, secret: str) -> str:
    payload = json.dumps(asdict(ticket), sort_keys=True).encode()
    sig = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return f"{_b64encode(payload)}.{_b64encode(sig)}"


def verify_login_ticket(
    token: str,
    secret: str,
    max_ttl_seconds: int = DEFAULT_TICKET_TTL_SECONDS,
) -> LoginTicket | None:
    """Check signature, shape and validity window. Returns None on any failure."""
    payload_part, sep, sig_part = token.partition(".")
    if not sep or "." in sig_part:
        return None

    try:
        payload = base64.urlsafe_b64decode(payload_part)
        provided_sig = base64.urlsafe_b64decode(sig_part)
    except (ValueError, binascii.Error):
        return None

    expected_sig = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    if not hmac.compare_digest(provided_sig, expected_sig):
        logger.debug("login ticket signature mismatch")
        return None

    try:
        ticket = LoginTicket(**json.loads(payload))
    except (UnicodeDecodeError, json.JSONDecodeError, TypeError):
        logger.debug("login ticket malformed payload")
        return None

    if not isinstance(ticket.account_id, int) or isinstance(ticket.account_id, bool):
        logger.debug("login ticket bad account id")
        return None

    reason = _window_violation(ticket, time.time(), max_ttl_seconds)
    if reason is not None:
        logger.debug("login ticket rejected", reason=reason)
        return None
    return ticket


def _window_violation(ticket: LoginTicket, now: float, max_ttl_seconds: int) -> str | None:
    for value in (ticket.issued_at, ticket.expires_at):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            return "non-finite timestamp"
    if ticket.issued_at > now + CLOCK_SKEW_SECONDS:
        return "issued in the future"
    if ticket.expires_at <= ticket.issued_at:
        return "expires before issue"
    if ticket.expires_at - ticket.issued_at > max_ttl_seconds + CLOCK_SKEW_SECONDS:
        return "lifetime too long"
    if now > ticket.expires_at:
        return "expired"
    return None


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode()
