"""JSON auth endpoints: password login (issues a login ticket) and operator registration."""

from __future__ import annotations

import hmac
import json
from typing import TYPE_CHECKING

import structlog
from starlette.responses import JSONResponse

from shared.auth.service import AuthError

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.auth.models import Account
    from shared.auth.service import AuthService
    from shared.auth.settings import AuthSettings

logger = structlog.get_logger()

_MAX_REQUEST_BODY_SIZE = 4096


async def _parse_json_body(request: Request) -> dict | None:
    """Parse a small JSON object body. Return None on failure."""
    raw_body = await request.body()
    if len(raw_body) > _MAX_REQUEST_BODY_SIZE:
        return None
    try:
        body = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(body, dict):
        return None
    return body


def _field(body: dict, name: str) -> str:
    value = body.get(name)
    return value if isinstance(value, str) else ""


def _account_payload(account: Account) -> dict:
    return {
        "account_id": account.account_id,
        "email": account.email,
        "display_name": account.display_name,
        "balance": account.balance,
    }


async def login(request: Request) -> JSONResponse:
    """POST /api/login - check credentials, return the account and a login ticket."""
    auth_service: AuthService = request.app.state.auth_service
    body = await _parse_json_body(request)
    if body is None:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    email, password = _field(body, "email"), _field(body, "password")
    if not email or not password:
        return JSONResponse({"error": "Email and password are required"}, status_code=400)

    try:
        account, ticket = await auth_service.login(email, password)
    except AuthError as e:
        return JSONResponse({"error": str(e)}, status_code=401)

    logger.info("password login", account_id=account.account_id)
    return JSONResponse({"account": _account_payload(account), "ticket": ticket})


async def register(request: Request) -> JSONResponse:
    """POST /api/register - create an account; requires the operator password."""
    auth_service: AuthService = request.app.state.auth_service
    auth_settings: AuthSettings = request.app.state.auth_settings
    body = await _parse_json_body(request)
    if body is None:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    expected = auth_settings.admin_password
    provided = _field(body, "admin_password")
    if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
        logger.warning("registration refused: bad admin password")
        return JSONResponse({"error": "Registration requires the admin password"}, status_code=403)

    email = _field(body, "email")
    password = _field(body, "password")
    display_name = _field(body, "display_name")
    if not email or not password or not display_name:
        return JSONResponse({"error": "Email, password and display name are required"}, status_code=400)

    try:
        account = await auth_service.register(email, password, display_name)
    except AuthError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    logger.info("account registered", account_id=account.account_id)
    return JSONResponse({"account": _account_payload(account)}, status_code=201)
