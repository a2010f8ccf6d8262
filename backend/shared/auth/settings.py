"""Auth settings for the HTTP login endpoints and the WebSocket handshake."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

from shared.auth.login_ticket import DEFAULT_TICKET_TTL_SECONDS


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_"}

    # HMAC secret for login tickets -- required, no default.
    # The application fails to start if AUTH_LOGIN_TICKET_SECRET is not set.
    login_ticket_secret: str = Field(min_length=1)

    login_ticket_ttl_seconds: int = Field(default=DEFAULT_TICKET_TTL_SECONDS, ge=1)

    password_hasher: Literal["bcrypt", "simple"] = "bcrypt"

    # Operator password guarding POST /api/register. Registration over HTTP
    # is disabled while unset.
    admin_password: str | None = None

    starting_balance: int = Field(default=1000, ge=0)
