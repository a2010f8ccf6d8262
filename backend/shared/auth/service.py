"""Auth service coordinating registration, password login and ticket checks."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

from shared.auth.login_ticket import issue_login_ticket, verify_login_ticket

if TYPE_CHECKING:
    from shared.auth.models import Account
    from shared.auth.password import PasswordHasher
    from shared.auth.settings import AuthSettings
    from shared.dal.account_repository import AccountRepository

DISPLAY_NAME_MAX_LENGTH = 30

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates at 72 bytes


class AuthError(Exception):
    """Authentication or registration failure."""


class AuthService:
    """Register accounts, check passwords and verify login tickets."""

    def __init__(
        self,
        account_repo: AccountRepository,
        settings: AuthSettings,
        *,
        password_hasher: PasswordHasher,
    ) -> None:
        self._account_repo = account_repo
        self._settings = settings
        self._hasher = password_hasher

    async def register(self, email: str, password: str, display_name: str) -> Account:
        """Create an account with the configured starting balance."""
        email = email.strip()
        _validate_email(email)
        _validate_display_name(display_name)
        _validate_password(password)
        if await self._account_repo.get_by_email(email) is not None:
            raise AuthError(f"Email '{email}' is already registered")

        password_hashed = await self._hasher.hash(password)
        try:
            return await self._account_repo.create_account(
                email=email,
                display_name=display_name,
                password_hash=password_hashed,
                balance=self._settings.starting_balance,
            )
        except ValueError as e:
            raise AuthError(str(e)) from e

    async def login(self, email: str, password: str) -> tuple[Account, str]:
        """Check credentials and return the account with a fresh login ticket."""
        account = await self._account_repo.get_by_email(email.strip())
        if account is None or not await self._hasher.verify(password, account.password_hash):
            raise AuthError("Invalid credentials")
        ticket = issue_login_ticket(
            account.account_id,
            account.email,
            self._settings.login_ticket_secret,
            self._settings.login_ticket_ttl_seconds,
        )
        return account, ticket

    async def verify_ticket(self, token: str) -> Account:
        """Resolve a login ticket to its current account record.

        The returned balance is whatever the store holds right now.
        """
        ticket = verify_login_ticket(
            token,
            self._settings.login_ticket_secret,
            self._settings.login_ticket_ttl_seconds,
        )
        if ticket is None:
            raise AuthError("Invalid or expired login ticket")
        account = await self._account_repo.get_by_id(ticket.account_id)
        if account is None or account.email.lower() != ticket.email.lower():
            raise AuthError("Account no longer exists")
        return account


def _validate_email(email: str) -> None:
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        raise AuthError("Email address is not valid")


def _validate_display_name(display_name: str) -> None:
    """Any script is allowed; control characters and surrounding whitespace are not."""
    if not display_name:
        raise AuthError("Display name must not be empty")
    if len(display_name) > DISPLAY_NAME_MAX_LENGTH:
        raise AuthError(f"Display name must be at most {DISPLAY_NAME_MAX_LENGTH} characters")
    if display_name != display_name.strip():
        raise AuthError("Display name must not start or end with whitespace")
    if any(unicodedata.category(ch) == "Cc" for ch in display_name):
        raise AuthError("Display name must not contain control characters")


def _validate_password(password: str) -> None:
    """Validate password: 8-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise AuthError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")
