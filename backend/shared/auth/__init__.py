"""Account authentication: password hashing, login tickets and the auth service."""

from shared.auth.login_ticket import LoginTicket, issue_login_ticket, sign_login_ticket, verify_login_ticket
from shared.auth.models import Account
from shared.auth.password import PasswordHasher, get_hasher
from shared.auth.service import AuthError, AuthService
from shared.auth.settings import AuthSettings

__all__ = [
    "Account",
    "AuthError",
    "AuthService",
    "AuthSettings",
    "LoginTicket",
    "PasswordHasher",
    "get_hasher",
    "issue_login_ticket",
    "sign_login_ticket",
    "verify_login_ticket",
]
