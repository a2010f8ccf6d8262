"""Abstract interface for account persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.auth.models import Account


class AccountRepository(ABC):
    """Abstract interface for account persistence.

    Implementations can use SQLite, PostgreSQL, etc.
    """

    @abstractmethod
    async def create_account(
        self,
        email: str,
        display_name: str,
        password_hash: str,
        balance: int,
    ) -> Account: ...

    @abstractmethod
    async def get_by_id(self, account_id: int) -> Account | None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None: ...
