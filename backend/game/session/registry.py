"""Registry of authenticated sessions, indexed by connection, account and email."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from game.messaging.types import ErrorCode
from game.session.errors import AuthConflict
from game.session.models import Session

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from game.session.types import UserInfo
    from shared.dal.ledger import Ledger

logger = structlog.get_logger()

DEFAULT_MAX_ONLINE_USERS = 8


class SessionRegistry:
    """Own every live Session. Never touches rooms.

    At most one Session exists per account; ``register`` checks this
    explicitly before the capacity limit.

    Anything that reads a balance and acts on it (login, balance checks,
    settlement, transfers, teardown) holds the account's lock via
    ``hold_accounts`` so that two such operations on one account never
    interleave across a ledger call.
    """

    def __init__(self, ledger: Ledger, max_online_users: int = DEFAULT_MAX_ONLINE_USERS) -> None:
        self._ledger = ledger
        self._max_online_users = max_online_users
        self._by_connection: dict[str, Session] = {}
        self._by_account: dict[int, str] = {}  # account_id -> connection_id
        self._by_email: dict[str, str] = {}  # lowercased email -> connection_id
        # Kept for the process lifetime: a waiter may still hold a reference after logout.
        self._account_locks: dict[int, asyncio.Lock] = {}  # account_id -> Lock

    @property
    def count(self) -> int:
        return len(self._by_connection)

    @property
    def capacity(self) -> int:
        return self._max_online_users

    def register(
        self,
        connection_id: str,
        account_id: int,
        email: str,
        display_name: str,
        balance: int,
    ) -> Session:
        """Create the Session for a freshly authenticated connection.

        Raises AuthConflict(ALREADY_ONLINE) if the account already has a live
        Session, AuthConflict(SERVER_FULL) at capacity. Neither displaces
        existing sessions.
        """
        if connection_id in self._by_connection:
            raise AuthConflict(ErrorCode.ALREADY_LOGGED_IN, "This connection is already logged in")
        if account_id in self._by_account or email.lower() in self._by_email:
            raise AuthConflict(ErrorCode.ALREADY_ONLINE, "This account is already logged in")
        if len(self._by_connection) >= self._max_online_users:
            raise AuthConflict(ErrorCode.SERVER_FULL, "Server is full, try again later")

        session = Session(
            connection_id=connection_id,
            account_id=account_id,
            email=email,
            display_name=display_name,
            cached_balance=balance,
        )
        self._by_connection[connection_id] = session
        self._by_account[account_id] = connection_id
        self._by_email[email.lower()] = connection_id
        logger.info("session registered", account_id=account_id, online=self.count)
        return session

    def lookup_by_connection(self, connection_id: str) -> Session | None:
        return self._by_connection.get(connection_id)

    def lookup_by_email(self, email: str) -> Session | None:
        connection_id = self._by_email.get(email.lower())
        return None if connection_id is None else self._by_connection[connection_id]

    async def refresh_balance(self, session: Session) -> int:
        """Overwrite the cached balance with the ledger's. LedgerError propagates."""
        session.cached_balance = await self._ledger.get_balance(session.account_id)
        return session.cached_balance

    def remove(self, connection_id: str) -> Session | None:
        """Drop the Session for a connection. No-op if there is none."""
        session = self._by_connection.pop(connection_id, None)
        if session is None:
            return None
        self._by_account.pop(session.account_id, None)
        self._by_email.pop(session.email.lower(), None)
        logger.info("session removed", account_id=session.account_id, online=self.count)
        return session

    @contextlib.asynccontextmanager
    async def hold_accounts(self, *account_ids: int) -> AsyncIterator[None]:
        """Hold the locks of ``account_ids``, acquired in ascending id order."""
        async with contextlib.AsyncExitStack() as stack:
            for account_id in sorted(set(account_ids)):
                lock = self._account_locks.setdefault(account_id, asyncio.Lock())
                await stack.enter_async_context(lock)
            yield

    def sessions(self) -> list[Session]:
        return list(self._by_connection.values())

    def roster(self) -> list[UserInfo]:
        return [session.to_user_info() for session in self._by_connection.values()]
