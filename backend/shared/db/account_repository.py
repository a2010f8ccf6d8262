"""SQLite-backed account repository."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

from shared.auth.models import Account
from shared.dal.account_repository import AccountRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

_SELECT_COLUMNS = "SELECT id, email, display_name, password_hash, balance FROM accounts"


def _row_to_account(row: tuple) -> Account:
    return Account(
        account_id=row[0],
        email=row[1],
        display_name=row[2],
        password_hash=row[3],
        balance=row[4],
    )


class SqliteAccountRepository(AccountRepository):
    """SQLite implementation of AccountRepository.

    Uses a single INSERT to avoid race windows between existence checks and
    inserts. Relies on the unique indexes and maps IntegrityError to a domain
    ValueError.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def create_account(
        self,
        email: str,
        display_name: str,
        password_hash: str,
        balance: int,
    ) -> Account:
        """Insert an account. Raises ValueError on duplicate email or display name."""

        def work(conn: sqlite3.Connection) -> int:
            try:
                cursor = conn.execute(
                    "INSERT INTO accounts (email, display_name, password_hash, balance) VALUES (?, ?, ?, ?)",
                    (email, display_name, password_hash, balance),
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                raise
            return int(cursor.lastrowid)

        try:
            account_id = await self._db.run(work)
        except sqlite3.IntegrityError as exc:
            error_msg = str(exc).lower()
            if "accounts.email" in error_msg or "idx_accounts_email" in error_msg:
                raise ValueError(f"Email '{email}' already registered") from exc
            if "accounts.display_name" in error_msg or "idx_accounts_display_name" in error_msg:
                raise ValueError(f"Display name '{display_name}' already taken") from exc
            raise ValueError(str(exc)) from exc  # pragma: no cover

        return Account(
            account_id=account_id,
            email=email,
            display_name=display_name,
            password_hash=password_hash,
            balance=balance,
        )

    async def get_by_id(self, account_id: int) -> Account | None:
        row = await self._db.run(
            lambda conn: conn.execute(f"{_SELECT_COLUMNS} WHERE id = ?", (account_id,)).fetchone(),
        )
        return None if row is None else _row_to_account(row)

    async def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive)."""
        row = await self._db.run(
            lambda conn: conn.execute(
                f"{_SELECT_COLUMNS} WHERE email = ? COLLATE NOCASE",
                (email,),
            ).fetchone(),
        )
        return None if row is None else _row_to_account(row)
