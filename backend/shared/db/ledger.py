"""SQLite-backed points ledger over the accounts table."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.ledger import Ledger, LedgerError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteLedger(Ledger):
    """Write-through ledger storing balances in ``accounts.balance``.

    Every call runs on a worker thread through ``Database.run``. Any sqlite
    failure, and any write addressed to an unknown account, surfaces as
    LedgerError with the transaction rolled back.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def get_balance(self, account_id: int) -> int:
        def work(conn: sqlite3.Connection) -> int:
            row = conn.execute(
                "SELECT balance FROM accounts WHERE id = ?",
                (account_id,),
            ).fetchone()
            if row is None:
                raise LedgerError(f"Unknown account {account_id}")
            return int(row[0])

        try:
            return await self._db.run(work)
        except sqlite3.Error as exc:
            logger.exception("ledger read failed", account_id=account_id)
            raise LedgerError(str(exc)) from exc

    async def set_balance(self, account_id: int, balance: int) -> None:
        await self.set_balances({account_id: balance})

    async def set_balances(self, balances: Mapping[int, int]) -> None:
        items = list(balances.items())

        def work(conn: sqlite3.Connection) -> None:
            try:
                for account_id, balance in items:
                    cursor = conn.execute(
                        "UPDATE accounts SET balance = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                        (balance, account_id),
                    )
                    if cursor.rowcount != 1:
                        raise LedgerError(f"Unknown account {account_id}")
                conn.commit()
            except BaseException:
                conn.rollback()
                raise

        try:
            await self._db.run(work)
        except sqlite3.Error as exc:
            logger.exception("ledger write failed", account_ids=[a for a, _ in items])
            raise LedgerError(str(exc)) from exc
        logger.debug("ledger write", balances=dict(items))
