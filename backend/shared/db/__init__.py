"""SQLite database layer: connection management, ledger and account storage."""

from shared.db.account_repository import SqliteAccountRepository
from shared.db.connection import Database
from shared.db.ledger import SqliteLedger

__all__ = [
    "Database",
    "SqliteAccountRepository",
    "SqliteLedger",
]
