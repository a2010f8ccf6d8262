"""Data access layer: repository and ledger interfaces."""

from shared.dal.account_repository import AccountRepository
from shared.dal.ledger import Ledger, LedgerError

__all__ = [
    "AccountRepository",
    "Ledger",
    "LedgerError",
]
