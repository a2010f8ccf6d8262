"""Account model for authentication and the points ledger."""

from pydantic import BaseModel, Field


class Account(BaseModel, frozen=True):
    """Registered account as stored in the accounts table.

    ``balance`` is the durable points balance at read time. Live sessions
    keep their own cached copy and must refresh it from the ledger.
    """

    account_id: int
    email: str
    display_name: str
    password_hash: str = Field(repr=False)
    balance: int = 0
