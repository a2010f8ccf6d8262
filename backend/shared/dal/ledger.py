"""Abstract interface for the durable points ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping


class LedgerError(Exception):
    """The durable store could not serve a balance read or write.

    Not recoverable by the caller: the operation in progress must abort
    before touching any in-memory balance or room state.
    """


class Ledger(ABC):
    """Single source of truth for account balances.

    Every in-memory balance is a cache of these values. Writes go straight
    through to the store; there is no buffering.
    """

    @abstractmethod
    async def get_balance(self, account_id: int) -> int: ...

    @abstractmethod
    async def set_balance(self, account_id: int, balance: int) -> None: ...

    @abstractmethod
    async def set_balances(self, balances: Mapping[int, int]) -> None:
        """Write several balances atomically: either all land or none do."""
        ...
