"""Peer-to-peer points transfer between two online accounts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from game.messaging.types import ErrorCode
from game.session.errors import TransferError

if TYPE_CHECKING:
    from game.session.models import Session
    from game.session.registry import SessionRegistry
    from shared.dal.ledger import Ledger

logger = structlog.get_logger()


@dataclass
class TransferResult:
    sender: Session
    recipient: Session
    amount: int


class PointsTransfer:
    """Move points from one live session to another.

    Both accounts are locked (in id order) for the whole read-check-write,
    both balances are re-read from the ledger, and both new balances are
    written in one batch before either cache changes.
    """

    def __init__(self, registry: SessionRegistry, ledger: Ledger) -> None:
        self._registry = registry
        self._ledger = ledger

    async def transfer(self, sender: Session, target_email: str, amount: int) -> TransferResult:
        if amount <= 0:
            raise TransferError(ErrorCode.INVALID_AMOUNT, "Amount must be at least 1")

        target = self._registry.lookup_by_email(target_email)
        account_ids = [sender.account_id] if target is None else [sender.account_id, target.account_id]
        async with self._registry.hold_accounts(*account_ids):
            sender_balance = await self._registry.refresh_balance(sender)
            if sender_balance < amount:
                raise TransferError(ErrorCode.INSUFFICIENT_FUNDS, "Insufficient points")

            # The recipient may have logged out while we waited for the locks.
            recipient = self._registry.lookup_by_email(target_email)
            if recipient is None or target is None or recipient.account_id != target.account_id:
                raise TransferError(ErrorCode.RECIPIENT_OFFLINE, "Recipient is not online")
            if recipient.account_id == sender.account_id:
                raise TransferError(ErrorCode.INVALID_RECIPIENT, "Cannot transfer points to yourself")

            recipient_balance = await self._registry.refresh_balance(recipient)
            new_sender = sender_balance - amount
            new_recipient = recipient_balance + amount
            await self._ledger.set_balances({sender.account_id: new_sender, recipient.account_id: new_recipient})
            sender.cached_balance = new_sender
            recipient.cached_balance = new_recipient

        logger.info(
            "points transferred",
            account_id=sender.account_id,
            recipient_id=recipient.account_id,
            amount=amount,
        )
        return TransferResult(sender=sender, recipient=recipient, amount=amount)
