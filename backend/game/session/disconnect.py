"""Teardown of a connection's room membership and session."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from game.messaging.types import (
    MemberLeftMessage,
    MemberLeftReason,
    RoomListChangedMessage,
    RosterChangedMessage,
)
from game.session.views import room_list, room_view

if TYPE_CHECKING:
    from game.session.broadcast import Broadcaster
    from game.session.models import Session
    from game.session.registry import SessionRegistry
    from game.session.room_manager import LeaveResult, RoomManager

logger = structlog.get_logger()


class DisconnectCoordinator:
    """Unwind room membership, then the session, and tell everyone else.

    Safe at any protocol state and idempotent: once a connection has been
    torn down, further calls find nothing and send nothing. Nothing is ever
    sent to the departing connection from here.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        room_manager: RoomManager,
        broadcaster: Broadcaster,
    ) -> None:
        self._registry = registry
        self._room_manager = room_manager
        self._broadcaster = broadcaster

    async def disconnect(
        self,
        connection_id: str,
        reason: MemberLeftReason = MemberLeftReason.DISCONNECTED,
    ) -> Session | None:
        """Tear down everything the connection owns. Returns the removed Session, if any."""
        left = await self.leave_room(connection_id, reason)
        session = self._registry.lookup_by_connection(connection_id)
        if session is None:
            return None
        # Wait out any settlement or transfer still writing this account's balance.
        async with self._registry.hold_accounts(session.account_id):
            if self._registry.remove(connection_id) is None:
                return None

        await self._broadcaster.send_to_all(
            RosterChangedMessage(online_roster=self._registry.roster()).model_dump(),
        )
        logger.info(
            "session torn down",
            account_id=session.account_id,
            reason=reason,
            room_id=left.room_id if left else None,
        )
        return session

    async def leave_room(self, connection_id: str, reason: MemberLeftReason) -> LeaveResult | None:
        """Remove the connection from its room and notify the remaining member and the lobby."""
        session = self._registry.lookup_by_connection(connection_id)
        result = await self._room_manager.leave(connection_id)
        if result is None:
            return None

        if result.room is not None and session is not None:
            await self._broadcaster.send_to_room(
                result.room,
                MemberLeftMessage(
                    room=room_view(result.room, self._registry),
                    player=session.to_user_info(),
                    reason=reason,
                ).model_dump(),
            )
        await self._broadcaster.send_to_all(
            RoomListChangedMessage(
                open_rooms=room_list(self._room_manager.open_rooms(), self._registry),
            ).model_dump(),
            exclude_connection_id=connection_id,
        )
        return result
