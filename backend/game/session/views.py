"""Build client-facing view models from rooms and sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.session.types import RoomMemberInfo, RoomView

if TYPE_CHECKING:
    from game.session.registry import SessionRegistry
    from game.session.room import Room


def _member_info(registry: SessionRegistry, connection_id: str | None) -> RoomMemberInfo | None:
    session = None if connection_id is None else registry.lookup_by_connection(connection_id)
    if session is None:
        return None
    return RoomMemberInfo(account_id=session.account_id, display_name=session.display_name)


def room_view(room: Room, registry: SessionRegistry) -> RoomView:
    members = [_member_info(registry, connection_id) for connection_id in room.members]
    return RoomView(
        room_id=room.room_id,
        game_kind=room.game_kind,
        status=room.status,
        stake=room.stake,
        host=_member_info(registry, room.host_connection_id),
        members=[member for member in members if member is not None],
    )


def room_list(rooms: list[Room], registry: SessionRegistry) -> list[RoomView]:
    return [room_view(room, registry) for room in rooms]
