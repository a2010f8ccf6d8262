"""
Pydantic view models the session layer sends to clients.
"""

from pydantic import BaseModel

from game.logic.rules import GameKind
from game.session.room import RoomStatus


class UserInfo(BaseModel):
    """Public identity of an online account with its cached balance."""

    account_id: int
    email: str
    display_name: str
    balance: int


class RoomMemberInfo(BaseModel):
    account_id: int
    display_name: str


class RoomView(BaseModel):
    """Room snapshot for lobby lists and room notifications."""

    room_id: str
    game_kind: GameKind
    status: RoomStatus
    stake: int
    host: RoomMemberInfo | None
    members: list[RoomMemberInfo]
