"""Room model for a two-player wagered match."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from game.logic.rps import Move
from game.logic.rules import GameKind

ROOM_CAPACITY = 2


class RoomStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


def new_room_id() -> str:
    return f"room_{uuid4().hex}"


@dataclass
class Room:
    """A match between at most two connections.

    Holds connection ids only; identities live in the session registry.

    Invariants, checked by the room manager on every mutation:
    - ``len(members) <= 2``
    - ``waiting`` implies fewer than 2 members, ``playing`` exactly 2
    - ``pending_moves`` keys are members
    """

    room_id: str
    game_kind: GameKind
    stake: int
    host_connection_id: str | None = None
    members: list[str] = field(default_factory=list)
    status: RoomStatus = RoomStatus.WAITING
    pending_moves: dict[str, Move] = field(default_factory=dict)  # connection_id -> move

    @property
    def is_full(self) -> bool:
        return len(self.members) >= ROOM_CAPACITY

    @property
    def is_empty(self) -> bool:
        return not self.members

    @property
    def is_open(self) -> bool:
        return self.status == RoomStatus.WAITING and not self.is_full

