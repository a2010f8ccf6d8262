"""Room lifecycle: creation, joining, move submission, settlement and leaving.

Purely state management; no connection I/O. Callers turn the returned
results into notifications.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from game.logic.rps import Side
from game.logic.rules import rules_for
from game.messaging.types import ErrorCode
from game.session.errors import RoomError
from game.session.room import ROOM_CAPACITY, Room, RoomStatus, new_room_id

if TYPE_CHECKING:
    from game.logic.rps import Move, SettlementOutcome
    from game.logic.rules import GameKind
    from game.session.models import Session
    from game.session.registry import SessionRegistry
    from shared.dal.ledger import Ledger

logger = structlog.get_logger()


@dataclass
class JoinResult:
    room: Room
    started: bool


@dataclass
class MoveResult:
    """Outcome of a move submission.

    ``outcome`` is None while the opponent has not moved yet. Once both have
    moved, ``participants`` holds the two sessions in side order (A, B) and
    ``revealed_moves`` maps account id to move.
    """

    room: Room
    outcome: SettlementOutcome | None = None
    participants: tuple[Session, Session] | None = None
    revealed_moves: dict[int, Move] = field(default_factory=dict)


@dataclass
class LeaveResult:
    room_id: str
    room: Room | None  # None when the room was deleted
    was_playing: bool


class RoomManager:
    """Own every Room and the connection -> room membership index.

    A connection belongs to at most one room. Join, move submission and
    leave run under the room's lock, so events touching one room happen one
    at a time while other rooms proceed. Balance-gated operations refresh the
    requester's balance from the ledger right before checking it, under the
    account lock, and settlement writes both balances to the ledger before
    touching any session cache or room state.

    Lock order is room, then accounts. Nothing takes a room lock while
    holding an account lock.
    """

    def __init__(self, registry: SessionRegistry, ledger: Ledger) -> None:
        self._registry = registry
        self._ledger = ledger
        self._rooms: dict[str, Room] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}  # room_id -> Lock
        self._membership: dict[str, str] = {}  # connection_id -> room_id

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def room_of(self, connection_id: str) -> Room | None:
        room_id = self._membership.get(connection_id)
        return None if room_id is None else self._rooms[room_id]

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def open_rooms(self) -> list[Room]:
        """Rooms waiting for an opponent."""
        return [room for room in self._rooms.values() if room.is_open]

    async def create_room(self, session: Session, game_kind: GameKind) -> Room:
        self._ensure_not_in_room(session)
        stake = rules_for(game_kind).stake
        async with self._registry.hold_accounts(session.account_id):
            balance = await self._registry.refresh_balance(session)
            if balance < stake:
                raise RoomError(ErrorCode.INSUFFICIENT_FUNDS, f"Insufficient points (need {stake})")

            room = Room(
                room_id=new_room_id(),
                game_kind=game_kind,
                stake=stake,
                host_connection_id=session.connection_id,
                members=[session.connection_id],
            )
            self._rooms[room.room_id] = room
            self._room_locks[room.room_id] = asyncio.Lock()
            self._membership[session.connection_id] = room.room_id
        _verify(room)
        logger.info("room created", room_id=room.room_id, game_kind=game_kind, account_id=session.account_id)
        return room

    async def join_room(self, session: Session, room_id: str) -> JoinResult:
        self._ensure_not_in_room(session)
        room_lock = self._room_locks.get(room_id)
        if room_lock is None:
            raise RoomError(ErrorCode.ROOM_NOT_FOUND, "Room does not exist")

        async with room_lock:
            # The room may have been deleted while we waited for its lock.
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomError(ErrorCode.ROOM_NOT_FOUND, "Room does not exist")
            if room.is_full:
                raise RoomError(ErrorCode.ROOM_FULL, "Room is full")
            if room.status != RoomStatus.WAITING:
                raise RoomError(ErrorCode.ROOM_NOT_JOINABLE, "Room is not accepting players")

            async with self._registry.hold_accounts(session.account_id):
                balance = await self._registry.refresh_balance(session)
                if balance < room.stake:
                    raise RoomError(ErrorCode.INSUFFICIENT_FUNDS, f"Insufficient points (need {room.stake})")

                room.members.append(session.connection_id)
                self._membership[session.connection_id] = room.room_id
                started = len(room.members) == ROOM_CAPACITY
                if started:
                    room.status = RoomStatus.PLAYING
            _verify(room)

        logger.info("room joined", room_id=room.room_id, account_id=session.account_id, started=started)
        return JoinResult(room=room, started=started)

    async def submit_move(self, session: Session, room_id: str, move: Move) -> MoveResult:
        """Record a move; resolve and settle once both members have moved.

        A ledger failure during settlement leaves the room exactly as it was
        before this call (the triggering move is not recorded).
        """
        room_lock = self._room_locks.get(room_id)
        if room_lock is None:
            raise RoomError(ErrorCode.ROOM_NOT_FOUND, "Room does not exist")

        async with room_lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomError(ErrorCode.ROOM_NOT_FOUND, "Room does not exist")
            if session.connection_id not in room.members:
                raise RoomError(ErrorCode.NOT_A_MEMBER, "You are not a member of this room")
            if room.status != RoomStatus.PLAYING:
                raise RoomError(ErrorCode.NOT_PLAYING, "Match is not in progress")

            moves = {**room.pending_moves, session.connection_id: move}
            if not all(member in moves for member in room.members):
                room.pending_moves = moves
                _verify(room)
                return MoveResult(room=room)

            return await self._settle(room, moves)

    async def leave(self, connection_id: str) -> LeaveResult | None:
        """Remove a connection from its room. No-op if it is in none.

        An emptied room is deleted. Otherwise the room goes back to
        ``waiting``, pending moves are dropped and the host passes to the
        remaining member.
        """
        room_id = self._membership.get(connection_id)
        if room_id is None:
            return None

        async with self._room_locks[room_id]:
            if self._membership.get(connection_id) != room_id:
                return None
            del self._membership[connection_id]

            room = self._rooms[room_id]
            was_playing = room.status == RoomStatus.PLAYING
            room.members.remove(connection_id)
            room.pending_moves.clear()

            deleted = room.is_empty
            if deleted:
                del self._rooms[room_id]
            else:
                room.status = RoomStatus.WAITING
                if room.host_connection_id == connection_id:
                    room.host_connection_id = room.members[0]
                _verify(room)

        # Drop the lock only after releasing it; waiters re-check the room and find it gone.
        if deleted:
            self._room_locks.pop(room_id, None)
            logger.info("room deleted", room_id=room_id)
            return LeaveResult(room_id=room_id, room=None, was_playing=was_playing)

        logger.info("room member left", room_id=room_id, remaining=len(room.members))
        return LeaveResult(room_id=room_id, room=room, was_playing=was_playing)

    # -- private helpers --

    def _ensure_not_in_room(self, session: Session) -> None:
        if session.connection_id in self._membership:
            raise RoomError(ErrorCode.ALREADY_IN_ROOM, "You must leave your current room first")

    async def _settle(self, room: Room, moves: dict[str, Move]) -> MoveResult:
        """Resolve and write the result. Caller holds the room lock."""
        sessions = [self._registry.lookup_by_connection(member) for member in room.members]
        if sessions[0] is None or sessions[1] is None:
            # Teardown leaves the room before removing the session.
            raise RuntimeError(f"room {room.room_id} has a member without a session")
        session_a, session_b = sessions

        async with self._registry.hold_accounts(session_a.account_id, session_b.account_id):
            balance_a = await self._registry.refresh_balance(session_a)
            balance_b = await self._registry.refresh_balance(session_b)

            rules = rules_for(room.game_kind)
            move_a, move_b = moves[session_a.connection_id], moves[session_b.connection_id]
            outcome = rules.resolver(move_a, move_b, room.stake)

            if not outcome.is_draw:
                new_a = balance_a + outcome.points_change[Side.A]
                new_b = balance_b + outcome.points_change[Side.B]
                await self._ledger.set_balances({session_a.account_id: new_a, session_b.account_id: new_b})
                session_a.cached_balance = new_a
                session_b.cached_balance = new_b
                room.status = RoomStatus.FINISHED

        room.pending_moves.clear()
        _verify(room)
        logger.info(
            "match settled",
            room_id=room.room_id,
            is_draw=outcome.is_draw,
            winner=outcome.winner,
        )
        return MoveResult(
            room=room,
            outcome=outcome,
            participants=(session_a, session_b),
            revealed_moves={session_a.account_id: move_a, session_b.account_id: move_b},
        )


def _verify(room: Room) -> None:
    """Raise RuntimeError if a room invariant is broken."""
    if len(room.members) > ROOM_CAPACITY:
        raise RuntimeError(f"room {room.room_id} has {len(room.members)} members")
    if room.status == RoomStatus.WAITING and room.is_full:
        raise RuntimeError(f"room {room.room_id} is waiting with a full table")
    if room.status == RoomStatus.PLAYING and not room.is_full:
        raise RuntimeError(f"room {room.room_id} is playing without two members")
    if not room.pending_moves.keys() <= set(room.members):
        raise RuntimeError(f"room {room.room_id} holds moves from non-members")
    if room.host_connection_id not in room.members:
        raise RuntimeError(f"room {room.room_id} host is not a member")
