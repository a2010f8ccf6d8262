"""Session-level event handlers: login, rooms, moves, transfers and teardown."""

from __future__ import annotations

from typing import TYPE_CHECKING

from game.logic.rps import Side
from game.messaging.types import (
    ErrorCode,
    LoggedOutMessage,
    LoginAcceptedMessage,
    MatchContinuesMessage,
    MatchSettledMessage,
    MatchStartedMessage,
    MemberLeftReason,
    MoveAcknowledgedMessage,
    OutcomeView,
    PlayerJoinedMessage,
    PongMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    RoomListChangedMessage,
    RosterChangedMessage,
    TransferAcceptedMessage,
    TransferReceivedMessage,
)
from game.session.broadcast import DEFAULT_SEND_TIMEOUT_SECONDS, Broadcaster
from game.session.disconnect import DisconnectCoordinator
from game.session.errors import NotLoggedIn, RoomError
from game.session.registry import DEFAULT_MAX_ONLINE_USERS, SessionRegistry
from game.session.room_manager import RoomManager
from game.session.transfer import PointsTransfer
from game.session.views import room_list, room_view

if TYPE_CHECKING:
    from game.logic.rps import Move
    from game.logic.rules import GameKind
    from game.messaging.protocol import ConnectionProtocol
    from game.session.models import Session
    from game.session.room_manager import MoveResult
    from game.session.types import RoomView
    from shared.auth.models import Account
    from shared.dal.ledger import Ledger


class SessionManager:
    """Per-event handlers tying the registry, rooms, transfers and fan-out together.

    Handlers raise GameError subclasses for rejections and let LedgerError
    propagate; the router reports both to the initiating connection. Calls for
    one connection must not overlap (MessageRouter runs them one at a time);
    calls for different connections may, since rooms and accounts are locked
    where they are touched.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        max_online_users: int = DEFAULT_MAX_ONLINE_USERS,
        send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
    ) -> None:
        self._ledger = ledger
        self._registry = SessionRegistry(ledger, max_online_users)
        self._room_manager = RoomManager(self._registry, ledger)
        self._transfer = PointsTransfer(self._registry, ledger)
        self._broadcaster = Broadcaster(self._registry, send_timeout)
        self._disconnect = DisconnectCoordinator(self._registry, self._room_manager, self._broadcaster)

    # --- Introspection ---

    @property
    def session_count(self) -> int:
        return self._registry.count

    @property
    def capacity(self) -> int:
        return self._registry.capacity

    @property
    def connection_count(self) -> int:
        return self._broadcaster.connection_count

    @property
    def room_count(self) -> int:
        return self._room_manager.room_count

    @property
    def open_room_count(self) -> int:
        return len(self._room_manager.open_rooms())

    def get_session(self, connection_id: str) -> Session | None:
        return self._registry.lookup_by_connection(connection_id)

    def is_logged_in(self, connection_id: str) -> bool:
        return self._registry.lookup_by_connection(connection_id) is not None

    # --- Connection lifecycle ---

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._broadcaster.register_connection(connection)

    async def handle_disconnect(self, connection_id: str) -> None:
        await self._disconnect.disconnect(connection_id, MemberLeftReason.DISCONNECTED)
        self._broadcaster.unregister_connection(connection_id)

    # --- Handlers ---

    async def login(self, connection: ConnectionProtocol, account: Account) -> Session:
        """Create the Session for a verified account and announce it."""
        async with self._registry.hold_accounts(account.account_id):
            balance = await self._ledger.get_balance(account.account_id)
            session = self._registry.register(
                connection.connection_id,
                account.account_id,
                account.email,
                account.display_name,
                balance,
            )
        await self._broadcaster.send_to(
            connection.connection_id,
            LoginAcceptedMessage(
                user=session.to_user_info(),
                online_roster=self._registry.roster(),
                open_rooms=self._open_room_views(),
            ).model_dump(),
        )
        await self._broadcast_roster(exclude_connection_id=connection.connection_id)
        return session

    async def logout(self, connection: ConnectionProtocol) -> None:
        self._require_session(connection)
        await self._disconnect.disconnect(connection.connection_id, MemberLeftReason.LEFT)
        await self._broadcaster.send_to(connection.connection_id, LoggedOutMessage().model_dump())

    async def create_room(self, connection: ConnectionProtocol, game_kind: GameKind) -> None:
        session = self._require_session(connection)
        room = await self._room_manager.create_room(session, game_kind)
        await self._broadcaster.send_to(
            connection.connection_id,
            RoomCreatedMessage(room=room_view(room, self._registry)).model_dump(),
        )
        await self._broadcast_room_list(exclude_connection_id=connection.connection_id)

    async def join_room(self, connection: ConnectionProtocol, room_id: str) -> None:
        session = self._require_session(connection)
        result = await self._room_manager.join_room(session, room_id)
        view = room_view(result.room, self._registry)
        if result.started:
            await self._broadcaster.send_to_room(result.room, MatchStartedMessage(room=view).model_dump())
        else:
            await self._broadcaster.send_to(connection.connection_id, RoomJoinedMessage(room=view).model_dump())
            await self._broadcaster.send_to_room(
                result.room,
                PlayerJoinedMessage(room=view, player=session.to_user_info()).model_dump(),
                exclude_connection_id=connection.connection_id,
            )
        await self._broadcast_room_list(exclude_connection_id=connection.connection_id)

    async def leave_room(self, connection: ConnectionProtocol) -> None:
        self._require_session(connection)
        result = await self._disconnect.leave_room(connection.connection_id, MemberLeftReason.LEFT)
        if result is None:
            raise RoomError(ErrorCode.NOT_IN_ROOM, "You are not in a room")
        await self._broadcaster.send_to(connection.connection_id, RoomLeftMessage(room_id=result.room_id).model_dump())

    async def submit_move(self, connection: ConnectionProtocol, room_id: str, move: Move) -> None:
        session = self._require_session(connection)
        result = await self._room_manager.submit_move(session, room_id, move)
        if result.outcome is None:
            await self._broadcaster.send_to(
                connection.connection_id,
                MoveAcknowledgedMessage(room_id=room_id).model_dump(),
            )
            return

        await self._broadcaster.send_to_room(result.room, self._settled_message(result).model_dump())
        if result.outcome.is_draw:
            await self._broadcaster.send_to_room(
                result.room,
                MatchContinuesMessage(room=room_view(result.room, self._registry)).model_dump(),
            )
        else:
            await self._broadcast_roster()

    async def transfer(self, connection: ConnectionProtocol, target_email: str, amount: int) -> None:
        session = self._require_session(connection)
        result = await self._transfer.transfer(session, target_email, amount)
        sender_info = result.sender.to_user_info()
        recipient_info = result.recipient.to_user_info()
        await self._broadcaster.send_to(
            result.sender.connection_id,
            TransferAcceptedMessage(updated_self=sender_info, amount=amount, recipient=recipient_info).model_dump(),
        )
        await self._broadcaster.send_to(
            result.recipient.connection_id,
            TransferReceivedMessage(updated_self=recipient_info, amount=amount, sender=sender_info).model_dump(),
        )
        await self._broadcast_roster()

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await self._broadcaster.send_to(connection.connection_id, PongMessage().model_dump())

    # -- private helpers --

    def _require_session(self, connection: ConnectionProtocol) -> Session:
        session = self._registry.lookup_by_connection(connection.connection_id)
        if session is None:
            raise NotLoggedIn()
        return session

    def _open_room_views(self) -> list[RoomView]:
        return room_list(self._room_manager.open_rooms(), self._registry)

    async def _broadcast_roster(self, exclude_connection_id: str | None = None) -> None:
        await self._broadcaster.send_to_all(
            RosterChangedMessage(online_roster=self._registry.roster()).model_dump(),
            exclude_connection_id=exclude_connection_id,
        )

    async def _broadcast_room_list(self, exclude_connection_id: str | None = None) -> None:
        await self._broadcaster.send_to_all(
            RoomListChangedMessage(open_rooms=self._open_room_views()).model_dump(),
            exclude_connection_id=exclude_connection_id,
        )

    def _settled_message(self, result: MoveResult) -> MatchSettledMessage:
        session_a, session_b = result.participants
        outcome = result.outcome
        by_side = {Side.A: session_a.account_id, Side.B: session_b.account_id}
        return MatchSettledMessage(
            room_id=result.room.room_id,
            outcome=OutcomeView(
                winner=None if outcome.winner is None else by_side[outcome.winner],
                loser=None if outcome.loser is None else by_side[outcome.loser],
                is_draw=outcome.is_draw,
                points_change={by_side[side]: delta for side, delta in outcome.points_change.items()},
            ),
            revealed_moves=result.revealed_moves,
            updated_balances=[session_a.to_user_info(), session_b.to_user_info()],
        )
