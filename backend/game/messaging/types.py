from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from game.logic.rps import Move
from game.logic.rules import GameKind
from game.session.types import RoomView, UserInfo

_ROOM_ID_FIELD = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")


class ClientMessageType(StrEnum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    SUBMIT_MOVE = "submit_move"
    TRANSFER = "transfer"
    PING = "ping"


class ServerMessageType(StrEnum):
    LOGIN_ACCEPTED = "login_accepted"
    LOGIN_REJECTED = "login_rejected"
    LOGGED_OUT = "logged_out"
    ROSTER_CHANGED = "roster_changed"
    ROOM_LIST_CHANGED = "room_list_changed"
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    ROOM_LEFT = "room_left"
    PLAYER_JOINED = "player_joined"
    MATCH_STARTED = "match_started"
    MOVE_ACKNOWLEDGED = "move_acknowledged"
    MATCH_SETTLED = "match_settled"
    MATCH_CONTINUES = "match_continues"
    MEMBER_LEFT = "member_left"
    OPERATION_REJECTED = "operation_rejected"
    TRANSFER_ACCEPTED = "transfer_accepted"
    TRANSFER_RECEIVED = "transfer_received"
    PONG = "pong"


class ErrorCode(StrEnum):
    # login
    ALREADY_ONLINE = "already_online"
    SERVER_FULL = "server_full"
    INVALID_TICKET = "invalid_ticket"
    ALREADY_LOGGED_IN = "already_logged_in"
    # rooms
    ROOM_NOT_FOUND = "room_not_found"
    ROOM_FULL = "room_full"
    ROOM_NOT_JOINABLE = "room_not_joinable"
    NOT_A_MEMBER = "not_a_member"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    NOT_PLAYING = "not_playing"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    # transfers
    INVALID_AMOUNT = "invalid_amount"
    RECIPIENT_OFFLINE = "recipient_offline"
    INVALID_RECIPIENT = "invalid_recipient"
    # any event
    NOT_LOGGED_IN = "not_logged_in"
    INVALID_MESSAGE = "invalid_message"
    SERVER_ERROR = "server_error"


class MemberLeftReason(StrEnum):
    LEFT = "left"
    DISCONNECTED = "disconnected"


# --- client -> server ---


class LoginMessage(BaseModel):
    type: Literal[ClientMessageType.LOGIN] = ClientMessageType.LOGIN
    ticket: str = Field(min_length=1, max_length=2000)


class LogoutMessage(BaseModel):
    type: Literal[ClientMessageType.LOGOUT] = ClientMessageType.LOGOUT


class CreateRoomMessage(BaseModel):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM
    game_kind: GameKind


class JoinRoomMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = _ROOM_ID_FIELD


class LeaveRoomMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class SubmitMoveMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_MOVE] = ClientMessageType.SUBMIT_MOVE
    room_id: str = _ROOM_ID_FIELD
    move: Move


class TransferMessage(BaseModel):
    type: Literal[ClientMessageType.TRANSFER] = ClientMessageType.TRANSFER
    target: str = Field(min_length=1, max_length=254)
    # Sign is checked by the transfer itself so that it maps to invalid_amount.
    amount: int = Field(strict=True)


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    LoginMessage
    | LogoutMessage
    | CreateRoomMessage
    | JoinRoomMessage
    | LeaveRoomMessage
    | SubmitMoveMessage
    | TransferMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage. Raises ValidationError."""
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class LoginAcceptedMessage(BaseModel):
    type: Literal[ServerMessageType.LOGIN_ACCEPTED] = ServerMessageType.LOGIN_ACCEPTED
    user: UserInfo
    online_roster: list[UserInfo]
    open_rooms: list[RoomView]


class LoginRejectedMessage(BaseModel):
    type: Literal[ServerMessageType.LOGIN_REJECTED] = ServerMessageType.LOGIN_REJECTED
    code: ErrorCode
    message: str


class LoggedOutMessage(BaseModel):
    type: Literal[ServerMessageType.LOGGED_OUT] = ServerMessageType.LOGGED_OUT


class RosterChangedMessage(BaseModel):
    type: Literal[ServerMessageType.ROSTER_CHANGED] = ServerMessageType.ROSTER_CHANGED
    online_roster: list[UserInfo]


class RoomListChangedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_LIST_CHANGED] = ServerMessageType.ROOM_LIST_CHANGED
    open_rooms: list[RoomView]


class RoomCreatedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    room: RoomView


class RoomJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED
    room: RoomView


class RoomLeftMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_LEFT] = ServerMessageType.ROOM_LEFT
    room_id: str


class PlayerJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_JOINED] = ServerMessageType.PLAYER_JOINED
    room: RoomView
    player: UserInfo


class MatchStartedMessage(BaseModel):
    type: Literal[ServerMessageType.MATCH_STARTED] = ServerMessageType.MATCH_STARTED
    room: RoomView


class MoveAcknowledgedMessage(BaseModel):
    type: Literal[ServerMessageType.MOVE_ACKNOWLEDGED] = ServerMessageType.MOVE_ACKNOWLEDGED
    room_id: str


class OutcomeView(BaseModel):
    """Settlement outcome keyed by account id."""

    winner: int | None
    loser: int | None
    is_draw: bool
    points_change: dict[int, int]


class MatchSettledMessage(BaseModel):
    type: Literal[ServerMessageType.MATCH_SETTLED] = ServerMessageType.MATCH_SETTLED
    room_id: str
    outcome: OutcomeView
    revealed_moves: dict[int, Move]
    updated_balances: list[UserInfo]


class MatchContinuesMessage(BaseModel):
    type: Literal[ServerMessageType.MATCH_CONTINUES] = ServerMessageType.MATCH_CONTINUES
    room: RoomView


class MemberLeftMessage(BaseModel):
    type: Literal[ServerMessageType.MEMBER_LEFT] = ServerMessageType.MEMBER_LEFT
    room: RoomView
    player: UserInfo
    reason: MemberLeftReason


class OperationRejectedMessage(BaseModel):
    type: Literal[ServerMessageType.OPERATION_REJECTED] = ServerMessageType.OPERATION_REJECTED
    code: ErrorCode
    message: str


class TransferAcceptedMessage(BaseModel):
    type: Literal[ServerMessageType.TRANSFER_ACCEPTED] = ServerMessageType.TRANSFER_ACCEPTED
    updated_self: UserInfo
    amount: int
    recipient: UserInfo


class TransferReceivedMessage(BaseModel):
    type: Literal[ServerMessageType.TRANSFER_RECEIVED] = ServerMessageType.TRANSFER_RECEIVED
    updated_self: UserInfo
    amount: int
    sender: UserInfo


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG
