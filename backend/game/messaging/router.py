"""Dispatch of decoded client messages to session handlers, with per-connection ordering."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from game.messaging.types import (
    CreateRoomMessage,
    ErrorCode,
    JoinRoomMessage,
    LeaveRoomMessage,
    LoginMessage,
    LoginRejectedMessage,
    LogoutMessage,
    OperationRejectedMessage,
    PingMessage,
    SubmitMoveMessage,
    TransferMessage,
    parse_client_message,
)
from game.session.errors import AuthConflict, GameError
from shared.auth.service import AuthError
from shared.dal.ledger import LedgerError

if TYPE_CHECKING:
    from game.messaging.protocol import ConnectionProtocol
    from game.session.manager import SessionManager
    from shared.auth.service import AuthService

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to session handlers.

    Events from one connection, disconnect included, run one at a time
    under that connection's lock, so each completes before the next starts
    even when a ledger call suspends it. Different connections run
    concurrently; the session layer locks the rooms and accounts they share.
    Rejections and failures are reported to the initiating connection only.
    """

    def __init__(self, session_manager: SessionManager, auth_service: AuthService) -> None:
        self._session_manager = session_manager
        self._auth_service = auth_service
        self._connection_locks: dict[str, asyncio.Lock] = {}  # connection_id -> Lock

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._connection_locks.setdefault(connection.connection_id, asyncio.Lock())
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        async with self._lock_for(connection):
            await self._session_manager.handle_disconnect(connection.connection_id)
        self._connection_locks.pop(connection.connection_id, None)

    async def handle_invalid_frame(self, connection: ConnectionProtocol, error: Exception) -> None:
        logger.warning("undecodable frame", error=str(error))
        await self._reply(connection, OperationRejectedMessage(code=ErrorCode.INVALID_MESSAGE, message=str(error)))

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except ValidationError as e:
            logger.warning("invalid message", error_count=e.error_count())
            await self._reply(
                connection,
                OperationRejectedMessage(code=ErrorCode.INVALID_MESSAGE, message=_summarize(e)),
            )
            return

        async with self._lock_for(connection):
            try:
                await self._dispatch(connection, message)
            except AuthConflict as e:
                logger.info("login rejected", code=e.code)
                await self._reply(connection, LoginRejectedMessage(code=e.code, message=e.message))
            except GameError as e:
                logger.info("operation rejected", code=e.code, message_type=message.type)
                await self._reply(connection, OperationRejectedMessage(code=e.code, message=e.message))
            except LedgerError:
                logger.exception("ledger failure", message_type=message.type)
                await self._reply(
                    connection,
                    OperationRejectedMessage(code=ErrorCode.SERVER_ERROR, message="Points store unavailable"),
                )
            except Exception:
                logger.exception("handler failed", message_type=message.type)
                await self._reply(
                    connection,
                    OperationRejectedMessage(code=ErrorCode.SERVER_ERROR, message="Internal server error"),
                )

    def _lock_for(self, connection: ConnectionProtocol) -> asyncio.Lock:
        return self._connection_locks.setdefault(connection.connection_id, asyncio.Lock())

    async def _dispatch(self, connection: ConnectionProtocol, message: BaseModel) -> None:
        manager = self._session_manager
        if isinstance(message, LoginMessage):
            await self._handle_login(connection, message)
        elif isinstance(message, LogoutMessage):
            await manager.logout(connection)
            structlog.contextvars.unbind_contextvars("account_id")
        elif isinstance(message, CreateRoomMessage):
            await manager.create_room(connection, message.game_kind)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.room_id)
        elif isinstance(message, LeaveRoomMessage):
            await manager.leave_room(connection)
        elif isinstance(message, SubmitMoveMessage):
            await manager.submit_move(connection, message.room_id, message.move)
        elif isinstance(message, TransferMessage):
            await manager.transfer(connection, message.target, message.amount)
        elif isinstance(message, PingMessage):
            await manager.handle_ping(connection)

    async def _handle_login(self, connection: ConnectionProtocol, message: LoginMessage) -> None:
        """Verify the login ticket, then create the session."""
        if self._session_manager.is_logged_in(connection.connection_id):
            raise AuthConflict(ErrorCode.ALREADY_LOGGED_IN, "This connection is already logged in")
        try:
            account = await self._auth_service.verify_ticket(message.ticket)
        except AuthError as e:
            raise AuthConflict(ErrorCode.INVALID_TICKET, str(e)) from e
        await self._session_manager.login(connection, account)
        structlog.contextvars.bind_contextvars(account_id=account.account_id)

    @staticmethod
    async def _reply(connection: ConnectionProtocol, message: BaseModel) -> None:
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(message.model_dump())


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "message"
    return f"{location}: {first['msg']}"
