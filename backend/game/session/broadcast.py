"""Fan-out of server messages to one connection, a room, or every session."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from game.messaging.protocol import ConnectionProtocol
    from game.session.registry import SessionRegistry
    from game.session.room import Room

logger = structlog.get_logger()

DEFAULT_SEND_TIMEOUT_SECONDS = 5.0
CLOSE_SEND_TIMEOUT = 4008


class Broadcaster:
    """Deliver messages to connections by id.

    A send that fails on a closed socket is dropped; it never aborts the
    handler that is fanning out. A peer that does not take a frame within
    ``send_timeout`` seconds is closed and dropped from fan-out, so one
    stalled socket cannot hold up everyone else's handlers.
    """

    def __init__(self, registry: SessionRegistry, send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS) -> None:
        self._registry = registry
        self._send_timeout = send_timeout
        self._connections: dict[str, ConnectionProtocol] = {}

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def send_to(self, connection_id: str, message: dict[str, Any]) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            return
        try:
            async with asyncio.timeout(self._send_timeout):
                await connection.send_message(message)
        except TimeoutError:
            await self._drop_stalled(connection, message)
        except (RuntimeError, OSError):
            return

    async def send_to_room(
        self,
        room: Room,
        message: dict[str, Any],
        exclude_connection_id: str | None = None,
    ) -> None:
        await self._send_many(room.members, message, exclude_connection_id)

    async def send_to_all(self, message: dict[str, Any], exclude_connection_id: str | None = None) -> None:
        """Send to every authenticated session."""
        await self._send_many(
            [session.connection_id for session in self._registry.sessions()],
            message,
            exclude_connection_id,
        )

    async def _send_many(
        self,
        connection_ids: Iterable[str],
        message: dict[str, Any],
        exclude_connection_id: str | None,
    ) -> None:
        # Snapshot: a send may yield while another task drops a connection.
        for connection_id in list(connection_ids):
            if connection_id != exclude_connection_id:
                await self.send_to(connection_id, message)

    async def _drop_stalled(self, connection: ConnectionProtocol, message: dict[str, Any]) -> None:
        """Stop sending to a peer that stopped reading and ask the transport to close it.

        The connection's own receive loop then runs the normal disconnect.
        """
        self._connections.pop(connection.connection_id, None)
        logger.warning(
            "send timed out, closing connection",
            connection_id=connection.connection_id,
            message_type=message.get("type"),
            timeout=self._send_timeout,
        )
        with contextlib.suppress(RuntimeError, OSError):
            async with asyncio.timeout(self._send_timeout):
                await connection.close(code=CLOSE_SEND_TIMEOUT, reason="send_timeout")
