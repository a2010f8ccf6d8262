"""Abstract client connection carrying MessagePack frames."""

from abc import ABC, abstractmethod
from typing import Any

from game.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client transport endpoint.

    Session and room code only ever talk to this interface, so handlers run
    unchanged against a real WebSocket or an in-memory test double.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique id for the lifetime of the transport; never reused."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """Receive and decode one frame. Raises DecodeError on a bad frame."""
        return decode(await self.receive_bytes())
