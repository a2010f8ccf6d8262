"""Unit tests for WebSocketConnection wrapper class."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketDisconnect

from game.server.websocket import WebSocketConnection


class TestWebSocketConnection:
    """Test error handling and delegation in WebSocketConnection wrapper."""

    async def test_send_bytes_converts_disconnect_to_connection_error(self):
        """Verify that WebSocketDisconnect is converted to ConnectionError on send."""
        mock_ws = MagicMock()
        mock_ws.send_bytes = AsyncMock(side_effect=WebSocketDisconnect())
        conn = WebSocketConnection(mock_ws, connection_id="test-conn")

        with pytest.raises(ConnectionError, match="WebSocket already disconnected"):
            await conn.send_bytes(b"data")

    async def test_close_suppresses_disconnect(self):
        """Closing an already-disconnected WebSocket completes without error."""
        mock_ws = MagicMock()
        mock_ws.close = AsyncMock(side_effect=WebSocketDisconnect())
        conn = WebSocketConnection(mock_ws, connection_id="test-conn")

        await conn.close()

    async def test_receive_disconnect_raises_connection_error(self):
        mock_ws = MagicMock()
        mock_ws.receive = AsyncMock(return_value={"type": "websocket.disconnect", "code": 1000})
        conn = WebSocketConnection(mock_ws, connection_id="test-conn")

        with pytest.raises(ConnectionError, match="WebSocket disconnected"):
            await conn.receive_bytes()

    async def test_receive_binary_frame(self):
        mock_ws = MagicMock()
        mock_ws.receive = AsyncMock(return_value={"type": "websocket.receive", "bytes": b"\x80"})
        conn = WebSocketConnection(mock_ws, connection_id="test-conn")

        assert await conn.receive_bytes() == b"\x80"

    async def test_receive_text_frame_passed_on_as_bytes(self):
        """Text frames reach the decoder, which rejects them."""
        mock_ws = MagicMock()
        mock_ws.receive = AsyncMock(return_value={"type": "websocket.receive", "text": "hello"})
        conn = WebSocketConnection(mock_ws, connection_id="test-conn")

        assert await conn.receive_bytes() == b"hello"

    def test_connection_ids_are_unique_by_default(self):
        first = WebSocketConnection(MagicMock())
        second = WebSocketConnection(MagicMock())

        assert first.connection_id != second.connection_id
