"""Domain rejections raised by the session layer.

Each carries the ``ErrorCode`` the router reports to the initiating
connection. A rejection is raised before any shared state is touched.
"""

from game.messaging.types import ErrorCode


class GameError(Exception):
    code: ErrorCode

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class AuthConflict(GameError):
    """Login handshake refused (already online, server full, bad ticket)."""


class RoomError(GameError):
    """Room operation refused."""


class TransferError(GameError):
    """Points transfer refused."""


class NotLoggedIn(GameError):
    def __init__(self) -> None:
        super().__init__(ErrorCode.NOT_LOGGED_IN, "Login required")
