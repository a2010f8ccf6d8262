from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from game.messaging.router import MessageRouter
from game.server import auth_handlers
from game.server.settings import GameServerSettings
from game.server.websocket import websocket_endpoint
from game.session.manager import SessionManager
from shared.auth.password import get_hasher
from shared.auth.service import AuthService
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteAccountRepository, SqliteLedger
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from shared.dal.ledger import Ledger


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "status": "ok",
            "online_users": session_manager.session_count,
            "max_online_users": session_manager.capacity,
            "connections": session_manager.connection_count,
            "rooms": session_manager.room_count,
            "open_rooms": session_manager.open_room_count,
        },
    )


def create_app(
    settings: GameServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
    *,
    database: Database | None = None,
    ledger: Ledger | None = None,
    auth_service: AuthService | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()  # ty: ignore[missing-argument]

    # When the app opens the database itself, it owns its lifecycle.
    owned_db: Database | None = None
    if database is None and (ledger is None or auth_service is None):
        database = Database(settings.database_path)
        database.connect()
        owned_db = database

    if ledger is None:
        ledger = SqliteLedger(database)
    if auth_service is None:
        auth_service = AuthService(
            SqliteAccountRepository(database),
            auth_settings,
            password_hasher=get_hasher(auth_settings.password_hasher),
        )
    if session_manager is None:
        session_manager = SessionManager(
            ledger,
            max_online_users=settings.max_online_users,
            send_timeout=settings.send_timeout_seconds,
        )
    if message_router is None:
        message_router = MessageRouter(session_manager, auth_service)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/api/login", auth_handlers.login, methods=["POST"]),
        Route("/api/register", auth_handlers.register, methods=["POST"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        yield
        if owned_db is not None:
            owned_db.close()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.auth_service = auth_service
    app.state.session_manager = session_manager

    logger.info("game server ready", max_online_users=settings.max_online_users)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    settings = GameServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
