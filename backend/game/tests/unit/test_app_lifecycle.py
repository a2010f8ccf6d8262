"""Tests for game server app lifecycle (DB ownership and shutdown)."""

from starlette.testclient import TestClient

from game.server.app import create_app
from game.server.settings import GameServerSettings
from shared.auth.settings import AuthSettings
from shared.db import Database


class TestOwnedDbShutdown:
    def test_shutdown_closes_owned_db(self, tmp_path, monkeypatch):
        """When the app opens the database itself, shutdown closes it."""
        monkeypatch.setenv("GAME_DATABASE_PATH", str(tmp_path / "test.db"))
        app = create_app(settings=GameServerSettings(), auth_settings=AuthSettings())

        with TestClient(app):
            db = app.state.auth_service._account_repo._db
            assert db.connection is not None

        assert db._conn is None

    def test_injected_db_left_open(self, tmp_path):
        db = Database(tmp_path / "test.db")
        db.connect()
        app = create_app(settings=GameServerSettings(), auth_settings=AuthSettings(), database=db)

        with TestClient(app):
            pass

        assert db.connection is not None
        db.close()
