"""Tests for AuthSettings configuration."""

import pytest
from pydantic import ValidationError

from shared.auth.settings import AuthSettings


class TestAuthSettings:
    def test_reads_login_ticket_secret_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_LOGIN_TICKET_SECRET", "my-secret")
        assert AuthSettings().login_ticket_secret == "my-secret"

    def test_missing_login_ticket_secret_raises(self, monkeypatch):
        monkeypatch.delenv("AUTH_LOGIN_TICKET_SECRET", raising=False)
        with pytest.raises(ValidationError, match="login_ticket_secret"):
            AuthSettings()

    def test_empty_login_ticket_secret_raises(self, monkeypatch):
        monkeypatch.setenv("AUTH_LOGIN_TICKET_SECRET", "")
        with pytest.raises(ValidationError, match="login_ticket_secret"):
            AuthSettings()

    def test_defaults(self, monkeypatch):
        for name in ("AUTH_PASSWORD_HASHER", "AUTH_ADMIN_PASSWORD", "AUTH_STARTING_BALANCE"):
            monkeypatch.delenv(name, raising=False)
        settings = AuthSettings(login_ticket_secret="s")

        assert settings.login_ticket_ttl_seconds == 3600
        assert settings.password_hasher == "bcrypt"
        assert settings.admin_password is None
        assert settings.starting_balance == 1000

    def test_starting_balance_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTH_STARTING_BALANCE", "250")
        assert AuthSettings().starting_balance == 250

    def test_negative_starting_balance_rejected(self):
        with pytest.raises(ValidationError, match="starting_balance"):
            AuthSettings(starting_balance=-1)

    def test_unknown_hasher_rejected(self):
        with pytest.raises(ValidationError, match="password_hasher"):
            AuthSettings(password_hasher="md5")
