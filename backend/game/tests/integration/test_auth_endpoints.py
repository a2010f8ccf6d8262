"""HTTP registration and password login against a real in-memory database."""

import pytest
from starlette.testclient import TestClient

from game.server.app import create_app
from game.server.settings import GameServerSettings
from game.tests.helpers.websocket import register
from shared.auth.login_ticket import verify_login_ticket
from shared.auth.settings import AuthSettings


def _make_client(**auth_overrides) -> TestClient:
    app = create_app(
        settings=GameServerSettings(database_path=":memory:"),
        auth_settings=AuthSettings(**auth_overrides),
    )
    return TestClient(app)


@pytest.fixture
def client():
    with _make_client() as client:
        yield client


def _register_body(**overrides) -> dict:
    body = {
        "email": "alice@example.com",
        "password": "password123",
        "display_name": "Alice",
        "admin_password": "test-admin",
    }
    body.update(overrides)
    return body


class TestRegister:
    def test_creates_account_with_starting_balance(self, client):
        response = client.post("/api/register", json=_register_body())

        assert response.status_code == 201
        account = response.json()["account"]
        assert account["email"] == "alice@example.com"
        assert account["display_name"] == "Alice"
        assert account["balance"] == 1000
        assert "password_hash" not in account

    def test_wrong_admin_password(self, client):
        response = client.post("/api/register", json=_register_body(admin_password="nope"))
        assert response.status_code == 403

    def test_missing_admin_password(self, client):
        body = _register_body()
        del body["admin_password"]
        assert client.post("/api/register", json=body).status_code == 403

    def test_registration_disabled_without_admin_password(self):
        with _make_client(admin_password=None) as client:
            response = client.post("/api/register", json=_register_body())
        assert response.status_code == 403

    def test_duplicate_email_is_case_insensitive(self, client):
        client.post("/api/register", json=_register_body())

        response = client.post("/api/register", json=_register_body(email="ALICE@example.com", display_name="Alice2"))

        assert response.status_code == 400
        assert "already registered" in response.json()["error"]

    def test_duplicate_display_name(self, client):
        client.post("/api/register", json=_register_body())

        response = client.post("/api/register", json=_register_body(email="other@example.com"))

        assert response.status_code == 400
        assert "already taken" in response.json()["error"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"password": "short"},
            {"display_name": " Alice"},
            {"display_name": "x" * 31},
            {"email": ""},
        ],
    )
    def test_invalid_fields(self, client, overrides):
        response = client.post("/api/register", json=_register_body(**overrides))
        assert response.status_code == 400

    def test_non_object_body(self, client):
        response = client.post("/api/register", content=b"[1, 2]", headers={"Content-Type": "application/json"})
        assert response.status_code == 400

    def test_configured_starting_balance(self):
        with _make_client(starting_balance=250) as client:
            response = client.post("/api/register", json=_register_body())
        assert response.json()["account"]["balance"] == 250


class TestLogin:
    def test_returns_account_and_verifiable_ticket(self, client):
        register(client, "alice@example.com", "Alice")

        response = client.post("/api/login", json={"email": "alice@example.com", "password": "password123"})

        assert response.status_code == 200
        body = response.json()
        assert body["account"]["display_name"] == "Alice"
        ticket = verify_login_ticket(body["ticket"], "test-secret")
        assert ticket is not None
        assert ticket.account_id == body["account"]["account_id"]

    def test_email_is_case_insensitive(self, client):
        register(client, "alice@example.com", "Alice")

        response = client.post("/api/login", json={"email": "Alice@Example.com", "password": "password123"})

        assert response.status_code == 200

    def test_wrong_password(self, client):
        register(client, "alice@example.com", "Alice")

        response = client.post("/api/login", json={"email": "alice@example.com", "password": "wrong-password"})

        assert response.status_code == 401

    def test_unknown_email(self, client):
        response = client.post("/api/login", json={"email": "nobody@example.com", "password": "password123"})
        assert response.status_code == 401

    def test_missing_fields(self, client):
        assert client.post("/api/login", json={"email": "alice@example.com"}).status_code == 400

    def test_malformed_json(self, client):
        response = client.post("/api/login", content=b"{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
