import pytest

from game.session.manager import SessionManager
from game.session.registry import SessionRegistry
from game.session.room_manager import RoomManager


@pytest.fixture
def manager(ledger):
    return SessionManager(ledger)


@pytest.fixture
def registry(ledger):
    return SessionRegistry(ledger)


@pytest.fixture
def rooms(registry, ledger):
    return RoomManager(registry, ledger)
