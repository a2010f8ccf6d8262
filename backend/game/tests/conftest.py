import pytest

from game.messaging.router import MessageRouter
from game.session.manager import SessionManager
from game.tests.helpers.session import ALICE, BOB, CAROL, DAVE
from game.tests.mocks import InMemoryLedger, MockAuthService, MockConnection


@pytest.fixture
def ledger():
    return InMemoryLedger({account.account_id: account.balance for account in (ALICE, BOB, CAROL, DAVE)})


@pytest.fixture
def session_manager(ledger):
    return SessionManager(ledger)


@pytest.fixture
def auth_service():
    service = MockAuthService()
    for account in (ALICE, BOB, CAROL, DAVE):
        service.add_account(account)
    return service


@pytest.fixture
def message_router(session_manager, auth_service):
    return MessageRouter(session_manager, auth_service)


@pytest.fixture
def mock_connection():
    return MockConnection()
