from game.tests.mocks.auth import MockAuthService
from game.tests.mocks.connection import MockConnection, StalledConnection
from game.tests.mocks.ledger import GatedLedger, InMemoryLedger

__all__ = ["GatedLedger", "InMemoryLedger", "MockAuthService", "MockConnection", "StalledConnection"]
