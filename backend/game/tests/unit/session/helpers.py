from game.tests.helpers.session import ALICE, BOB, CAROL, DAVE

__all__ = ["ALICE", "BOB", "CAROL", "DAVE", "register_session"]


def register_session(registry, account, connection_id: str | None = None):
    """Put ``account`` straight into the registry with its seed balance."""
    return registry.register(
        connection_id or f"conn-{account.account_id}",
        account.account_id,
        account.email,
        account.display_name,
        account.balance,
    )
