"""Register an account directly in the accounts database.

Usage: uv run python bin/add-user.py <email> <password> <display_name>

Uses GAME_DATABASE_PATH for the database and AUTH_STARTING_BALANCE for the
initial balance. Passwords are always hashed with bcrypt.
"""

import asyncio
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from game.server.settings import GameServerSettings
from shared.auth.password import get_hasher
from shared.auth.service import AuthError, AuthService
from shared.auth.settings import AuthSettings
from shared.db import Database, SqliteAccountRepository


async def main() -> None:
    if len(sys.argv) != 4:
        print(f"Usage: {sys.argv[0]} <email> <password> <display_name>")
        sys.exit(1)

    email, password, display_name = sys.argv[1:]
    server_settings = GameServerSettings()
    # Registration never signs tickets; supply a placeholder so the script
    # works without AUTH_LOGIN_TICKET_SECRET being set.
    auth_settings = AuthSettings(login_ticket_secret="unused")

    db = Database(server_settings.database_path)
    db.connect()
    try:
        auth_service = AuthService(
            SqliteAccountRepository(db),
            auth_settings,
            password_hasher=get_hasher("bcrypt"),
        )
        try:
            account = await auth_service.register(email, password, display_name)
        except AuthError as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(f"Account registered: {account.display_name} <{account.email}> (id: {account.account_id})")
        print(f"Starting balance: {account.balance}")
    finally:
        db.close()


if __name__ == "__main__":
    asyncio.run(main())
