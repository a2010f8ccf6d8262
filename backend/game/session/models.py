from dataclasses import dataclass

from game.session.types import UserInfo


@dataclass
class Session:
    """An authenticated connection.

    Lifecycle:
    - Created by a successful ``login`` handshake
    - ``cached_balance`` is overwritten from the ledger before every
      balance-gated operation and after every ledger write
    - Removed on explicit logout or disconnect; never revived
    """

    connection_id: str
    account_id: int
    email: str
    display_name: str
    cached_balance: int

    def to_user_info(self) -> UserInfo:
        return UserInfo(
            account_id=self.account_id,
            email=self.email,
            display_name=self.display_name,
            balance=self.cached_balance,
        )
