"""Per game kind: the stake wagered and the function that resolves a round.

Adding a game kind means adding a ``GameKind`` member and a ``GameRules``
entry; the room lifecycle does not change.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from game.logic.rps import Move, SettlementOutcome, resolve


class GameKind(StrEnum):
    RPS = "rps"


@dataclass(frozen=True)
class GameRules:
    stake: int
    resolver: Callable[[Move, Move, int], SettlementOutcome]


RULES: dict[GameKind, GameRules] = {
    GameKind.RPS: GameRules(stake=100, resolver=resolve),
}


def rules_for(game_kind: GameKind) -> GameRules:
    return RULES[game_kind]
