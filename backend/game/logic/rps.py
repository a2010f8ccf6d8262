"""Rock-paper-scissors resolution.

Pure functions over moves and a stake. Nothing here knows about rooms,
sessions or the ledger; callers map ``Side`` back to whoever sat there.
"""

from enum import StrEnum

from pydantic import BaseModel


class Move(StrEnum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class Side(StrEnum):
    """Seat of a participant in a two-player match."""

    A = "a"
    B = "b"


# key beats value
BEATS: dict[Move, Move] = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}


class SettlementOutcome(BaseModel, frozen=True):
    """Result of one resolved round.

    For a decisive round ``points_change`` is ``+stake`` for the winner and
    ``-stake`` for the loser. For a draw both deltas are 0 and ``winner`` /
    ``loser`` are None.
    """

    winner: Side | None
    loser: Side | None
    is_draw: bool
    points_change: dict[Side, int]


def resolve(move_a: Move, move_b: Move, stake: int) -> SettlementOutcome:
    if stake < 0:
        raise ValueError(f"stake must be non-negative, got {stake}")

    if move_a == move_b:
        return SettlementOutcome(
            winner=None,
            loser=None,
            is_draw=True,
            points_change={Side.A: 0, Side.B: 0},
        )

    if BEATS[move_a] == move_b:
        winner, loser = Side.A, Side.B
    else:
        winner, loser = Side.B, Side.A
    return SettlementOutcome(
        winner=winner,
        loser=loser,
        is_draw=False,
        points_change={winner: stake, loser: -stake},
    )
