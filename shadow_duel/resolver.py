"""
Round resolver.

Scores revealed rounds and picks the overall winner. Every tie-break policy
is reproducible: the same revealed data always yields the same winner.
"""

import hashlib
from collections.abc import Sequence
from enum import Enum

from .models import Duel, RoundOutcome, RoundResult


class TieBreakPolicy(str, Enum):
    """How to settle a duel where both parties won the same number of rounds."""

    # Larger power spent in rounds won, then a seed derived from both secrets
    POWER_THEN_SEED = "power_then_seed"
    # Creator takes every tie
    CREATOR_WINS = "creator_wins"


def tally(rounds: Sequence[RoundResult]) -> tuple[int, int]:
    """Return (creator_wins, opponent_wins); tie rounds credit nobody."""
    creator_wins = sum(1 for r in rounds if r.outcome == RoundOutcome.CREATOR)
    opponent_wins = sum(1 for r in rounds if r.outcome == RoundOutcome.OPPONENT)
    return creator_wins, opponent_wins


def winning_power(rounds: Sequence[RoundResult]) -> tuple[int, int]:
    """Return the total power each side spent in the rounds it won."""
    creator_power = sum(r.creator_power for r in rounds if r.outcome == RoundOutcome.CREATOR)
    opponent_power = sum(r.opponent_power for r in rounds if r.outcome == RoundOutcome.OPPONENT)
    return creator_power, opponent_power


def tiebreak_seed(duel_id: str, creator_secret: str, opponent_secret: str) -> bytes:
    """
    Derive the tie-break seed from both revealed secrets.

    Neither party knew the other's secret when committing, so neither can
    steer the seed.
    """
    payload = f"tiebreak|{duel_id}|{creator_secret}|{opponent_secret}".encode("utf-8")
    return hashlib.sha256(payload).digest()


def determine_winner(
    duel: Duel,
    rounds: Sequence[RoundResult] | None = None,
    policy: TieBreakPolicy = TieBreakPolicy.POWER_THEN_SEED,
) -> RoundOutcome:
    """
    Decide the overall winning side of a fully revealed duel.

    Args:
        duel: Duel carrying both reveals
        rounds: Round results to score (defaults to duel.revealed_rounds)
        policy: Tie-break policy applied when rounds won are equal

    Returns:
        RoundOutcome.CREATOR or RoundOutcome.OPPONENT, never TIE
    """
    scored = list(duel.revealed_rounds if rounds is None else rounds)
    creator_wins, opponent_wins = tally(scored)
    if creator_wins > opponent_wins:
        return RoundOutcome.CREATOR
    if opponent_wins > creator_wins:
        return RoundOutcome.OPPONENT

    if policy == TieBreakPolicy.CREATOR_WINS:
        return RoundOutcome.CREATOR

    creator_power, opponent_power = winning_power(scored)
    if creator_power > opponent_power:
        return RoundOutcome.CREATOR
    if opponent_power > creator_power:
        return RoundOutcome.OPPONENT

    if duel.creator_reveal is None or duel.opponent_reveal is None:
        raise ValueError("seeded tie-break requires both reveals")
    seed = tiebreak_seed(duel.id, duel.creator_reveal.secret, duel.opponent_reveal.secret)
    return RoundOutcome.CREATOR if seed[0] % 2 == 0 else RoundOutcome.OPPONENT
