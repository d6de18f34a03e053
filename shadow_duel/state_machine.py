"""
Duel state machine.

Pure transition functions: each takes a Duel snapshot and returns the next
snapshot, or raises a DuelError and returns nothing. No function keeps a
reference to the snapshot it was given, so callers may hold old snapshots
safely. Persistence is the registry's job.
"""

import time
from collections.abc import Sequence

from . import commitment as commitment_scheme
from .allocation import ROUND_COUNT, validate
from .exceptions import (
    AlreadyJoinedError,
    CommitmentVerificationError,
    DuplicateCommitmentError,
    DuplicateRevealError,
    InvalidStakeError,
    MalformedCommitmentError,
    NotAParticipantError,
    SelfJoinError,
    WrongPhaseError,
)
from .models import Duel, DuelStatus, Reveal, RoundResult, Side
from .resolver import TieBreakPolicy, determine_winner

# Status each operation is legal in
_PHASES: dict[str, DuelStatus] = {
    "join": DuelStatus.WAITING,
    "submit_commitment": DuelStatus.COMMITTING,
    "submit_reveal": DuelStatus.REVEALING,
    "reveal_next_round": DuelStatus.SHOWDOWN,
}


def _require_phase(duel: Duel, operation: str) -> None:
    expected = _PHASES[operation]
    if duel.status != expected:
        raise WrongPhaseError(
            f"{operation} requires status {expected.value}, duel {duel.id} is {duel.status.value}"
        )


def _require_side(duel: Duel, party: str) -> Side:
    side = duel.side_of(party)
    if side is None:
        raise NotAParticipantError(f"{party!r} is not a participant in duel {duel.id}")
    return side


def create(
    duel_id: str,
    creator: str,
    stake: int,
    created_at: float | None = None,
    sequence: int = 0,
) -> Duel:
    """Open a new duel waiting for an opponent."""
    if isinstance(stake, bool) or not isinstance(stake, int) or stake <= 0:
        raise InvalidStakeError(f"stake must be a positive integer, got {stake!r}")
    return Duel(
        id=duel_id,
        creator=creator,
        stake=stake,
        created_at=time.time() if created_at is None else created_at,
        sequence=sequence,
    )


def join(duel: Duel, opponent: str) -> Duel:
    """Seat the opponent; committing starts immediately."""
    if duel.opponent is not None:
        raise AlreadyJoinedError(f"duel {duel.id} already has an opponent")
    if opponent == duel.creator:
        raise SelfJoinError(f"{opponent!r} cannot join their own duel")
    _require_phase(duel, "join")
    if not opponent:
        raise NotAParticipantError("opponent cannot be empty")
    return duel.replace(opponent=opponent, status=DuelStatus.COMMITTING)


def submit_commitment(duel: Duel, party: str, commitment: str) -> Duel:
    """Record a party's write-once commitment; advance once both are in."""
    _require_phase(duel, "submit_commitment")
    side = _require_side(duel, party)
    if duel.commitment_of(side) is not None:
        raise DuplicateCommitmentError(f"{party!r} already committed to duel {duel.id}")
    if not commitment_scheme.is_well_formed(commitment):
        raise MalformedCommitmentError(
            f"commitment must be {commitment_scheme.COMMITMENT_LENGTH} lowercase hex characters"
        )

    field_name = "creator_commit" if side == Side.CREATOR else "opponent_commit"
    updated = duel.replace(**{field_name: commitment})
    if updated.both_committed:
        updated = updated.replace(status=DuelStatus.REVEALING)
    return updated


def submit_reveal(duel: Duel, party: str, allocation: Sequence[int], secret: str) -> Duel:
    """
    Accept a party's reveal after re-validating and verifying it.

    The allocation is validated again even though the client checked it
    before committing; a commitment to an invalid allocation is rejected
    here with InvalidAllocationError, distinct from a hash mismatch.
    """
    _require_phase(duel, "submit_reveal")
    side = _require_side(duel, party)
    stored = duel.commitment_of(side)
    if stored is None:
        raise WrongPhaseError(f"{party!r} has no commitment in duel {duel.id}")
    if duel.reveal_of(side) is not None:
        raise DuplicateRevealError(f"{party!r} already revealed in duel {duel.id}")

    normalized = validate(allocation)
    if not commitment_scheme.verify(normalized, secret, stored):
        raise CommitmentVerificationError(
            f"reveal from {party!r} does not match the stored commitment for duel {duel.id}"
        )

    field_name = "creator_reveal" if side == Side.CREATOR else "opponent_reveal"
    updated = duel.replace(**{field_name: Reveal(allocation=normalized, secret=secret)})
    if updated.both_revealed:
        updated = updated.replace(status=DuelStatus.SHOWDOWN, current_round=1)
    return updated


def reveal_next_round(duel: Duel, policy: TieBreakPolicy = TieBreakPolicy.POWER_THEN_SEED) -> Duel:
    """Resolve the next round; after the last one, crown the winner."""
    _require_phase(duel, "reveal_next_round")
    if not (1 <= duel.current_round <= ROUND_COUNT):
        raise WrongPhaseError(f"no round left to reveal in duel {duel.id}")
    if duel.creator_reveal is None or duel.opponent_reveal is None:
        raise WrongPhaseError(f"duel {duel.id} is missing a reveal")

    index = duel.current_round - 1
    result = RoundResult(
        creator_power=duel.creator_reveal.allocation[index],
        opponent_power=duel.opponent_reveal.allocation[index],
    )
    rounds = duel.revealed_rounds + (result,)
    next_round = duel.current_round + 1

    if next_round > ROUND_COUNT:
        winning_side = determine_winner(duel, rounds, policy)
        return duel.replace(
            revealed_rounds=rounds,
            current_round=next_round,
            winner=duel.party_for(winning_side),
            status=DuelStatus.COMPLETED,
        )
    return duel.replace(revealed_rounds=rounds, current_round=next_round)
