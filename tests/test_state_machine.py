"""
Tests for the duel state machine.

Focus on guards, write-once fields and that rejected transitions leave the
input snapshot untouched.
"""

import pytest

from shadow_duel import state_machine
from shadow_duel.commitment import commit
from shadow_duel.exceptions import (
    AllocationViolation,
    AlreadyJoinedError,
    CommitmentVerificationError,
    DuplicateCommitmentError,
    DuplicateRevealError,
    InvalidAllocationError,
    InvalidStakeError,
    MalformedCommitmentError,
    NotAParticipantError,
    SelfJoinError,
    WrongPhaseError,
)
from shadow_duel.models import Duel, DuelStatus


def _joined() -> Duel:
    duel = state_machine.create("duel_1", "A", 100, created_at=1.0)
    return state_machine.join(duel, "B")


def _revealing(a_alloc=(6, 2, 2), b_alloc=(4, 3, 3)) -> Duel:
    duel = _joined()
    duel = state_machine.submit_commitment(duel, "A", commit(a_alloc, "sA"))
    return state_machine.submit_commitment(duel, "B", commit(b_alloc, "sB"))


def _showdown(a_alloc=(6, 2, 2), b_alloc=(4, 3, 3)) -> Duel:
    duel = _revealing(a_alloc, b_alloc)
    duel = state_machine.submit_reveal(duel, "A", a_alloc, "sA")
    return state_machine.submit_reveal(duel, "B", b_alloc, "sB")


class TestCreateAndJoin:
    """Test the waiting phase."""

    def test_create_starts_waiting(self) -> None:
        duel = state_machine.create("duel_1", "A", 100, created_at=1.0)

        assert duel.status == DuelStatus.WAITING
        assert duel.opponent is None
        assert duel.current_round == 0
        assert duel.revealed_rounds == ()
        assert duel.winner is None

    @pytest.mark.parametrize("stake", [0, -5, 1.5, True])
    def test_create_requires_positive_integer_stake(self, stake) -> None:
        with pytest.raises(InvalidStakeError):
            _ = state_machine.create("duel_1", "A", stake)

    def test_join_moves_to_committing(self) -> None:
        duel = _joined()

        assert duel.opponent == "B"
        assert duel.status == DuelStatus.COMMITTING

    def test_join_rejects_second_opponent(self) -> None:
        duel = _joined()

        with pytest.raises(AlreadyJoinedError):
            _ = state_machine.join(duel, "C")
        assert duel.opponent == "B"

    def test_join_rejects_self(self) -> None:
        duel = state_machine.create("duel_1", "A", 100)

        with pytest.raises(SelfJoinError):
            _ = state_machine.join(duel, "A")
        assert duel.status == DuelStatus.WAITING


class TestCommitments:
    """Test the committing phase."""

    def test_commit_before_join_is_wrong_phase(self) -> None:
        duel = state_machine.create("duel_1", "A", 100)

        with pytest.raises(WrongPhaseError):
            _ = state_machine.submit_commitment(duel, "A", commit((6, 2, 2), "sA"))

    def test_single_commit_stays_committing(self) -> None:
        duel = state_machine.submit_commitment(_joined(), "A", commit((6, 2, 2), "sA"))

        assert duel.status == DuelStatus.COMMITTING
        assert duel.creator_commit == commit((6, 2, 2), "sA")
        assert duel.opponent_commit is None

    def test_both_commits_move_to_revealing(self) -> None:
        duel = _revealing()

        assert duel.status == DuelStatus.REVEALING
        assert duel.current_round == 0

    def test_commitment_is_write_once(self) -> None:
        c1 = commit((6, 2, 2), "sA")
        c2 = commit((2, 2, 6), "sA2")
        duel = state_machine.submit_commitment(_joined(), "A", c1)

        with pytest.raises(DuplicateCommitmentError):
            _ = state_machine.submit_commitment(duel, "A", c2)
        assert duel.creator_commit == c1

    def test_outsider_cannot_commit(self) -> None:
        with pytest.raises(NotAParticipantError):
            _ = state_machine.submit_commitment(_joined(), "Mallory", commit((6, 2, 2), "sM"))

    def test_malformed_commitment_rejected(self) -> None:
        with pytest.raises(MalformedCommitmentError):
            _ = state_machine.submit_commitment(_joined(), "A", "deadbeef")


class TestReveals:
    """Test the revealing phase."""

    def test_reveal_before_both_commit_is_wrong_phase(self) -> None:
        """Reveal fails while a commitment is still missing."""
        duel = state_machine.submit_commitment(_joined(), "A", commit((6, 2, 2), "sA"))

        with pytest.raises(WrongPhaseError):
            _ = state_machine.submit_reveal(duel, "A", (6, 2, 2), "sA")
        with pytest.raises(WrongPhaseError):
            _ = state_machine.submit_reveal(duel, "B", (4, 3, 3), "sB")

    def test_outsider_cannot_reveal(self) -> None:
        duel = _revealing()

        with pytest.raises(NotAParticipantError):
            _ = state_machine.submit_reveal(duel, "Mallory", (6, 2, 2), "sA")
        assert duel.creator_reveal is None

    def test_reveal_with_wrong_secret_fails_verification(self) -> None:
        """A valid allocation with the wrong secret is a verification failure."""
        duel = _revealing()

        with pytest.raises(CommitmentVerificationError):
            _ = state_machine.submit_reveal(duel, "A", (6, 2, 2), "not-sA")
        with pytest.raises(CommitmentVerificationError):
            _ = state_machine.submit_reveal(duel, "A", (5, 3, 2), "sA")
        assert duel.creator_reveal is None

    def test_reveal_of_committed_invalid_allocation_is_allocation_error(self) -> None:
        """A commitment to a bad allocation is caught again at reveal."""
        duel = _joined()
        duel = state_machine.submit_commitment(duel, "A", commit((5, 5, 5), "sA"))
        duel = state_machine.submit_commitment(duel, "B", commit((4, 3, 3), "sB"))

        with pytest.raises(InvalidAllocationError) as excinfo:
            _ = state_machine.submit_reveal(duel, "A", (5, 5, 5), "sA")
        assert excinfo.value.violation == AllocationViolation.BUDGET_MISMATCH

    def test_reveal_is_write_once(self) -> None:
        duel = state_machine.submit_reveal(_revealing(), "A", (6, 2, 2), "sA")

        assert duel.status == DuelStatus.REVEALING
        with pytest.raises(DuplicateRevealError):
            _ = state_machine.submit_reveal(duel, "A", (6, 2, 2), "sA")

    def test_both_reveals_enter_showdown_at_round_one(self) -> None:
        duel = _showdown()

        assert duel.status == DuelStatus.SHOWDOWN
        assert duel.current_round == 1
        assert duel.revealed_rounds == ()
        assert duel.creator_reveal is not None
        assert duel.creator_reveal.allocation == (6, 2, 2)


class TestShowdown:
    """Test round-by-round resolution."""

    def test_rounds_resolve_in_order_and_complete(self) -> None:
        duel = _showdown()

        # Act
        first = state_machine.reveal_next_round(duel)
        second = state_machine.reveal_next_round(first)
        third = state_machine.reveal_next_round(second)

        # Assert
        assert [(r.creator_power, r.opponent_power) for r in third.revealed_rounds] == [(6, 4), (2, 3), (2, 3)]
        assert first.current_round == 2 and first.winner is None
        assert second.status == DuelStatus.SHOWDOWN
        assert third.current_round == 4
        assert third.status == DuelStatus.COMPLETED
        assert third.winner == "B"

    def test_advancing_a_completed_duel_is_rejected(self) -> None:
        """Extra advances never append further rounds."""
        duel = _showdown()
        for _ in range(3):
            duel = state_machine.reveal_next_round(duel)

        for _ in range(2):
            with pytest.raises(WrongPhaseError):
                _ = state_machine.reveal_next_round(duel)
        assert len(duel.revealed_rounds) == 3

    def test_advance_before_showdown_is_rejected(self) -> None:
        with pytest.raises(WrongPhaseError):
            _ = state_machine.reveal_next_round(_revealing())

    def test_input_snapshot_is_never_mutated(self) -> None:
        duel = _showdown()

        _ = state_machine.reveal_next_round(duel)

        assert duel.current_round == 1
        assert duel.revealed_rounds == ()
