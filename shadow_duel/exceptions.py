"""
Exception classes for the shadow duel engine.

Centralized location for all custom exceptions to avoid circular imports.
Protocol errors reflect caller misuse or a misbehaving counterpart and are
never retryable; store errors are transient infrastructure failures.
"""

from enum import Enum


class ValidationError(Exception):
    """Base exception for validation-related errors."""
    pass


class ConfigurationError(ValueError):
    """Base exception for configuration-related errors."""
    pass


class DuelError(Exception):
    """Base exception for all duel protocol errors."""

    retryable: bool = False


class NotFoundError(DuelError):
    """Unknown duel id."""

    def __init__(self, duel_id: str):
        super().__init__(f"Duel not found: {duel_id}")
        self.duel_id = duel_id


class AlreadyJoinedError(DuelError):
    """Duel already has an opponent."""
    pass


class SelfJoinError(DuelError):
    """Creator tried to join their own duel."""
    pass


class DuplicateCommitmentError(DuelError):
    """Party already committed; commitments are write-once."""
    pass


class DuplicateRevealError(DuelError):
    """Party already revealed."""
    pass


class CommitmentVerificationError(DuelError):
    """Revealed (allocation, secret) does not hash to the stored commitment."""
    pass


class AllocationViolation(str, Enum):
    """Which allocation rule was broken."""

    WRONG_LENGTH = "wrong_length"
    OUT_OF_RANGE = "out_of_range"
    BUDGET_MISMATCH = "budget_mismatch"


class InvalidAllocationError(DuelError):
    """Allocation violates the budget-conservation rule."""

    def __init__(self, violation: AllocationViolation, message: str):
        super().__init__(message)
        self.violation = violation


class WrongPhaseError(DuelError):
    """Operation is not valid for the duel's current status."""
    pass


class NotAParticipantError(DuelError):
    """Caller is neither the creator nor the opponent."""
    pass


class InvalidStakeError(DuelError):
    """Stake must be a positive integer."""
    pass


class MalformedCommitmentError(DuelError):
    """Commitment is not a fixed-length hex digest."""
    pass


class TransientStoreError(Exception):
    """Base exception for persistence failures. Retrying is appropriate."""

    retryable: bool = True


class StoreUnavailableError(TransientStoreError):
    """Backing store could not be read or written."""
    pass


class LockTimeoutError(TransientStoreError):
    """Per-duel lock was not acquired in time."""
    pass


class StaleSnapshotError(TransientStoreError):
    """Stored record changed since the snapshot being saved was read."""
    pass
