"""
Allocation validator.

An allocation is the ordered triple of power a party assigns to the three
rounds. It must conserve the per-game budget.
"""

from collections.abc import Sequence

from .exceptions import AllocationViolation, InvalidAllocationError

ROUND_COUNT = 3
TOTAL_BUDGET = 10
ROUND_CAP = 10

Allocation = tuple[int, int, int]


def validate(allocation: Sequence[int]) -> Allocation:
    """
    Check an allocation against the budget-conservation rule.

    Length is checked first, then each entry's range, then the sum.

    Args:
        allocation: Candidate per-round powers

    Returns:
        The allocation as a normalized tuple

    Raises:
        InvalidAllocationError: With the violation of the first failing rule
    """
    entries = list(allocation)
    if len(entries) != ROUND_COUNT:
        raise InvalidAllocationError(
            AllocationViolation.WRONG_LENGTH,
            f"allocation must have exactly {ROUND_COUNT} entries, got {len(entries)}",
        )

    for index, value in enumerate(entries):
        # bool is an int subclass but never a meaningful power
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidAllocationError(
                AllocationViolation.OUT_OF_RANGE,
                f"round {index + 1} power must be an integer, got {value!r}",
            )
        if value < 0 or value > ROUND_CAP:
            raise InvalidAllocationError(
                AllocationViolation.OUT_OF_RANGE,
                f"round {index + 1} power must be within [0, {ROUND_CAP}], got {value}",
            )

    total = sum(entries)
    if total != TOTAL_BUDGET:
        raise InvalidAllocationError(
            AllocationViolation.BUDGET_MISMATCH,
            f"allocation must sum to {TOTAL_BUDGET}, got {total}",
        )

    return (entries[0], entries[1], entries[2])


def parse_allocation(text: str) -> Allocation:
    """Parse "a,b,c" into a validated allocation."""
    parts = [p.strip() for p in text.split(",") if p.strip()]
    try:
        values = [int(p) for p in parts]
    except ValueError:
        raise InvalidAllocationError(
            AllocationViolation.OUT_OF_RANGE,
            f"allocation entries must be integers: {text!r}",
        ) from None
    return validate(values)
