"""
Tests for the allocation validator.

Focus on the budget-conservation rule and which violation gets reported.
"""

import pytest

from shadow_duel.allocation import parse_allocation, validate
from shadow_duel.exceptions import AllocationViolation, InvalidAllocationError


class TestValidate:
    """Test validate() accept/reject behavior."""

    @pytest.mark.parametrize("allocation", [[3, 3, 4], [10, 0, 0], [0, 0, 10], (4, 3, 3)])
    def test_accepts_budget_conserving_allocations(self, allocation: list[int]) -> None:
        """Three in-range powers summing to 10 are accepted."""
        assert validate(allocation) == tuple(allocation)

    @pytest.mark.parametrize(
        "allocation, violation",
        [
            ([3, 3, 3], AllocationViolation.BUDGET_MISMATCH),
            ([5, 5, 5], AllocationViolation.BUDGET_MISMATCH),
            ([11, -1, 0], AllocationViolation.OUT_OF_RANGE),
            ([5, 5], AllocationViolation.WRONG_LENGTH),
            ([2, 2, 3, 3], AllocationViolation.WRONG_LENGTH),
            ([], AllocationViolation.WRONG_LENGTH),
            ([5, 5.0, 0], AllocationViolation.OUT_OF_RANGE),
            ([True, 9, 0], AllocationViolation.OUT_OF_RANGE),
        ],
    )
    def test_rejects_with_specific_violation(self, allocation: list, violation: AllocationViolation) -> None:
        """Each broken rule is reported as its own violation."""
        with pytest.raises(InvalidAllocationError) as excinfo:
            _ = validate(allocation)

        assert excinfo.value.violation == violation

    def test_length_checked_before_range(self) -> None:
        """A short list with bad values reports its length first."""
        with pytest.raises(InvalidAllocationError) as excinfo:
            _ = validate([99])
        assert excinfo.value.violation == AllocationViolation.WRONG_LENGTH


class TestParseAllocation:
    """Test parsing the comma-separated CLI form."""

    def test_parses_and_validates(self) -> None:
        assert parse_allocation("6, 2,2") == (6, 2, 2)

    def test_rejects_non_integers(self) -> None:
        with pytest.raises(InvalidAllocationError, match="must be integers"):
            _ = parse_allocation("6,two,2")

    def test_rejects_bad_sum(self) -> None:
        with pytest.raises(InvalidAllocationError, match="must sum to 10"):
            _ = parse_allocation("6,2,1")
