import pytest

from taskboard.errors import PositionRangeExhausted
from taskboard.ordering.positions import (
    EXHAUSTED,
    GAP,
    POSITION_MAX,
    POSITION_MIN,
    allocate_position,
    spaced_positions,
)


def test_empty_column_starts_at_zero():
    assert allocate_position(None, None) == 0


def test_tail_and_head_are_one_gap_away():
    assert allocate_position(0, None) == GAP
    assert allocate_position(None, 0) == -GAP
    assert allocate_position(3 * GAP, None) == 4 * GAP


def test_midpoint_between_neighbours():
    assert allocate_position(0, 1_000_000) == 500_000
    assert allocate_position(0, 3) == 1
    assert allocate_position(-10, 10) == 0


def test_adjacent_or_equal_bounds_are_exhausted():
    assert allocate_position(5, 6) is EXHAUSTED
    assert allocate_position(5, 5) is EXHAUSTED
    assert allocate_position(6, 5) is EXHAUSTED


def test_large_values_keep_integer_precision():
    left = 2 ** 62
    assert allocate_position(left, left + 2) == left + 1
    assert allocate_position(left, left + 3) == left + 1


def test_bounds_clamp_to_bigint_range():
    assert allocate_position(POSITION_MAX - 10, None) == POSITION_MAX
    assert allocate_position(POSITION_MAX, None) is EXHAUSTED
    assert allocate_position(None, POSITION_MIN + 5) == POSITION_MIN
    assert allocate_position(None, POSITION_MIN) is EXHAUSTED


def test_repeated_bisection_eventually_exhausts():
    left, right = 0, GAP
    bisections = 0
    while True:
        position = allocate_position(left, right)
        if position is EXHAUSTED:
            break
        assert left < position < right
        right = position
        bisections += 1
    assert bisections == 19


def test_exhausted_is_a_singleton():
    assert repr(EXHAUSTED) == "EXHAUSTED"
    assert type(EXHAUSTED)() is EXHAUSTED


def test_spaced_positions():
    assert spaced_positions(0) == []
    assert spaced_positions(3) == [0, GAP, 2 * GAP]


def test_spaced_positions_rejects_counts_beyond_range():
    with pytest.raises(PositionRangeExhausted):
        spaced_positions(POSITION_MAX // GAP + 2)
