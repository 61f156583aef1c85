"""Sparse position allocation.

Tasks inside a column are ordered by an integer ``position``. New keys are
picked between the neighbours of the insertion point so that a reorder only
rewrites the moved row. Positions are plain Python ints (arbitrary precision)
and are stored as signed 64-bit ``BIGINT``; floats are never involved.
"""
from typing import List, Optional, Union

from taskboard.errors import PositionRangeExhausted

GAP = 1_000_000
POSITION_MIN = -(2 ** 63)
POSITION_MAX = 2 ** 63 - 1


class _Exhausted:
    """Sentinel returned when no integer fits between the bounds."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EXHAUSTED"


EXHAUSTED = _Exhausted()

Allocation = Union[int, _Exhausted]


def allocate_position(left: Optional[int], right: Optional[int]) -> Allocation:
    """Return a position strictly between ``left`` and ``right``.

    ``None`` on either side means the column boundary. Returns ``EXHAUSTED``
    when the bounds leave no room, in which case the column must be rebalanced.
    """
    if left is None and right is None:
        return 0

    if right is None:
        candidate = min(left + GAP, POSITION_MAX)
        return candidate if candidate > left else EXHAUSTED

    if left is None:
        candidate = max(right - GAP, POSITION_MIN)
        return candidate if candidate < right else EXHAUSTED

    if right - left <= 1:
        return EXHAUSTED
    return left + (right - left) // 2


def spaced_positions(count: int) -> List[int]:
    """Positions ``0, GAP, 2*GAP, ...`` for ``count`` tasks."""
    if count and (count - 1) * GAP > POSITION_MAX:
        raise PositionRangeExhausted(f"{count} tasks do not fit in the position range")
    return [i * GAP for i in range(count)]
