"""Column rebalancing.

When the allocator reports ``EXHAUSTED`` the column is re-spaced to
``0, GAP, 2*GAP, ...`` in its current order. The rebalance runs inside the
transaction of the insert or move that needed it and never commits by itself.
"""
import logging

from taskboard.ordering.positions import spaced_positions

logger = logging.getLogger(__name__)


def rebalance_column(store, column_id: int) -> int:
    """Re-space every task in ``column_id`` and return how many rows moved.

    Targets are derived from the sort order alone, so running it twice in a row
    rewrites nothing the second time.

    Rows are written one at a time under the ``(column_id, position)`` unique
    constraint. Rows moving down go first in ascending order, then rows moving
    up in descending order; with both old and new positions sorted, neither pass
    can land a row on a slot another row still occupies.
    """
    tasks = store.list_column(column_id, lock=True)
    targets = spaced_positions(len(tasks))

    downward = []
    upward = []
    for task, target in zip(tasks, targets):
        if target < task.position:
            downward.append((task, target))
        elif target > task.position:
            upward.append((task, target))

    for task, target in downward + upward[::-1]:
        store.write_position(task, target)

    moved = len(downward) + len(upward)
    logger.info("Rebalanced column %s: %d of %d tasks moved", column_id, moved, len(tasks))
    return moved
