"""
Priority pass.

Priority-flagged selections are placed before any matching, in submission
order, subject only to the capacity left at the moment they are processed.
A full activity puts the student on its waitlist; nobody already seated is evicted.
"""

import logging
from typing import Iterable

from models import AllocationType, Selection
from .state import AllocationContext

logger = logging.getLogger(__name__)

PRIORITY_ROUND = 1


def allocate_priority(context: AllocationContext, selections: Iterable[Selection]) -> int:
    """Returns the number of seats granted."""
    placed = 0
    for selection in selections:
        activity_id = selection.activity_id
        if activity_id not in context.activities or context.is_cancelled(activity_id):
            continue

        # Idempotent: a second priority request in the same slot is ignored
        if context.holds_slot(selection.student_id, context.slot_of(activity_id)):
            continue

        if context.has_capacity(activity_id):
            context.add_allocation(
                selection.student_id,
                activity_id,
                AllocationType.SMART_PRIORITY,
                choice_rank=1,
                allocation_round=PRIORITY_ROUND,
            )
            placed += 1
        else:
            position = context.add_to_waitlist(selection.student_id, activity_id)
            logger.debug(f"Priority request {selection.id} waitlisted for {activity_id} at position {position}")
    return placed
