"""
First-come-first-served allocation.

Selections are taken once, oldest first. No randomisation, no priority pass
and no forced extensions: a student whose explicit choices are all full ends
the run on those waitlists with no seat in the slot.
"""

import logging
from typing import Iterable

from models import AllocationType, Selection
from .state import AllocationContext

logger = logging.getLogger(__name__)


def run_first_come_first_served(context: AllocationContext, selections: Iterable[Selection]) -> None:
    ordered = sorted(selections, key=lambda s: s.created_at)

    for selection in ordered:
        activity_id = selection.activity_id
        if activity_id not in context.activities:
            continue

        if context.holds_slot(selection.student_id, context.slot_of(activity_id)):
            continue

        if not context.has_capacity(activity_id):
            context.add_to_waitlist(selection.student_id, activity_id)
            continue

        context.add_allocation(
            selection.student_id,
            activity_id,
            AllocationType.FIRST_COME,
            choice_rank=1,
        )

    logger.info(
        f"FCFS: {len(context.new_allocations)} allocated, {context.waitlist_count()} waitlisted "
        f"from {len(ordered)} selections"
    )
