"""
Smart allocation pipeline.

Per slot, in day/time order:
1. Priority pass (unconditional up to capacity).
2. Preference lists (explicit choices + shuffled forced extensions).
3. Deferred acceptance, then commit holds and waitlist the unmatched.
"""

import logging
import random
from typing import Dict, Iterable

from models import Activity, Selection
from .demand import ActivityDemand
from .matcher import DeferredAcceptanceMatcher
from .preferences import build_preference_lists
from .priority import allocate_priority
from .slots import partition_by_slot
from .state import AllocationContext

logger = logging.getLogger(__name__)


def run_smart_allocation(
    context: AllocationContext,
    activities: Iterable[Activity],
    selections: Iterable[Selection],
    demand: Dict[str, ActivityDemand],
    rng: random.Random
) -> None:
    matcher = DeferredAcceptanceMatcher(context, demand, rng)

    for key, partition in partition_by_slot(activities, selections).items():
        placed = allocate_priority(context, partition.priority_selections)

        preference_lists = build_preference_lists(partition, context, rng)
        outcome = matcher.match(partition, preference_lists)
        matcher.finalize(outcome, preference_lists)

        # A seat in the slot supersedes any waitlist place in the same slot
        for student_id in partition.student_ids:
            if context.holds_slot(student_id, key):
                context.drop_waitlist_in_slot(student_id, key)

        logger.info(
            f"Slot {key.label()}: {placed} priority, {len(outcome.matched)} matched, "
            f"{len(outcome.unmatched)} unmatched ({outcome.iterations} rounds)"
        )
