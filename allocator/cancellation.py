"""
Minimum capacity enforcement.

Runs strictly after matching. Activities below their minimum are cancelled,
their seats stripped, and each displaced student gets one pass over their
other selections in the same slot. Reallocation does not re-run matching.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from models import ActivityAtRisk, AllocationType, Selection
from .slots import group_selections_by_student
from .state import AllocationContext

logger = logging.getLogger(__name__)


@dataclass
class EnforcementOutcome:
    cancelled: List[str] = field(default_factory=list)
    reallocated: int = 0
    at_risk: List[ActivityAtRisk] = field(default_factory=list)


def cancel_reason(min_capacity: int, enrollment: int) -> str:
    return f"Minimum capacity of {min_capacity} not met ({enrollment} enrolled)"


def reallocate_students(
    context: AllocationContext,
    student_ids: Iterable[str],
    cancelled_activity_id: str,
    selections_by_student: Dict[str, List[Selection]]
) -> int:
    """Seat each displaced student in their best remaining same-slot choice, if any."""
    slot = context.slot_of(cancelled_activity_id)
    reallocated = 0

    for student_id in student_ids:
        candidates = sorted(
            (s for s in selections_by_student.get(student_id, [])
             if s.activity_id != cancelled_activity_id
             and s.activity_id in context.activities
             and context.slot_of(s.activity_id) == slot),
            key=lambda s: s.rank
        )
        for selection in candidates:
            if not context.can_allocate(student_id, selection.activity_id):
                continue
            context.add_allocation(
                student_id,
                selection.activity_id,
                AllocationType.SMART_REALLOCATION,
                choice_rank=selection.rank,
            )
            context.drop_waitlist_in_slot(student_id, slot)
            reallocated += 1
            logger.info(f"Reallocated {student_id}: {cancelled_activity_id} -> {selection.activity_id}")
            break
        else:
            logger.debug(f"No backup choice for {student_id} after {cancelled_activity_id} was cancelled")

    return reallocated


def find_activities_at_risk(context: AllocationContext) -> List[ActivityAtRisk]:
    """Running activities with some, but not enough, enrollment."""
    at_risk = []
    for activity_id, activity in context.activities.items():
        if context.is_cancelled(activity_id):
            continue
        enrollment = context.enrollment_count(activity_id)
        minimum = context.min_capacity[activity_id]
        if 0 < enrollment < minimum:
            at_risk.append(ActivityAtRisk(
                activity_id=activity_id,
                activity_name=activity.name,
                current_enrollment=enrollment,
                min_capacity=minimum,
                shortfall=minimum - enrollment,
            ))
    return at_risk


def enforce_minimum_capacity(
    context: AllocationContext,
    selections: Iterable[Selection],
    cancel_below_minimum: bool = True
) -> EnforcementOutcome:
    outcome = EnforcementOutcome()

    if cancel_below_minimum:
        selections_by_student = group_selections_by_student(selections)

        # Single pass in load order; a later activity may be rescued by reallocations
        for activity_id, activity in context.activities.items():
            if context.is_cancelled(activity_id):
                continue
            enrollment = context.enrollment_count(activity_id)
            minimum = context.min_capacity[activity_id]
            if enrollment >= minimum:
                continue

            displaced = context.cancel_activity(activity_id, cancel_reason(minimum, enrollment))
            outcome.cancelled.append(activity_id)
            logger.info(f"Cancelled '{activity.name}': {enrollment}/{minimum} enrolled, {len(displaced)} displaced")

            outcome.reallocated += reallocate_students(context, displaced, activity_id, selections_by_student)

    outcome.at_risk = find_activities_at_risk(context)
    return outcome
