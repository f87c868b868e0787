"""
Waitlist & Suggestion Generator.

This module turns the final context into administrative follow-ups:
1. Unplaced students, per slot, with the reason they were left out.
2. Heuristic suggestions comparing final demand to final capacity.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from models import (
    Selection,
    SlotKey,
    Suggestion,
    SuggestionPriority,
    SuggestionType,
    UnallocatedReason,
    UnallocatedSlot,
    UnallocatedStudent
)
from .demand import ActivityDemand
from .preferences import is_eligible
from .slots import group_selections_by_student, slot_sort_key
from .state import AllocationContext

logger = logging.getLogger(__name__)


def _slot_reason(context: AllocationContext, selections: List[Selection]) -> UnallocatedReason:
    if any(context.is_cancelled(s.activity_id) for s in selections):
        return UnallocatedReason.CANCELLED
    if not any(is_eligible(context.activities[s.activity_id], s.student) for s in selections):
        return UnallocatedReason.NO_ELIGIBLE_ACTIVITIES
    return UnallocatedReason.ALL_FULL


def find_unallocated_students(context: AllocationContext, selections: Iterable[Selection]) -> List[UnallocatedStudent]:
    """Students with a selection in a slot but no seat there after the run."""
    report = []

    for student_id, student_selections in group_selections_by_student(selections).items():
        by_slot: Dict[SlotKey, List[Selection]] = defaultdict(list)
        for selection in student_selections:
            if selection.activity_id in context.activities:
                by_slot[context.slot_of(selection.activity_id)].append(selection)

        missing = []
        for slot in sorted(by_slot, key=slot_sort_key):
            if context.allocation_for(student_id, slot) is not None:
                continue
            requested = sorted(by_slot[slot], key=lambda s: s.rank)
            missing.append(UnallocatedSlot(
                day_of_week=slot.day_of_week,
                time_slot=slot.time_slot,
                requested_activities=list(dict.fromkeys(context.activities[s.activity_id].name for s in requested)),
                reason=_slot_reason(context, requested),
            ))

        if missing:
            student = student_selections[0].student
            report.append(UnallocatedStudent(
                student_id=student_id,
                student_name=student.full_name,
                class_name=student.class_name,
                unallocated_slots=missing,
            ))

    return report


def generate_suggestions(
    context: AllocationContext,
    demand: Dict[str, ActivityDemand],
    unallocated: List[UnallocatedStudent]
) -> List[Suggestion]:
    """Suggestions sorted HIGH, MEDIUM, LOW."""
    config = context.config
    suggestions: List[Suggestion] = []

    for activity_id, activity in context.activities.items():
        capacity = context.max_capacity[activity_id]
        minimum = context.min_capacity[activity_id]
        entry = demand.get(activity_id)
        requested = entry.selections if entry else 0

        if context.is_cancelled(activity_id):
            enrolled = len(context.displaced.get(activity_id, []))
            shortfall = minimum - enrolled
            if enrolled > 0 and shortfall <= 2:
                suggestions.append(Suggestion(
                    type=SuggestionType.LOWER_MINIMUM,
                    priority=SuggestionPriority.MEDIUM,
                    message=f"'{activity.name}' was cancelled {shortfall} short of its minimum; "
                            f"lowering the minimum to {enrolled} would let it run",
                    activity_id=activity_id,
                    activity_name=activity.name,
                    suggested_value=enrolled,
                ))
            else:
                suggestions.append(Suggestion(
                    type=SuggestionType.RECRUIT_STUDENTS,
                    priority=SuggestionPriority.LOW,
                    message=f"'{activity.name}' was cancelled with {enrolled}/{minimum} students; "
                            f"recruit {shortfall} more before offering it again",
                    activity_id=activity_id,
                    activity_name=activity.name,
                    suggested_value=shortfall,
                ))
            continue

        # --- Oversubscription ---
        waitlist = context.waitlist_count(activity_id)
        if waitlist > 0:
            increase = min(waitlist, config.max_capacity_increase)
            suggestions.append(Suggestion(
                type=SuggestionType.INCREASE_CAPACITY,
                priority=SuggestionPriority.MEDIUM if waitlist >= 5 else SuggestionPriority.LOW,
                message=f"'{activity.name}' has {waitlist} waitlisted; raise capacity from {capacity} to {capacity + increase}",
                activity_id=activity_id,
                activity_name=activity.name,
                suggested_value=capacity + increase,
            ))

        if entry is not None and entry.ratio > config.severe_oversubscription_ratio:
            suggestions.append(Suggestion(
                type=SuggestionType.ADD_SESSION,
                priority=SuggestionPriority.MEDIUM,
                message=f"'{activity.name}' drew {requested} selections for {capacity} places; consider an additional session",
                activity_id=activity_id,
                activity_name=activity.name,
            ))

        # --- Shortfall ---
        enrolled = context.enrollment_count(activity_id)
        if 0 < enrolled < minimum:
            shortfall = minimum - enrolled
            if shortfall <= 2:
                suggestions.append(Suggestion(
                    type=SuggestionType.LOWER_MINIMUM,
                    priority=SuggestionPriority.LOW,
                    message=f"'{activity.name}' is {shortfall} below its minimum of {minimum}; consider lowering it to {enrolled}",
                    activity_id=activity_id,
                    activity_name=activity.name,
                    suggested_value=enrolled,
                ))
            else:
                suggestions.append(Suggestion(
                    type=SuggestionType.RECRUIT_STUDENTS,
                    priority=SuggestionPriority.MEDIUM,
                    message=f"'{activity.name}' needs {shortfall} more students to reach its minimum of {minimum}",
                    activity_id=activity_id,
                    activity_name=activity.name,
                    suggested_value=shortfall,
                ))

    if unallocated:
        slot_count = sum(len(s.unallocated_slots) for s in unallocated)
        suggestions.append(Suggestion(
            type=SuggestionType.MANUAL_PLACEMENT,
            priority=SuggestionPriority.HIGH,
            message=f"{len(unallocated)} students are unplaced in {slot_count} slots and need manual placement",
            suggested_value=len(unallocated),
        ))

    suggestions.sort(key=lambda s: s.priority.sort_order)
    logger.debug(f"Generated {len(suggestions)} suggestions")
    return suggestions
