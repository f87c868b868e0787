"""
Preference list construction.

For each student in a slot the list is:
1. Their explicit selections, by rank, one entry per activity.
2. Every other OPEN activity in the slot they are eligible for, shuffled,
   tagged as forced with a low rank.

Step 2 gives every student a complete proposal list, so a student whose three
choices filled up can still be matched somewhere in the slot.
"""

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from models import Activity, Selection, Student
from .slots import SlotPartition, group_selections_by_student
from .state import AllocationContext


@dataclass(frozen=True)
class Preference:
    """One entry of a student's proposal list."""
    activity_id: str
    rank: int
    is_forced: bool = False


@dataclass
class PreferenceList:
    student: Student
    preferences: List[Preference]
    first_choice_activity_id: Optional[str] = None


def is_eligible(activity: Activity, student: Student) -> bool:
    """
    Year-group check only. An empty allow-list admits everyone.

    eligible_gender is carried on the activity but not enforced: students have
    no gender attribute to check it against.
    """
    if not activity.eligible_year_group_ids:
        return True
    return student.year_group_id is not None and student.year_group_id in activity.eligible_year_group_ids


def build_preference_list(
    student: Student,
    selections: List[Selection],
    partition: SlotPartition,
    context: AllocationContext,
    rng: random.Random
) -> PreferenceList:
    explicit: List[Preference] = []
    seen = set()
    for selection in sorted(selections, key=lambda s: s.rank):
        if selection.activity_id in seen or context.is_cancelled(selection.activity_id):
            continue
        seen.add(selection.activity_id)
        explicit.append(Preference(selection.activity_id, selection.rank))

    extended = [
        Preference(activity.id, context.config.forced_rank, is_forced=True)
        for activity in partition.activities
        if activity.id not in seen
        and activity.is_open_for_extension()
        and not context.is_cancelled(activity.id)
        and is_eligible(activity, student)
    ]
    rng.shuffle(extended)

    return PreferenceList(
        student=student,
        preferences=explicit + extended,
        first_choice_activity_id=explicit[0].activity_id if explicit else None,
    )


def build_preference_lists(
    partition: SlotPartition,
    context: AllocationContext,
    rng: random.Random
) -> Dict[str, PreferenceList]:
    """
    Lists for every student with non-priority selections in the slot who does
    not already hold a seat there. Keyed by student ID in submission order.
    """
    lists: Dict[str, PreferenceList] = {}
    for student_id, selections in group_selections_by_student(partition.regular_selections).items():
        if context.holds_slot(student_id, partition.key):
            continue
        lists[student_id] = build_preference_list(selections[0].student, selections, partition, context, rng)
    return lists
