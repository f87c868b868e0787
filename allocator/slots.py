"""
Slot partitioning.

A slot is a (day_of_week, time_slot) pair. Students can hold one activity per
slot and activities in different slots never compete for the same seat, so the
smart pipeline processes each slot independently.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from models import Activity, Selection, SlotKey, TimeSlot

_TIME_SLOT_ORDER = {slot: i for i, slot in enumerate(TimeSlot)}


@dataclass
class SlotPartition:
    """Activities and selections that share one slot."""
    key: SlotKey
    activities: List[Activity] = field(default_factory=list)
    priority_selections: List[Selection] = field(default_factory=list)
    regular_selections: List[Selection] = field(default_factory=list)

    @property
    def selections(self) -> List[Selection]:
        return self.priority_selections + self.regular_selections

    @property
    def student_ids(self) -> List[str]:
        """Distinct students with a selection here, in first-seen order."""
        return list(dict.fromkeys(s.student_id for s in self.selections))


def slot_sort_key(key: SlotKey):
    return key.day_of_week, _TIME_SLOT_ORDER[key.time_slot]


def partition_by_slot(activities: Iterable[Activity], selections: Iterable[Selection]) -> Dict[SlotKey, SlotPartition]:
    """
    Group activities and selections by slot, in day/time order.
    Selections for activities that are not part of the run are left out.
    Selection order within each subset is preserved.
    """
    partitions: Dict[SlotKey, SlotPartition] = {}
    slot_of: Dict[str, SlotKey] = {}

    for activity in activities:
        key = activity.slot
        slot_of[activity.id] = key
        partitions.setdefault(key, SlotPartition(key=key)).activities.append(activity)

    for selection in selections:
        key = slot_of.get(selection.activity_id)
        if key is None:
            continue
        partition = partitions[key]
        if selection.is_priority:
            partition.priority_selections.append(selection)
        else:
            partition.regular_selections.append(selection)

    return {k: partitions[k] for k in sorted(partitions, key=slot_sort_key)}


def group_selections_by_student(selections: Iterable[Selection]) -> Dict[str, List[Selection]]:
    """student_id -> selections, in input order."""
    grouped: Dict[str, List[Selection]] = defaultdict(list)
    for selection in selections:
        grouped[selection.student_id].append(selection)
    return grouped
