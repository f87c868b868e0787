"""
Allocation Context.

This module acts as the 'Memory' of an allocation run.
One AllocationContext is threaded through every stage and tracks:
1. Slot occupancy per student (the one-activity-per-slot constraint).
2. Enrollment per activity (the capacity constraint).
3. Waitlist queues, cancellations and matching diagnostics.

Nothing here touches the store; the engine commits the final state afterwards.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from models import Activity, Allocation, AllocationType, SlotKey
from .capacity import resolve_max_capacity, resolve_min_capacity
from .config import AllocatorConfig
from .errors import CapacityExceededError, SlotConflictError


class AllocationContext:
    """
    Mutable state of one allocation run.
    Enforces both hard invariants on every write.
    """

    def __init__(self, term_id: str, activities: Iterable[Activity], config: Optional[AllocatorConfig] = None):
        self.term_id = term_id
        self.config = config or AllocatorConfig()
        self.activities: Dict[str, Activity] = {a.id: a for a in activities}

        # Resolved once; the resolver is pure
        self.max_capacity: Dict[str, int] = {
            aid: resolve_max_capacity(a, self.config) for aid, a in self.activities.items()
        }
        self.min_capacity: Dict[str, int] = {
            aid: resolve_min_capacity(a, self.config) for aid, a in self.activities.items()
        }

        # Occupancy indices
        self.student_slots: Dict[str, Dict[SlotKey, str]] = defaultdict(dict)
        self.activity_enrollment: Dict[str, List[str]] = {aid: [] for aid in self.activities}

        # Allocations
        self.preserved_allocations: List[Allocation] = []
        self.new_allocations: List[Allocation] = []

        # Waitlists: activity_id -> ordered student IDs (position = index + 1)
        self.waitlists: Dict[str, List[str]] = defaultdict(list)

        # Enforcement
        self.cancelled: Dict[str, str] = {}
        self.displaced: Dict[str, List[str]] = {}

        self.iteration_cap_hit = False

    # --- Lookups ---

    def slot_of(self, activity_id: str) -> SlotKey:
        return self.activities[activity_id].slot

    def holds_slot(self, student_id: str, slot: SlotKey) -> bool:
        return slot in self.student_slots.get(student_id, {})

    def enrollment_count(self, activity_id: str) -> int:
        return len(self.activity_enrollment.get(activity_id, []))

    def remaining_capacity(self, activity_id: str) -> int:
        return max(0, self.max_capacity[activity_id] - self.enrollment_count(activity_id))

    def has_capacity(self, activity_id: str) -> bool:
        return self.remaining_capacity(activity_id) > 0

    def is_cancelled(self, activity_id: str) -> bool:
        return activity_id in self.cancelled

    def can_allocate(self, student_id: str, activity_id: str) -> bool:
        """Both invariants hold if this student took this seat."""
        if activity_id not in self.activities or self.is_cancelled(activity_id):
            return False
        if self.holds_slot(student_id, self.slot_of(activity_id)):
            return False
        return self.has_capacity(activity_id)

    # --- Writes ---

    def add_preserved(self, allocation: Allocation) -> bool:
        """
        Fold a pre-existing COMPULSORY/INVITED/MANUAL seat into the occupancy counts.
        Returns False if the activity is not part of this run.
        """
        if allocation.activity_id not in self.activities:
            return False
        slot = self.slot_of(allocation.activity_id)
        self.student_slots[allocation.student_id][slot] = allocation.activity_id
        self.activity_enrollment[allocation.activity_id].append(allocation.student_id)
        self.preserved_allocations.append(allocation)
        return True

    def add_allocation(
        self,
        student_id: str,
        activity_id: str,
        allocation_type: AllocationType,
        choice_rank: Optional[int] = None,
        allocation_round: Optional[int] = None
    ) -> Allocation:
        """Commit a seat to the context. Raises if either invariant would break."""
        slot = self.slot_of(activity_id)
        if self.holds_slot(student_id, slot):
            raise SlotConflictError(
                f"Student {student_id} already holds {self.student_slots[student_id][slot]} in slot {slot.label()}"
            )
        if not self.has_capacity(activity_id):
            raise CapacityExceededError(f"Activity {activity_id} is full")

        allocation = Allocation(
            term_id=self.term_id,
            student_id=student_id,
            activity_id=activity_id,
            allocation_type=allocation_type,
            allocation_round=allocation_round,
            choice_rank=choice_rank,
        )
        self.student_slots[student_id][slot] = activity_id
        self.activity_enrollment[activity_id].append(student_id)
        self.new_allocations.append(allocation)
        return allocation

    def add_to_waitlist(self, student_id: str, activity_id: str) -> Optional[int]:
        """Append to the activity's queue. Returns the position, or None if already queued."""
        queue = self.waitlists[activity_id]
        if student_id in queue:
            return None
        queue.append(student_id)
        return len(queue)

    def drop_waitlist_in_slot(self, student_id: str, slot: SlotKey) -> None:
        """Remove a student from every queue in a slot (used once they hold a seat there)."""
        for activity_id, queue in self.waitlists.items():
            if student_id in queue and self.activities[activity_id].slot == slot:
                queue.remove(student_id)

    def cancel_activity(self, activity_id: str, reason: str) -> List[str]:
        """
        Mark an activity cancelled and strip every seat it holds, preserved ones included.
        Returns the displaced student IDs in enrollment order.
        """
        slot = self.slot_of(activity_id)
        displaced = list(self.activity_enrollment[activity_id])

        for student_id in displaced:
            if self.student_slots[student_id].get(slot) == activity_id:
                del self.student_slots[student_id][slot]

        self.activity_enrollment[activity_id] = []
        self.new_allocations = [a for a in self.new_allocations if a.activity_id != activity_id]
        self.preserved_allocations = [a for a in self.preserved_allocations if a.activity_id != activity_id]
        self.waitlists.pop(activity_id, None)

        self.cancelled[activity_id] = reason
        self.displaced[activity_id] = displaced
        return displaced

    # --- Reporting ---

    def allocation_for(self, student_id: str, slot: SlotKey) -> Optional[str]:
        return self.student_slots.get(student_id, {}).get(slot)

    def waitlist_entries(self) -> List[Tuple[str, str, int]]:
        """(activity_id, student_id, position) for every queued student."""
        entries = []
        for activity_id, queue in self.waitlists.items():
            for index, student_id in enumerate(queue):
                entries.append((activity_id, student_id, index + 1))
        return entries

    def waitlist_count(self, activity_id: Optional[str] = None) -> int:
        if activity_id is not None:
            return len(self.waitlists.get(activity_id, []))
        return sum(len(q) for q in self.waitlists.values())

    def get_statistics(self) -> Dict[str, int]:
        """Choice accounting over the allocations created by this run."""
        stats = {
            "total_allocations": len(self.new_allocations),
            "first_choice": 0,
            "second_choice": 0,
            "third_choice": 0,
            "forced": 0,
            "students_placed": len({a.student_id for a in self.new_allocations}),
            "waitlisted": self.waitlist_count(),
        }
        for allocation in self.new_allocations:
            if allocation.choice_rank == 1:
                stats["first_choice"] += 1
            elif allocation.choice_rank == 2:
                stats["second_choice"] += 1
            elif allocation.choice_rank == 3:
                stats["third_choice"] += 1
            else:
                stats["forced"] += 1
        return stats
