"""
In-memory AllocationStore.

Backs the command-line runner and the test-suite. Snapshots are plain JSON
dicts validated through the pydantic models.
"""

import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional

from models import (
    Activity,
    Allocation,
    AllocationStatus,
    AllocationType,
    EcaSettings,
    Selection,
    Term,
    WaitlistEntry
)
from .errors import DuplicateRecordError, TermNotFoundError
from .store import AllocationStore


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class InMemoryStore(AllocationStore):

    def __init__(
        self,
        terms: Iterable[Term] = (),
        settings: Iterable[EcaSettings] = (),
        activities: Iterable[Activity] = (),
        selections: Iterable[Selection] = (),
        allocations: Iterable[Allocation] = (),
        waitlist: Iterable[WaitlistEntry] = ()
    ):
        self.terms: Dict[str, Term] = {t.id: t for t in terms}
        self.settings: Dict[str, EcaSettings] = {s.school_id: s for s in settings}
        self.activities: Dict[str, Activity] = {a.id: a for a in activities}
        self.selections: List[Selection] = list(selections)
        self.allocations: List[Allocation] = []
        self.waitlist: List[WaitlistEntry] = []

        for allocation in allocations:
            self.create_allocation(allocation)
        for entry in waitlist:
            self.create_waitlist_entry(entry)

        self._locked_terms = set()
        self._lock = threading.Lock()

    # --- Snapshots ---

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "InMemoryStore":
        """
        Build a store from a JSON-style dict:
        {"term": {...}, "settings": {...}, "activities": [...], "selections": [...],
         "allocations": [...], "waitlist": [...]}
        """
        term = Term(**data["term"])
        settings = [EcaSettings(**data["settings"])] if data.get("settings") else []
        return cls(
            terms=[term],
            settings=settings,
            activities=[Activity(**item) for item in data.get("activities", [])],
            selections=[Selection(**item) for item in data.get("selections", [])],
            allocations=[Allocation(**item) for item in data.get("allocations", [])],
            waitlist=[WaitlistEntry(**item) for item in data.get("waitlist", [])],
        )

    def to_snapshot(self, term_id: str) -> Dict[str, Any]:
        term = self.get_term(term_id)
        if term is None:
            raise TermNotFoundError(term_id)
        settings = self.get_settings(term.school_id)
        return {
            "term": term.model_dump(mode='json'),
            "settings": settings.model_dump(mode='json') if settings else None,
            "activities": [a.model_dump(mode='json') for a in self.activities.values() if a.term_id == term_id],
            "selections": [s.model_dump(mode='json') for s in self.list_selections(term_id)],
            "allocations": [a.model_dump(mode='json') for a in self.allocations if a.term_id == term_id],
            "waitlist": [w.model_dump(mode='json') for w in self.waitlist if w.term_id == term_id],
        }

    # --- Reads ---

    def get_term(self, term_id: str) -> Optional[Term]:
        return self.terms.get(term_id)

    def get_settings(self, school_id: str) -> Optional[EcaSettings]:
        return self.settings.get(school_id)

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        return self.activities.get(activity_id)

    def list_activities(self, term_id: str) -> List[Activity]:
        return [
            a for a in self.activities.values()
            if a.term_id == term_id and a.is_active and not a.is_cancelled
        ]

    def list_selections(self, term_id: str) -> List[Selection]:
        return sorted((s for s in self.selections if s.term_id == term_id), key=lambda s: s.created_at)

    def list_allocations(
        self,
        term_id: str,
        status: Optional[AllocationStatus] = AllocationStatus.CONFIRMED
    ) -> List[Allocation]:
        return [
            a for a in self.allocations
            if a.term_id == term_id and (status is None or a.status == status)
        ]

    def list_waitlist(self, activity_id: str) -> List[WaitlistEntry]:
        return sorted((w for w in self.waitlist if w.activity_id == activity_id), key=lambda w: w.position)

    # --- Writes ---

    def delete_allocations(self, term_id: str, allocation_types: Iterable[AllocationType]) -> int:
        types = set(allocation_types)
        before = len(self.allocations)
        self.allocations = [
            a for a in self.allocations
            if not (a.term_id == term_id and a.allocation_type in types)
        ]
        return before - len(self.allocations)

    def delete_activity_allocations(self, activity_id: str) -> int:
        before = len(self.allocations)
        self.allocations = [a for a in self.allocations if a.activity_id != activity_id]
        return before - len(self.allocations)

    def delete_waitlist(self, term_id: str) -> int:
        before = len(self.waitlist)
        self.waitlist = [w for w in self.waitlist if w.term_id != term_id]
        return before - len(self.waitlist)

    def create_allocation(self, allocation: Allocation) -> Allocation:
        for existing in self.allocations:
            if (existing.student_id == allocation.student_id
                    and existing.activity_id == allocation.activity_id
                    and existing.status == AllocationStatus.CONFIRMED):
                raise DuplicateRecordError(
                    f"Student {allocation.student_id} already allocated to {allocation.activity_id}"
                )
        stored = allocation.model_copy(update={"id": allocation.id or _new_id("alloc")})
        self.allocations.append(stored)
        return stored

    def next_waitlist_position(self, activity_id: str) -> int:
        positions = [w.position for w in self.waitlist if w.activity_id == activity_id]
        return max(positions, default=0) + 1

    def create_waitlist_entry(self, entry: WaitlistEntry) -> WaitlistEntry:
        for existing in self.waitlist:
            if existing.student_id == entry.student_id and existing.activity_id == entry.activity_id:
                raise DuplicateRecordError(
                    f"Student {entry.student_id} already waitlisted for {entry.activity_id}"
                )
        stored = entry.model_copy(update={"id": entry.id or _new_id("wait")})
        self.waitlist.append(stored)
        return stored

    def delete_waitlist_entry(self, activity_id: str, student_id: str) -> bool:
        before = len(self.waitlist)
        self.waitlist = [
            w for w in self.waitlist
            if not (w.activity_id == activity_id and w.student_id == student_id)
        ]
        return len(self.waitlist) < before

    def update_activity(self, activity_id: str, **fields) -> Activity:
        current = self.activities[activity_id]
        updated = Activity.model_validate({**current.model_dump(), **fields})
        self.activities[activity_id] = updated
        return updated

    def update_term(self, term_id: str, **fields) -> Term:
        current = self.terms.get(term_id)
        if current is None:
            raise TermNotFoundError(term_id)
        updated = Term.model_validate({**current.model_dump(), **fields})
        self.terms[term_id] = updated
        return updated

    # --- Run serialisation ---

    def acquire_term_lock(self, term_id: str) -> bool:
        with self._lock:
            if term_id in self._locked_terms:
                return False
            self._locked_terms.add(term_id)
            return True

    def release_term_lock(self, term_id: str) -> None:
        with self._lock:
            self._locked_terms.discard(term_id)
