"""
Persistent store collaborator.

The engine reads term snapshots and writes allocation results only through
this interface. Implementations must raise DuplicateRecordError on unique-key
conflicts (one CONFIRMED allocation per student/activity, one waitlist row per
student/activity) and must make the term lock exclusive across callers.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

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


class AllocationStore(ABC):

    # --- Reads ---

    @abstractmethod
    def get_term(self, term_id: str) -> Optional[Term]:
        ...

    @abstractmethod
    def get_settings(self, school_id: str) -> Optional[EcaSettings]:
        ...

    @abstractmethod
    def list_activities(self, term_id: str) -> List[Activity]:
        """Active, non-cancelled activities of the term."""

    @abstractmethod
    def list_selections(self, term_id: str) -> List[Selection]:
        """All selections of the term, oldest first."""

    @abstractmethod
    def list_allocations(
        self,
        term_id: str,
        status: Optional[AllocationStatus] = AllocationStatus.CONFIRMED
    ) -> List[Allocation]:
        ...

    @abstractmethod
    def list_waitlist(self, activity_id: str) -> List[WaitlistEntry]:
        """Entries for one activity ordered by position."""

    # --- Writes ---

    @abstractmethod
    def delete_allocations(self, term_id: str, allocation_types: Iterable[AllocationType]) -> int:
        ...

    @abstractmethod
    def delete_activity_allocations(self, activity_id: str) -> int:
        ...

    @abstractmethod
    def delete_waitlist(self, term_id: str) -> int:
        ...

    @abstractmethod
    def create_allocation(self, allocation: Allocation) -> Allocation:
        """Raises DuplicateRecordError if the student already holds this activity."""

    @abstractmethod
    def next_waitlist_position(self, activity_id: str) -> int:
        """Current max position for the activity plus one."""

    @abstractmethod
    def create_waitlist_entry(self, entry: WaitlistEntry) -> WaitlistEntry:
        """Raises DuplicateRecordError if the student is already queued for the activity."""

    @abstractmethod
    def delete_waitlist_entry(self, activity_id: str, student_id: str) -> bool:
        ...

    @abstractmethod
    def update_activity(self, activity_id: str, **fields) -> Activity:
        ...

    @abstractmethod
    def update_term(self, term_id: str, **fields) -> Term:
        ...

    # --- Run serialisation ---

    @abstractmethod
    def acquire_term_lock(self, term_id: str) -> bool:
        """Non-blocking. False if another run holds the term."""

    @abstractmethod
    def release_term_lock(self, term_id: str) -> None:
        ...
