"""
Exceptions raised inside the allocation engine and its store collaborators.

`AllocationEngine.run_allocation` converts all of these into entries in
`AllocationResult.errors`; only `promote_from_waitlist` lets them escape.
"""


class AllocationError(Exception):
    """Base class for allocation failures."""


class TermNotFoundError(AllocationError):
    def __init__(self, term_id: str):
        super().__init__(f"ECA term {term_id} not found")
        self.term_id = term_id


class TermStateError(AllocationError):
    """The term's status does not allow the requested operation."""


class AllocationInProgressError(AllocationError):
    def __init__(self, term_id: str):
        super().__init__(f"An allocation run is already in progress for term {term_id}")
        self.term_id = term_id


class DuplicateRecordError(AllocationError):
    """A unique-key conflict in the store. The engine treats it as a no-op."""


class CapacityExceededError(AllocationError):
    """The activity has no free seats."""


class SlotConflictError(AllocationError):
    """The student already holds an activity in the same day/time slot."""
