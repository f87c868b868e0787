"""
Data models package for the ECA Allocator.

This package exports the four pillars of the data architecture:
1. Supply (Activity, TimeSlot, ActivityType)
2. Demand (Student, Selection)
3. Committed state (Allocation, WaitlistEntry, Term)
4. Reports (AllocationResult, AllocationPreview, Suggestion)
"""

from .activity import (
    Activity,
    ActivityType,
    EligibleGender,
    SlotKey,
    TimeSlot,
    parse_year_group_ids
)

from .enrollment import (
    Allocation,
    AllocationStatus,
    AllocationType,
    ENGINE_ALLOCATION_TYPES,
    PRESERVED_ALLOCATION_TYPES,
    Selection,
    Student,
    WaitlistEntry
)

from .term import (
    EcaSettings,
    RUNNABLE_TERM_STATUSES,
    SelectionMode,
    Term,
    TermStatus
)

from .report import (
    ActivityAtRisk,
    ActivityPreview,
    AllocationOptions,
    AllocationPreview,
    AllocationResult,
    DemandLevel,
    Suggestion,
    SuggestionPriority,
    SuggestionType,
    UnallocatedReason,
    UnallocatedSlot,
    UnallocatedStudent
)

__all__ = [
    # --- Supply Models ---
    "Activity",
    "ActivityType",
    "EligibleGender",
    "SlotKey",
    "TimeSlot",
    "parse_year_group_ids",

    # --- Demand & Enrollment Models ---
    "Allocation",
    "AllocationStatus",
    "AllocationType",
    "ENGINE_ALLOCATION_TYPES",
    "PRESERVED_ALLOCATION_TYPES",
    "Selection",
    "Student",
    "WaitlistEntry",

    # --- Term Models ---
    "EcaSettings",
    "RUNNABLE_TERM_STATUSES",
    "SelectionMode",
    "Term",
    "TermStatus",

    # --- Output Models ---
    "ActivityAtRisk",
    "ActivityPreview",
    "AllocationOptions",
    "AllocationPreview",
    "AllocationResult",
    "DemandLevel",
    "Suggestion",
    "SuggestionPriority",
    "SuggestionType",
    "UnallocatedReason",
    "UnallocatedSlot",
    "UnallocatedStudent",
]
