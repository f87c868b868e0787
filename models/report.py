"""
Report data models for the ECA Allocator.

This module defines the 'Output' of the engine as seen by callers:
the committed run result, the non-committing preview, and the
administrative follow-ups (at-risk activities, unplaced students, suggestions).
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from .activity import TimeSlot
from .term import SelectionMode


class DemandLevel(str, Enum):
    """Selection demand relative to resolved capacity."""
    AT_RISK = "AT_RISK"
    LOW_DEMAND = "LOW_DEMAND"
    BALANCED = "BALANCED"
    HIGH_DEMAND = "HIGH_DEMAND"
    OVERSUBSCRIBED = "OVERSUBSCRIBED"


class UnallocatedReason(str, Enum):
    ALL_FULL = "ALL_FULL"
    CANCELLED = "CANCELLED"
    NO_ELIGIBLE_ACTIVITIES = "NO_ELIGIBLE_ACTIVITIES"


class SuggestionType(str, Enum):
    INCREASE_CAPACITY = "INCREASE_CAPACITY"
    ADD_SESSION = "ADD_SESSION"
    LOWER_MINIMUM = "LOWER_MINIMUM"
    RECRUIT_STUDENTS = "RECRUIT_STUDENTS"
    MANUAL_PLACEMENT = "MANUAL_PLACEMENT"


class SuggestionPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def sort_order(self) -> int:
        return {"HIGH": 0, "MEDIUM": 1, "LOW": 2}[self.value]


class AllocationOptions(BaseModel):
    """Per-run options. Missing values fall back to the school setting and the engine config."""
    selection_mode: Optional[SelectionMode] = None
    cancel_below_minimum: Optional[bool] = None


class ActivityAtRisk(BaseModel):
    activity_id: str
    activity_name: str
    current_enrollment: int
    min_capacity: int
    shortfall: int


class UnallocatedSlot(BaseModel):
    day_of_week: int
    time_slot: TimeSlot
    requested_activities: List[str] = Field(default_factory=list, description="Activity names, in rank order")
    reason: UnallocatedReason


class UnallocatedStudent(BaseModel):
    student_id: str
    student_name: str
    class_name: str = ""
    unallocated_slots: List[UnallocatedSlot] = Field(default_factory=list)


class Suggestion(BaseModel):
    """A heuristic follow-up for administrators."""
    type: SuggestionType
    priority: SuggestionPriority
    message: str
    activity_id: Optional[str] = None
    activity_name: Optional[str] = None
    suggested_value: Optional[int] = Field(default=None, description="e.g. the proposed new capacity")


class AllocationResult(BaseModel):
    """
    Outcome of a committed run.
    Callers must check `success`; failures are reported in `errors`, never raised.
    """
    success: bool = False
    selection_mode: Optional[SelectionMode] = None

    # --- Counts ---
    total_students: int = 0
    students_placed: int = 0
    total_allocations: int = 0
    waitlisted: int = 0

    # --- Satisfaction ---
    first_choice_allocations: int = 0
    second_choice_allocations: int = 0
    third_choice_allocations: int = 0
    forced_allocations: int = 0

    # --- Capacity enforcement ---
    cancelled_activities: int = 0
    cancelled_activity_names: List[str] = Field(default_factory=list)
    activities_at_risk: List[ActivityAtRisk] = Field(default_factory=list)

    # --- Follow-ups ---
    unallocated_students: List[UnallocatedStudent] = Field(default_factory=list)
    suggestions: List[Suggestion] = Field(default_factory=list)
    iteration_cap_hit: bool = False
    errors: List[str] = Field(default_factory=list)


class ActivityPreview(BaseModel):
    activity_id: str
    activity_name: str
    allocations: int
    waitlist: int
    below_minimum: bool
    will_be_cancelled: bool
    min_capacity: int
    max_capacity: int
    demand_level: DemandLevel


class AllocationPreview(BaseModel):
    """Projected outcome of a run. Nothing is written."""
    activities: List[ActivityPreview] = Field(default_factory=list)
    total_allocations: int = 0
    total_waitlist: int = 0
    activities_to_cancel: int = 0
    selection_mode: SelectionMode
    default_selection_mode: SelectionMode
