"""
Enrollment data models for the ECA Allocator.

This module defines both the input and the output of an allocation run:
1. Selections (a parent's ranked choices for a student, read-only input)
2. Allocations (committed seats)
3. Waitlist entries (ordered queue per activity)
"""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


class AllocationType(str, Enum):
    """How an allocation came to exist."""
    FIRST_COME = "FIRST_COME"
    SMART_PRIORITY = "SMART_PRIORITY"
    SMART_RANKED = "SMART_RANKED"
    SMART_REALLOCATION = "SMART_REALLOCATION"
    SMART_FORCED = "SMART_FORCED"
    # Created outside the engine; survive re-runs
    COMPULSORY = "COMPULSORY"
    INVITED = "INVITED"
    MANUAL = "MANUAL"

    @property
    def is_preserved(self) -> bool:
        return self in PRESERVED_ALLOCATION_TYPES


PRESERVED_ALLOCATION_TYPES = frozenset({
    AllocationType.COMPULSORY,
    AllocationType.INVITED,
    AllocationType.MANUAL,
})

ENGINE_ALLOCATION_TYPES = frozenset(t for t in AllocationType if t not in PRESERVED_ALLOCATION_TYPES)


class AllocationStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    WITHDRAWN = "WITHDRAWN"
    REMOVED = "REMOVED"


class Student(BaseModel):
    """The student fields the allocator needs."""
    id: str
    first_name: str = ""
    last_name: str = ""
    class_name: str = ""
    year_group_id: Optional[str] = Field(default=None, description="Used for eligibility checks")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.id


class Selection(BaseModel):
    """
    A ranked preference for one activity, submitted by a parent.
    Never created or altered by the allocator.
    """
    id: str
    term_id: str
    student: Student
    activity_id: str
    rank: int = Field(ge=1, le=3, description="1 = first choice")
    is_priority: bool = Field(default=False, description="Placed before general matching")
    created_at: datetime = Field(description="Submission time; drives FCFS ordering")
    parent_user_id: Optional[str] = None

    @property
    def student_id(self) -> str:
        return self.student.id

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "sel_001",
            "term_id": "term_2025_t1",
            "student": {"id": "stu_01", "first_name": "Ana", "last_name": "Lee",
                        "class_name": "4B", "year_group_id": "y4"},
            "activity_id": "act_chess_tue",
            "rank": 1,
            "is_priority": False,
            "created_at": "2025-01-06T08:15:00"
        }
    })


class Allocation(BaseModel):
    """A committed seat for a student in an activity for the term."""
    id: Optional[str] = None
    term_id: str
    student_id: str
    activity_id: str
    allocation_type: AllocationType
    allocation_round: Optional[int] = Field(default=None, description="Matching round that produced it")
    choice_rank: Optional[int] = Field(
        default=None,
        ge=1,
        le=3,
        description="Rank of the selection this seat satisfies; None for forced or preserved seats"
    )
    status: AllocationStatus = Field(default=AllocationStatus.CONFIRMED)


class WaitlistEntry(BaseModel):
    """One place in an activity's waitlist queue."""
    id: Optional[str] = None
    term_id: str
    student_id: str
    activity_id: str
    position: int = Field(ge=1)
