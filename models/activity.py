"""
Activity data models for the ECA Allocator.

An activity is one weekly extracurricular session (e.g. "Chess Club, Tuesday after school").
The day-of-week and time-slot pair is the unit of contention: a student can hold at most
one activity per slot.
"""

import json
from enum import Enum
from typing import NamedTuple, Optional, Set
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict


class TimeSlot(str, Enum):
    """Part of the school day the activity runs in."""
    BEFORE_SCHOOL = "BEFORE_SCHOOL"
    AFTER_SCHOOL = "AFTER_SCHOOL"


class ActivityType(str, Enum):
    """How students get into an activity."""
    OPEN = "OPEN"
    INVITE_ONLY = "INVITE_ONLY"
    COMPULSORY = "COMPULSORY"
    TRYOUT = "TRYOUT"


class EligibleGender(str, Enum):
    """Gender restriction stored on the activity. Not enforced (students carry no gender)."""
    MIXED = "MIXED"
    BOYS_ONLY = "BOYS_ONLY"
    GIRLS_ONLY = "GIRLS_ONLY"


class SlotKey(NamedTuple):
    """Composite (day_of_week, time_slot) key."""
    day_of_week: int
    time_slot: TimeSlot

    def label(self) -> str:
        return f"{self.day_of_week}-{self.time_slot.value}"


def parse_year_group_ids(value) -> Set[str]:
    """
    Normalise the stored eligibility field into a set of year-group IDs.

    Accepts a set/list/tuple, a JSON-encoded list, or None/"" (unrestricted).
    """
    if value is None:
        return set()
    if isinstance(value, str):
        if not value.strip():
            return set()
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"eligible_year_group_ids is not valid JSON: {exc.msg}") from exc
        if value is None:
            return set()
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError("eligible_year_group_ids must be a list of year-group IDs")
    ids = set()
    for item in value:
        if not isinstance(item, (str, int)) or isinstance(item, bool):
            raise ValueError(f"Invalid year-group ID: {item!r}")
        ids.add(str(item))
    return ids


class Activity(BaseModel):
    """
    Represents a single ECA offered in a term.
    Capacity bounds are optional; the allocator resolves defaults for missing values.
    """

    # --- Core Identity ---
    id: str = Field(description="Unique identifier for the activity")
    term_id: str = Field(description="ECA term this activity belongs to")
    school_id: Optional[str] = Field(default=None, description="Owning school")
    name: str = Field(min_length=1, description="Human-readable name")
    description: str = Field(default="", description="Parent-facing description")
    location: Optional[str] = Field(default=None, description="Room or venue")

    # --- Timing ---
    day_of_week: int = Field(ge=0, le=6, description="0=Monday, 6=Sunday")
    time_slot: TimeSlot = Field(description="Before or after school")

    # --- Capacity ---
    max_capacity: Optional[int] = Field(default=None, ge=0, description="Hard seat limit")
    min_capacity: Optional[int] = Field(default=None, ge=0, description="Minimum viable enrollment")

    # --- Eligibility ---
    activity_type: ActivityType = Field(default=ActivityType.OPEN)
    eligible_year_group_ids: Set[str] = Field(
        default_factory=set,
        description="Year groups allowed to join. Empty means every year group."
    )
    eligible_gender: EligibleGender = Field(default=EligibleGender.MIXED)

    # --- Lifecycle ---
    is_active: bool = Field(default=True)
    is_cancelled: bool = Field(default=False)
    cancel_reason: Optional[str] = Field(default=None)

    @field_validator('eligible_year_group_ids', mode='before')
    @classmethod
    def parse_eligibility(cls, v):
        return parse_year_group_ids(v)

    @model_validator(mode='after')
    def validate_capacity_bounds(self):
        """Ensure explicit bounds are consistent."""
        if self.max_capacity is not None and self.min_capacity is not None:
            if self.min_capacity > self.max_capacity:
                raise ValueError("min_capacity cannot exceed max_capacity")
        return self

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.day_of_week, self.time_slot)

    def is_open_for_extension(self) -> bool:
        """Can the allocator place students here who never asked for it?"""
        return self.activity_type == ActivityType.OPEN and self.is_active and not self.is_cancelled

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "id": "act_chess_tue",
            "term_id": "term_2025_t1",
            "name": "Chess Club",
            "day_of_week": 1,
            "time_slot": "AFTER_SCHOOL",
            "max_capacity": 16,
            "min_capacity": 6,
            "activity_type": "OPEN",
            "eligible_year_group_ids": ["y3", "y4", "y5"],
            "eligible_gender": "MIXED"
        }
    })
