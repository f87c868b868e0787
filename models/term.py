"""
Term and school-level settings for the ECA Allocator.
"""

from enum import Enum
from typing import Optional
from datetime import date
from pydantic import BaseModel, Field, model_validator


class TermStatus(str, Enum):
    DRAFT = "DRAFT"
    REGISTRATION_OPEN = "REGISTRATION_OPEN"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    ALLOCATION_IN_PROGRESS = "ALLOCATION_IN_PROGRESS"
    ALLOCATION_COMPLETE = "ALLOCATION_COMPLETE"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# Statuses from which an allocation run may start (the second one is a re-run)
RUNNABLE_TERM_STATUSES = frozenset({
    TermStatus.REGISTRATION_CLOSED,
    TermStatus.ALLOCATION_COMPLETE,
})


class SelectionMode(str, Enum):
    FIRST_COME_FIRST_SERVED = "FIRST_COME_FIRST_SERVED"
    SMART_ALLOCATION = "SMART_ALLOCATION"


class Term(BaseModel):
    """An ECA term (registration window plus the sessions that follow)."""
    id: str
    school_id: str
    name: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: TermStatus = Field(default=TermStatus.DRAFT)
    allocation_run: bool = Field(default=False, description="True once an allocation has completed")

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Term end_date cannot be before start_date")
        return self


class EcaSettings(BaseModel):
    """School-wide ECA settings."""
    school_id: str
    selection_mode: SelectionMode = Field(default=SelectionMode.FIRST_COME_FIRST_SERVED)
