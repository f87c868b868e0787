import itertools
import random
from datetime import datetime, timedelta

import pytest

from allocator.config import AllocatorConfig
from allocator.engine import AllocationEngine
from allocator.memory_store import InMemoryStore
from allocator.state import AllocationContext
from models import (
    Activity,
    Allocation,
    AllocationType,
    EcaSettings,
    Selection,
    SelectionMode,
    Student,
    Term,
    TermStatus,
    TimeSlot
)

TERM_ID = "term_1"
SCHOOL_ID = "school_1"
BASE_TIME = datetime(2025, 1, 6, 8, 0, 0)

_clock = itertools.count()


def make_activity(activity_id, name=None, day=1, slot=TimeSlot.AFTER_SCHOOL, max_cap=10, min_cap=0, **fields):
    return Activity(
        id=activity_id,
        term_id=TERM_ID,
        school_id=SCHOOL_ID,
        name=name or activity_id.title(),
        day_of_week=day,
        time_slot=slot,
        max_capacity=max_cap,
        min_capacity=min_cap,
        **fields
    )


def make_student(student_id, year_group="y4"):
    return Student(id=student_id, first_name=student_id.upper(), last_name="Test", class_name="4A",
                   year_group_id=year_group)


def make_selection(student_id, activity_id, rank=1, priority=False, minute=None, year_group="y4"):
    """Selections get increasing created_at in call order unless `minute` is given."""
    offset = minute if minute is not None else next(_clock)
    return Selection(
        id=f"sel_{student_id}_{activity_id}",
        term_id=TERM_ID,
        student=make_student(student_id, year_group),
        activity_id=activity_id,
        rank=rank,
        is_priority=priority,
        created_at=BASE_TIME + timedelta(minutes=offset),
    )


def make_allocation(student_id, activity_id, allocation_type=AllocationType.COMPULSORY):
    return Allocation(term_id=TERM_ID, student_id=student_id, activity_id=activity_id,
                      allocation_type=allocation_type)


def make_store(activities, selections=(), allocations=(), mode=SelectionMode.SMART_ALLOCATION,
               status=TermStatus.REGISTRATION_CLOSED):
    return InMemoryStore(
        terms=[Term(id=TERM_ID, school_id=SCHOOL_ID, name="Term 1", status=status)],
        settings=[EcaSettings(school_id=SCHOOL_ID, selection_mode=mode)],
        activities=activities,
        selections=selections,
        allocations=allocations,
    )


def make_context(activities, config=None):
    return AllocationContext(TERM_ID, activities, config or AllocatorConfig())


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def engine_factory():
    def build(store, seed=7, **config):
        return AllocationEngine(store, config=AllocatorConfig(**config), rng=random.Random(seed))
    return build
