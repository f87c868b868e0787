from allocator.cancellation import cancel_reason, enforce_minimum_capacity
from conftest import make_activity, make_allocation, make_context, make_selection
from models import AllocationType


def _seat(context, student_id, activity_id, allocation_type=AllocationType.SMART_RANKED, rank=1):
    context.add_allocation(student_id, activity_id, allocation_type, choice_rank=rank)


def test_under_minimum_activity_is_cancelled_and_students_reallocated():
    activities = [make_activity("drama", min_cap=5), make_activity("art", max_cap=10)]
    selections = [
        make_selection("s1", "drama"), make_selection("s1", "art", rank=2),
        make_selection("s2", "drama"), make_selection("s2", "art", rank=3),
        make_selection("s3", "drama"),
    ]
    context = make_context(activities)
    for student in ("s1", "s2", "s3"):
        _seat(context, student, "drama")

    outcome = enforce_minimum_capacity(context, selections)

    assert outcome.cancelled == ["drama"]
    assert outcome.reallocated == 2
    assert context.cancelled["drama"] == "Minimum capacity of 5 not met (3 enrolled)"
    assert context.enrollment_count("drama") == 0
    assert all(a.activity_id != "drama" for a in context.new_allocations)

    reallocations = {a.student_id: a for a in context.new_allocations if a.activity_id == "art"}
    assert set(reallocations) == {"s1", "s2"}
    assert reallocations["s1"].allocation_type == AllocationType.SMART_REALLOCATION
    assert reallocations["s1"].choice_rank == 2
    assert reallocations["s2"].choice_rank == 3
    assert context.allocation_for("s3", activities[0].slot) is None


def test_reallocation_stays_in_the_same_slot():
    activities = [
        make_activity("drama", min_cap=2),
        make_activity("football", day=4),
    ]
    selections = [make_selection("s1", "drama"), make_selection("s1", "football")]
    context = make_context(activities)
    _seat(context, "s1", "drama")

    outcome = enforce_minimum_capacity(context, selections)

    assert outcome.cancelled == ["drama"]
    assert outcome.reallocated == 0
    assert context.enrollment_count("football") == 0


def test_reallocation_respects_capacity_and_drops_waitlist():
    activities = [make_activity("drama", min_cap=3), make_activity("art", max_cap=1), make_activity("lego")]
    selections = [
        make_selection("s1", "drama"), make_selection("s1", "art", rank=2), make_selection("s1", "lego", rank=3),
    ]
    context = make_context(activities)
    _seat(context, "s1", "drama")
    _seat(context, "s9", "art")
    _seat(context, "s8", "lego")
    context.add_to_waitlist("s1", "art")

    enforce_minimum_capacity(context, selections, cancel_below_minimum=False)
    assert context.cancelled == {}

    enforce_minimum_capacity(context, selections)

    assert context.allocation_for("s1", activities[0].slot) == "lego"
    assert context.waitlist_count("art") == 0


def test_preserved_seats_are_stripped_on_cancellation():
    activities = [make_activity("band", min_cap=3)]
    context = make_context(activities)
    context.add_preserved(make_allocation("s1", "band", AllocationType.INVITED))

    enforce_minimum_capacity(context, [])

    assert context.preserved_allocations == []
    assert context.displaced["band"] == ["s1"]


def test_empty_activities_with_zero_minimum_survive():
    activities = [make_activity("quiet", min_cap=0)]
    context = make_context(activities)
    outcome = enforce_minimum_capacity(context, [])
    assert outcome.cancelled == []
    assert outcome.at_risk == []


def test_at_risk_reported_when_cancellation_disabled():
    activities = [make_activity("drama", min_cap=5), make_activity("empty", min_cap=5)]
    context = make_context(activities)
    _seat(context, "s1", "drama")
    _seat(context, "s2", "drama")

    outcome = enforce_minimum_capacity(context, [], cancel_below_minimum=False)

    assert outcome.cancelled == []
    assert [a.activity_id for a in outcome.at_risk] == ["drama"]
    assert outcome.at_risk[0].shortfall == 3
    assert context.enrollment_count("drama") == 2


def test_cancel_reason_text():
    assert cancel_reason(8, 0) == "Minimum capacity of 8 not met (0 enrolled)"
