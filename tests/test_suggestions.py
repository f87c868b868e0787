from allocator.cancellation import enforce_minimum_capacity
from allocator.demand import analyze_demand
from allocator.suggestions import find_unallocated_students, generate_suggestions
from conftest import make_activity, make_context, make_selection
from models import AllocationType, SuggestionPriority, SuggestionType, TimeSlot, UnallocatedReason


def _seat(context, student_id, activity_id):
    context.add_allocation(student_id, activity_id, AllocationType.SMART_RANKED, choice_rank=1)


def _scenario():
    activities = [make_activity("drama", day=1, min_cap=5), make_activity("chess", day=2, max_cap=2)]
    selections = [make_selection(s, "drama") for s in ("s1", "s2", "s3")]
    selections += [make_selection(c, "chess") for c in ("c1", "c2", "c3", "c4")]
    context = make_context(activities)
    for student in ("s1", "s2", "s3"):
        _seat(context, student, "drama")
    _seat(context, "c1", "chess")
    _seat(context, "c2", "chess")
    context.add_to_waitlist("c3", "chess")
    enforce_minimum_capacity(context, selections)
    return activities, selections, context


def test_unallocated_students_with_reasons():
    _, selections, context = _scenario()
    report = {u.student_id: u for u in find_unallocated_students(context, selections)}

    assert set(report) == {"s1", "s2", "s3", "c3", "c4"}
    assert report["s1"].unallocated_slots[0].reason == UnallocatedReason.CANCELLED
    assert report["s1"].unallocated_slots[0].requested_activities == ["Drama"]
    assert report["c4"].unallocated_slots[0].reason == UnallocatedReason.ALL_FULL
    assert report["c4"].unallocated_slots[0].day_of_week == 2
    assert report["c4"].unallocated_slots[0].time_slot == TimeSlot.AFTER_SCHOOL
    assert report["c4"].student_name == "C4 Test"


def test_ineligible_requests_are_reported():
    activities = [make_activity("seniors", eligible_year_group_ids=["y6"])]
    selections = [make_selection("s1", "seniors", year_group="y4")]
    context = make_context(activities)

    report = find_unallocated_students(context, selections)
    assert report[0].unallocated_slots[0].reason == UnallocatedReason.NO_ELIGIBLE_ACTIVITIES


def test_suggestions_sorted_by_priority():
    activities, selections, context = _scenario()
    demand = analyze_demand(activities, selections)
    unallocated = find_unallocated_students(context, selections)

    suggestions = generate_suggestions(context, demand, unallocated)
    summary = [(s.type, s.priority, s.activity_id, s.suggested_value) for s in suggestions]

    assert summary == [
        (SuggestionType.MANUAL_PLACEMENT, SuggestionPriority.HIGH, None, 5),
        (SuggestionType.LOWER_MINIMUM, SuggestionPriority.MEDIUM, "drama", 3),
        (SuggestionType.ADD_SESSION, SuggestionPriority.MEDIUM, "chess", None),
        (SuggestionType.INCREASE_CAPACITY, SuggestionPriority.LOW, "chess", 3),
    ]


def test_large_waitlist_raises_priority_and_caps_increase():
    activities = [make_activity("chess", max_cap=1)]
    context = make_context(activities)
    _seat(context, "s0", "chess")
    for i in range(12):
        context.add_to_waitlist(f"s{i + 1}", "chess")

    suggestions = generate_suggestions(context, analyze_demand(activities, []), [])
    increase = [s for s in suggestions if s.type == SuggestionType.INCREASE_CAPACITY][0]
    assert increase.priority == SuggestionPriority.MEDIUM
    assert increase.suggested_value == 11


def test_shortfall_suggestions():
    activities = [
        make_activity("close", day=1, min_cap=3),
        make_activity("far", day=2, min_cap=6),
        make_activity("gone", day=3, min_cap=10),
    ]
    context = make_context(activities)
    _seat(context, "s1", "close")
    _seat(context, "s2", "close")
    _seat(context, "s3", "far")
    context.cancel_activity("gone", "Minimum capacity of 10 not met (0 enrolled)")

    by_activity = {s.activity_id: s for s in generate_suggestions(context, analyze_demand(activities, []), [])}

    assert by_activity["close"].type == SuggestionType.LOWER_MINIMUM
    assert by_activity["close"].priority == SuggestionPriority.LOW
    assert by_activity["far"].type == SuggestionType.RECRUIT_STUDENTS
    assert by_activity["far"].priority == SuggestionPriority.MEDIUM
    assert by_activity["far"].suggested_value == 5
    assert by_activity["gone"].type == SuggestionType.RECRUIT_STUDENTS
    assert by_activity["gone"].priority == SuggestionPriority.LOW


def test_add_session_needs_demand_above_the_severe_ratio():
    activities = [make_activity("chess", day=1, max_cap=2), make_activity("kiln", day=2, max_cap=0)]
    selections = [make_selection(s, "chess") for s in ("s1", "s2", "s3")]
    selections.append(make_selection("s4", "kiln"))
    context = make_context(activities)

    suggestions = generate_suggestions(context, analyze_demand(activities, selections), [])
    sessions = [s.activity_id for s in suggestions if s.type == SuggestionType.ADD_SESSION]
    assert sessions == ["kiln"]
