from allocator.fcfs import run_first_come_first_served
from conftest import make_activity, make_allocation, make_context, make_selection
from models import AllocationType


def test_oldest_selections_win():
    activities = [make_activity("chess", max_cap=2, min_cap=1)]
    selections = [
        make_selection("s3", "chess", minute=30),
        make_selection("s1", "chess", minute=10),
        make_selection("s2", "chess", minute=20),
    ]
    context = make_context(activities)
    run_first_come_first_served(context, selections)

    assert sorted(context.activity_enrollment["chess"]) == ["s1", "s2"]
    assert context.waitlists["chess"] == ["s3"]
    assert all(a.allocation_type == AllocationType.FIRST_COME for a in context.new_allocations)
    assert all(a.choice_rank == 1 for a in context.new_allocations)


def test_second_selection_in_held_slot_is_ignored():
    activities = [make_activity("chess"), make_activity("art")]
    selections = [make_selection("s1", "chess", minute=1), make_selection("s1", "art", rank=2, minute=2)]
    context = make_context(activities)
    run_first_come_first_served(context, selections)

    assert [a.activity_id for a in context.new_allocations] == ["chess"]
    assert context.waitlist_count() == 0


def test_full_choice_waitlists_then_later_choice_may_seat():
    activities = [make_activity("chess", max_cap=1), make_activity("art")]
    selections = [
        make_selection("s1", "chess", minute=1),
        make_selection("s2", "chess", minute=2),
        make_selection("s2", "art", rank=2, minute=3),
    ]
    context = make_context(activities)
    run_first_come_first_served(context, selections)

    assert context.allocation_for("s2", activities[0].slot) == "art"
    # FCFS keeps the earlier waitlist place
    assert context.waitlists["chess"] == ["s2"]


def test_no_forced_placement():
    activities = [make_activity("chess", max_cap=1), make_activity("lego")]
    selections = [make_selection("s1", "chess", minute=1), make_selection("s2", "chess", minute=2)]
    context = make_context(activities)
    run_first_come_first_served(context, selections)

    assert context.enrollment_count("lego") == 0
    assert context.allocation_for("s2", activities[0].slot) is None


def test_preserved_seats_block_the_slot_and_count_toward_capacity():
    activities = [make_activity("chess", max_cap=1), make_activity("band", day=3)]
    context = make_context(activities)
    context.add_preserved(make_allocation("s0", "chess", AllocationType.INVITED))
    selections = [make_selection("s1", "chess", minute=1)]
    run_first_come_first_served(context, selections)

    assert context.new_allocations == []
    assert context.waitlists["chess"] == ["s1"]
