import random

from allocator.preferences import build_preference_lists, is_eligible
from allocator.slots import partition_by_slot
from conftest import make_activity, make_allocation, make_context, make_selection, make_student
from models import ActivityType, EligibleGender


def _lists(activities, selections, context=None, seed=1):
    context = context or make_context(activities)
    partition = next(iter(partition_by_slot(activities, selections).values()))
    return build_preference_lists(partition, context, random.Random(seed))


def test_explicit_choices_sorted_and_deduplicated():
    activities = [make_activity("chess"), make_activity("art"), make_activity("drama")]
    selections = [
        make_selection("s1", "drama", rank=3),
        make_selection("s1", "chess", rank=1),
        make_selection("s1", "art", rank=2),
    ]
    prefs = _lists(activities, selections)["s1"]

    assert [p.activity_id for p in prefs.preferences] == ["chess", "art", "drama"]
    assert [p.rank for p in prefs.preferences] == [1, 2, 3]
    assert not any(p.is_forced for p in prefs.preferences)
    assert prefs.first_choice_activity_id == "chess"


def test_extension_adds_eligible_open_activities_as_forced():
    activities = [
        make_activity("chess"),
        make_activity("art"),
        make_activity("band", activity_type=ActivityType.INVITE_ONLY),
        make_activity("netball", activity_type=ActivityType.TRYOUT),
        make_activity("seniors", eligible_year_group_ids=["y6"]),
        make_activity("lego"),
    ]
    selections = [make_selection("s1", "chess", year_group="y4")]
    prefs = _lists(activities, selections)["s1"]

    forced = [p for p in prefs.preferences if p.is_forced]
    assert prefs.preferences[0].activity_id == "chess"
    assert {p.activity_id for p in forced} == {"art", "lego"}
    assert all(p.rank == 99 for p in forced)


def test_extension_order_depends_on_rng():
    activities = [make_activity("chess")] + [make_activity(f"open_{i}") for i in range(8)]
    selections = [make_selection("s1", "chess")]

    orders = {
        tuple(p.activity_id for p in _lists(activities, selections, seed=seed)["s1"].preferences[1:])
        for seed in range(6)
    }
    assert len(orders) > 1
    assert _lists(activities, selections, seed=3)["s1"].preferences == _lists(activities, selections, seed=3)["s1"].preferences


def test_students_already_seated_in_slot_are_skipped():
    activities = [make_activity("chess"), make_activity("art")]
    context = make_context(activities)
    context.add_preserved(make_allocation("s1", "art"))
    selections = [make_selection("s1", "chess"), make_selection("s2", "chess")]

    assert list(_lists(activities, selections, context=context)) == ["s2"]


def test_priority_selections_do_not_build_lists():
    activities = [make_activity("chess")]
    selections = [make_selection("s1", "chess", priority=True)]
    assert _lists(activities, selections) == {}


def test_eligibility_by_year_group_only():
    open_to_all = make_activity("a")
    year_four = make_activity("b", eligible_year_group_ids=["y4"])
    girls_only = make_activity("c", eligible_gender=EligibleGender.GIRLS_ONLY)

    assert is_eligible(open_to_all, make_student("s", year_group=None))
    assert is_eligible(year_four, make_student("s", year_group="y4"))
    assert not is_eligible(year_four, make_student("s", year_group="y5"))
    assert not is_eligible(year_four, make_student("s", year_group=None))
    # Gender restrictions are stored but not enforced
    assert is_eligible(girls_only, make_student("s"))
