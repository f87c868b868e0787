import pytest

from allocator.capacity import resolve_max_capacity, resolve_min_capacity
from allocator.config import AllocatorConfig
from conftest import make_activity


def test_explicit_capacity_wins():
    activity = make_activity("a", name="Junior Choir", max_cap=12, min_cap=3)
    assert resolve_max_capacity(activity) == 12
    assert resolve_min_capacity(activity) == 3


@pytest.mark.parametrize("name, expected", [
    ("Junior CHOIR", 100),
    ("Hip Hop Dance", 100),
    ("String Orchestra", 100),
    ("Chess Club", 25),
])
def test_name_heuristic(name, expected):
    activity = make_activity("a", name=name, max_cap=None)
    assert resolve_max_capacity(activity) == expected


def test_default_minimum():
    activity = make_activity("a", min_cap=None)
    assert resolve_min_capacity(activity) == 8


def test_zero_minimum_is_explicit():
    activity = make_activity("a", min_cap=0)
    assert resolve_min_capacity(activity) == 0


def test_config_overrides_defaults():
    config = AllocatorConfig(default_max_capacity=30, large_group_keywords=["band"], default_min_capacity=4)
    assert resolve_max_capacity(make_activity("a", name="Concert Band", max_cap=None), config) == 100
    assert resolve_max_capacity(make_activity("b", name="Choir", max_cap=None), config) == 30
    assert resolve_min_capacity(make_activity("c", min_cap=None), config) == 4


def test_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"default_max_capacity": 20, "bogus": 1}')
    with pytest.raises(ValueError):
        AllocatorConfig.from_file(path)


def test_config_from_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text('{"default_max_capacity": 20, "cancel_below_minimum": false}')
    config = AllocatorConfig.from_file(path)
    assert config.default_max_capacity == 20
    assert config.cancel_below_minimum is False
    assert config.default_min_capacity == 8
