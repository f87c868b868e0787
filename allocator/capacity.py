"""
Capacity resolution.

Activities may leave max/min capacity unset; these helpers apply the defaults.
They are pure and are called from every other stage of the pipeline.
"""

from typing import Optional

from models import Activity
from .config import AllocatorConfig

_DEFAULT_CONFIG = AllocatorConfig()


def resolve_max_capacity(activity: Activity, config: Optional[AllocatorConfig] = None) -> int:
    """Explicit max_capacity, else 100 for choir/dance/orchestra style groups, else 25."""
    config = config or _DEFAULT_CONFIG
    if activity.max_capacity is not None:
        return activity.max_capacity

    name = activity.name.lower()
    if any(keyword.lower() in name for keyword in config.large_group_keywords):
        return config.large_group_max_capacity
    return config.default_max_capacity


def resolve_min_capacity(activity: Activity, config: Optional[AllocatorConfig] = None) -> int:
    """Explicit min_capacity, else the configured default (8)."""
    config = config or _DEFAULT_CONFIG
    if activity.min_capacity is not None:
        return activity.min_capacity
    return config.default_min_capacity
