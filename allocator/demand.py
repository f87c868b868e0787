"""
Demand analysis.

Classifies each activity by how many selections it attracted relative to its
resolved capacity. The matcher reads the table to give AT_RISK activities a
one-tier rank boost; the suggestion generator reads it for follow-ups.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from models import Activity, DemandLevel, Selection
from .capacity import resolve_max_capacity, resolve_min_capacity
from .config import AllocatorConfig


@dataclass(frozen=True)
class ActivityDemand:
    """Demand snapshot for one activity."""
    activity_id: str
    selections: int
    max_capacity: int
    min_capacity: int
    level: DemandLevel

    @property
    def ratio(self) -> float:
        if self.max_capacity == 0:
            return float('inf') if self.selections else 0.0
        return self.selections / self.max_capacity


def classify_demand(selections: int, max_capacity: int, min_capacity: int) -> DemandLevel:
    """
    Thresholds, checked in order:
    below minimum -> AT_RISK, below 50% of max -> LOW_DEMAND, up to max -> BALANCED,
    up to 150% of max -> HIGH_DEMAND, beyond -> OVERSUBSCRIBED.
    """
    if selections < min_capacity:
        return DemandLevel.AT_RISK
    if selections < 0.5 * max_capacity:
        return DemandLevel.LOW_DEMAND
    if selections <= max_capacity:
        return DemandLevel.BALANCED
    if selections <= 1.5 * max_capacity:
        return DemandLevel.HIGH_DEMAND
    return DemandLevel.OVERSUBSCRIBED


def analyze_demand(
    activities: Iterable[Activity],
    selections: Iterable[Selection],
    config: Optional[AllocatorConfig] = None
) -> Dict[str, ActivityDemand]:
    """Build the activity_id -> ActivityDemand lookup table."""
    counts = Counter(s.activity_id for s in selections)

    table = {}
    for activity in activities:
        max_cap = resolve_max_capacity(activity, config)
        min_cap = resolve_min_capacity(activity, config)
        demand = counts.get(activity.id, 0)
        table[activity.id] = ActivityDemand(
            activity_id=activity.id,
            selections=demand,
            max_capacity=max_cap,
            min_capacity=min_cap,
            level=classify_demand(demand, max_cap, min_cap),
        )
    return table
