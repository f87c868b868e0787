"""
Tunable constants for the ECA allocation engine.
"""

import json
from pathlib import Path
from typing import List, Union
from pydantic import BaseModel, Field, ConfigDict


class AllocatorConfig(BaseModel):
    """Every knob the engine reads. Defaults match the school portal's behaviour."""

    # --- Capacity Defaults ---
    default_max_capacity: int = Field(default=25, ge=1)
    large_group_max_capacity: int = Field(default=100, ge=1)
    large_group_keywords: List[str] = Field(
        default_factory=lambda: ["choir", "dance", "orchestra"],
        description="Case-insensitive name fragments that mark a large-group activity"
    )
    default_min_capacity: int = Field(default=8, ge=0)

    # --- Matching ---
    iteration_cap_per_student: int = Field(
        default=100,
        ge=1,
        description="Deferred acceptance stops after students x this many rounds"
    )
    forced_rank: int = Field(default=99, ge=4, description="Rank given to extended preferences")

    # --- Enforcement & Suggestions ---
    cancel_below_minimum: bool = Field(default=True)
    max_capacity_increase: int = Field(default=10, ge=1)
    severe_oversubscription_ratio: float = Field(default=1.5, gt=1.0)

    model_config = ConfigDict(extra='forbid')

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AllocatorConfig":
        """Load overrides from a JSON file. Unknown keys are rejected."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls(**data)
