"""
Deferred acceptance matcher (student-proposing Gale-Shapley), run once per slot.

Students propose down their preference lists. Each activity holds at most
`remaining capacity` proposals at a time, keeping the best effective ranks and
breaking ties at random, and rejects the rest. Rejected students propose again
in the next round. Proposals to AT_RISK activities are boosted one rank tier so
enrollment drifts toward the minimum viable size.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models import AllocationType, DemandLevel
from .demand import ActivityDemand
from .preferences import Preference, PreferenceList
from .slots import SlotPartition
from .state import AllocationContext

logger = logging.getLogger(__name__)


@dataclass
class Proposal:
    student_id: str
    preference: Preference
    effective_rank: int
    round: int


@dataclass
class MatchOutcome:
    """Tentative holds when the loop stopped."""
    matched: Dict[str, Proposal] = field(default_factory=dict)
    unmatched: List[str] = field(default_factory=list)
    iterations: int = 0
    cap_hit: bool = False


class DeferredAcceptanceMatcher:
    """
    Matches one slot's students to its activities.
    The context is only read during matching; `finalize` commits the outcome.
    """

    def __init__(
        self,
        context: AllocationContext,
        demand: Dict[str, ActivityDemand],
        rng: Optional[random.Random] = None
    ):
        self.context = context
        self.demand = demand
        self.rng = rng or random.Random()

    def effective_rank(self, preference: Preference) -> int:
        entry = self.demand.get(preference.activity_id)
        if entry is not None and entry.level == DemandLevel.AT_RISK:
            return max(1, preference.rank - 1)
        return preference.rank

    def match(self, partition: SlotPartition, preference_lists: Dict[str, PreferenceList]) -> MatchOutcome:
        outcome = MatchOutcome()
        if not preference_lists:
            return outcome

        capacity = {a.id: self.context.remaining_capacity(a.id) for a in partition.activities}
        held: Dict[str, List[Proposal]] = defaultdict(list)
        next_index: Dict[str, int] = {sid: 0 for sid in preference_lists}
        free = list(preference_lists)

        iteration_cap = len(preference_lists) * self.context.config.iteration_cap_per_student

        while True:
            # 1. Students with an untried preference propose
            proposers = [sid for sid in free if next_index[sid] < len(preference_lists[sid].preferences)]
            if not proposers:
                break
            if outcome.iterations >= iteration_cap:
                outcome.cap_hit = True
                logger.warning(
                    f"Deferred acceptance hit the iteration cap ({iteration_cap}) in slot {partition.key.label()}; "
                    f"{len(proposers)} students still proposing"
                )
                break
            outcome.iterations += 1

            incoming: Dict[str, List[Proposal]] = defaultdict(list)
            for sid in proposers:
                preference = preference_lists[sid].preferences[next_index[sid]]
                next_index[sid] += 1
                incoming[preference.activity_id].append(Proposal(
                    student_id=sid,
                    preference=preference,
                    effective_rank=self.effective_rank(preference),
                    round=outcome.iterations,
                ))

            # 2. Activities keep the best proposals up to capacity
            rejected = []
            for activity_id, proposals in incoming.items():
                pool = held[activity_id] + proposals
                limit = capacity.get(activity_id, 0)
                if len(pool) <= limit:
                    held[activity_id] = pool
                    continue
                self.rng.shuffle(pool)
                pool.sort(key=lambda p: p.effective_rank)
                held[activity_id] = pool[:limit]
                rejected.extend(p.student_id for p in pool[limit:])

            # 3. Rejected students rejoin the free pool; exhausted ones stay there
            holding = {p.student_id for proposals in held.values() for p in proposals}
            free = [sid for sid in preference_lists if sid not in holding]

        for proposals in held.values():
            for proposal in proposals:
                outcome.matched[proposal.student_id] = proposal
        outcome.unmatched = [sid for sid in preference_lists if sid not in outcome.matched]

        logger.debug(
            f"Slot {partition.key.label()}: {len(outcome.matched)} matched, "
            f"{len(outcome.unmatched)} unmatched after {outcome.iterations} rounds"
        )
        return outcome

    def finalize(self, outcome: MatchOutcome, preference_lists: Dict[str, PreferenceList]) -> None:
        """Turn tentative holds into seats and waitlist everyone else on their first choice."""
        for student_id, proposal in outcome.matched.items():
            forced = proposal.preference.is_forced
            self.context.add_allocation(
                student_id,
                proposal.preference.activity_id,
                AllocationType.SMART_FORCED if forced else AllocationType.SMART_RANKED,
                choice_rank=None if forced else proposal.preference.rank,
                allocation_round=proposal.round,
            )

        for student_id in outcome.unmatched:
            first_choice = preference_lists[student_id].first_choice_activity_id
            if first_choice is not None:
                self.context.add_to_waitlist(student_id, first_choice)

        if outcome.cap_hit:
            self.context.iteration_cap_hit = True
