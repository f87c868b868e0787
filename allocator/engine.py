"""
The ECA Allocation Engine.

This module implements the top-level run of the allocator.
One run is a synchronous batch job over a single term:
1. Load activities, selections and preserved (COMPULSORY/INVITED/MANUAL) seats.
2. Allocate, either First-Come-First-Served or the Smart pipeline
   (priority pass + per-slot deferred acceptance).
3. Enforce minimum capacity (cancel, strip, reallocate once).
4. Commit to the store and report, with waitlists and suggestions.

Runs on the same term are serialised by the store's term lock.
"""

import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from models import (
    Activity,
    ActivityPreview,
    Allocation,
    AllocationOptions,
    AllocationPreview,
    AllocationResult,
    AllocationType,
    ENGINE_ALLOCATION_TYPES,
    RUNNABLE_TERM_STATUSES,
    Selection,
    SelectionMode,
    Term,
    TermStatus,
    WaitlistEntry
)
from .cancellation import EnforcementOutcome, enforce_minimum_capacity
from .capacity import resolve_max_capacity
from .config import AllocatorConfig
from .demand import ActivityDemand, analyze_demand
from .errors import (
    AllocationError,
    AllocationInProgressError,
    CapacityExceededError,
    DuplicateRecordError,
    SlotConflictError,
    TermNotFoundError,
    TermStateError
)
from .fcfs import run_first_come_first_served
from .smart import run_smart_allocation
from .state import AllocationContext
from .store import AllocationStore
from .suggestions import find_unallocated_students, generate_suggestions

logger = logging.getLogger(__name__)


@dataclass
class Simulation:
    """Everything one in-memory pass produces."""
    context: AllocationContext
    demand: Dict[str, ActivityDemand]
    enforcement: EnforcementOutcome
    projected_enrollment: Dict[str, int]
    projected_waitlist: Dict[str, int]


class AllocationEngine:
    """
    Entry points: run_allocation (commits), preview_allocation (read-only)
    and promote_from_waitlist (admin action).

    `rng` drives the fairness shuffles. Production leaves it unseeded on
    purpose; tests pass random.Random(seed) for exact outcomes.
    """

    def __init__(
        self,
        store: AllocationStore,
        config: Optional[AllocatorConfig] = None,
        rng: Optional[random.Random] = None
    ):
        self.store = store
        self.config = config or AllocatorConfig()
        self.rng = rng or random.Random()

    # --- Entry points ---

    def run_allocation(
        self,
        term_id: str,
        school_id: str,
        options: Optional[AllocationOptions] = None
    ) -> AllocationResult:
        """
        Execute and commit an allocation run.
        Never raises: failures set success=False and are listed in `errors`.
        """
        options = options or AllocationOptions()
        cancel_below_minimum = (
            options.cancel_below_minimum
            if options.cancel_below_minimum is not None
            else self.config.cancel_below_minimum
        )

        result = AllocationResult()
        locked = False
        committing = False
        prior_status: Optional[TermStatus] = None

        try:
            term = self._get_term(term_id, school_id)
            if term.status != TermStatus.ALLOCATION_IN_PROGRESS and term.status not in RUNNABLE_TERM_STATUSES:
                raise TermStateError(
                    f"Allocation can only be run after registration closes (term status is {term.status.value})"
                )

            if not self.store.acquire_term_lock(term_id):
                raise AllocationInProgressError(term_id)
            locked = True

            # IN_PROGRESS without a lock holder means an earlier run died mid-way
            term = self._get_term(term_id, school_id)
            if term.status == TermStatus.ALLOCATION_IN_PROGRESS:
                logger.warning(f"Term {term_id} was left {term.status.value} by an interrupted run; re-running")
                prior_status = TermStatus.REGISTRATION_CLOSED
            else:
                prior_status = term.status
            self.store.update_term(term_id, status=TermStatus.ALLOCATION_IN_PROGRESS)

            mode = self._resolve_mode(school_id, options.selection_mode)
            result.selection_mode = mode
            logger.info(f"Starting {mode.value} allocation for term {term_id}...")

            # 1. Load
            activities = self.store.list_activities(term_id)
            selections = self.store.list_selections(term_id)
            existing = self.store.list_allocations(term_id)

            # 2 & 3. Compute in memory
            sim = self._simulate(term_id, activities, selections, existing, mode, cancel_below_minimum)

            # 4. Commit
            committing = True
            self._commit(term_id, sim.context)
            self._fill_result(result, sim, selections)

            self.store.update_term(term_id, allocation_run=True, status=TermStatus.ALLOCATION_COMPLETE)
            result.success = True
            logger.info(
                f"Allocation complete for term {term_id}: {result.total_allocations} allocated, "
                f"{result.waitlisted} waitlisted, {result.cancelled_activities} cancelled"
            )

        except AllocationError as e:
            logger.warning(f"Allocation for term {term_id} refused: {e}")
            result.errors.append(str(e))
        except Exception as e:
            logger.exception(f"Allocation for term {term_id} failed")
            result.errors.append(str(e) or f"Unknown error during allocation ({type(e).__name__})")

        finally:
            if not result.success and prior_status is not None:
                self._restore_status(term_id, prior_status, committing, result)
            if locked:
                self.store.release_term_lock(term_id)

        return result

    def preview_allocation(
        self,
        term_id: str,
        school_id: str,
        mode_override: Optional[SelectionMode] = None
    ) -> AllocationPreview:
        """Simulate a run without writing anything or taking the term lock."""
        self._get_term(term_id, school_id)
        default_mode = self._resolve_mode(school_id, None)
        mode = mode_override or default_mode

        activities = self.store.list_activities(term_id)
        selections = self.store.list_selections(term_id)
        existing = self.store.list_allocations(term_id)

        sim = self._simulate(term_id, activities, selections, existing, mode, cancel_below_minimum=True)
        context = sim.context

        preview = AllocationPreview(selection_mode=mode, default_selection_mode=default_mode)
        for activity in activities:
            allocations = sim.projected_enrollment[activity.id]
            waitlist = sim.projected_waitlist.get(activity.id, 0)
            minimum = context.min_capacity[activity.id]
            preview.activities.append(ActivityPreview(
                activity_id=activity.id,
                activity_name=activity.name,
                allocations=allocations,
                waitlist=waitlist,
                below_minimum=allocations < minimum,
                will_be_cancelled=context.is_cancelled(activity.id),
                min_capacity=minimum,
                max_capacity=context.max_capacity[activity.id],
                demand_level=sim.demand[activity.id].level,
            ))
            preview.total_allocations += allocations
            preview.total_waitlist += waitlist

        preview.activities_to_cancel = len(context.cancelled)
        return preview

    def promote_from_waitlist(self, term_id: str, activity_id: str, student_id: str) -> Allocation:
        """Give a waitlisted student a MANUAL seat. Raises on any rule violation."""
        if not self.store.acquire_term_lock(term_id):
            raise AllocationInProgressError(term_id)
        try:
            activities = {a.id: a for a in self.store.list_activities(term_id)}
            activity = activities.get(activity_id)
            if activity is None:
                raise AllocationError(f"Activity {activity_id} is not running in term {term_id}")

            if not any(w.student_id == student_id for w in self.store.list_waitlist(activity_id)):
                raise AllocationError(f"Student {student_id} is not on the waitlist for '{activity.name}'")

            confirmed = self.store.list_allocations(term_id)
            enrolled = sum(1 for a in confirmed if a.activity_id == activity_id)
            if enrolled >= resolve_max_capacity(activity, self.config):
                raise CapacityExceededError(f"'{activity.name}' is at full capacity")

            for allocation in confirmed:
                held = activities.get(allocation.activity_id)
                if allocation.student_id == student_id and held is not None and held.slot == activity.slot:
                    raise SlotConflictError(
                        f"Student {student_id} already attends '{held.name}' in slot {activity.slot.label()}"
                    )

            created = self.store.create_allocation(Allocation(
                term_id=term_id,
                student_id=student_id,
                activity_id=activity_id,
                allocation_type=AllocationType.MANUAL,
            ))
            self.store.delete_waitlist_entry(activity_id, student_id)
            logger.info(f"Promoted {student_id} from the waitlist of '{activity.name}'")
            return created
        finally:
            self.store.release_term_lock(term_id)

    # --- Pipeline ---

    def _simulate(
        self,
        term_id: str,
        activities: List[Activity],
        selections: List[Selection],
        existing: List[Allocation],
        mode: SelectionMode,
        cancel_below_minimum: bool
    ) -> Simulation:
        context = AllocationContext(term_id, activities, self.config)

        # Preserved seats count toward occupancy before any matching
        for allocation in existing:
            if allocation.allocation_type.is_preserved:
                context.add_preserved(allocation)

        demand = analyze_demand(activities, selections, self.config)

        if mode == SelectionMode.FIRST_COME_FIRST_SERVED:
            run_first_come_first_served(context, selections)
        else:
            run_smart_allocation(context, activities, selections, demand, self.rng)

        projected_enrollment = {aid: context.enrollment_count(aid) for aid in context.activities}
        projected_waitlist = {aid: context.waitlist_count(aid) for aid in context.activities}

        enforcement = enforce_minimum_capacity(context, selections, cancel_below_minimum)

        return Simulation(
            context=context,
            demand=demand,
            enforcement=enforcement,
            projected_enrollment=projected_enrollment,
            projected_waitlist=projected_waitlist,
        )

    def _commit(self, term_id: str, context: AllocationContext) -> None:
        """
        Write the context to the store.
        No rollback: a failure here leaves earlier rows in place and the term
        without ALLOCATION_COMPLETE, which signals that a re-run is needed.
        """
        removed = self.store.delete_allocations(term_id, ENGINE_ALLOCATION_TYPES)
        cleared = self.store.delete_waitlist(term_id)
        logger.debug(f"Cleared {removed} previous allocations and {cleared} waitlist rows")

        for allocation in context.new_allocations:
            try:
                self.store.create_allocation(allocation)
            except DuplicateRecordError as e:
                logger.debug(f"Skipping duplicate allocation: {e}")

        for activity_id, student_id, _ in context.waitlist_entries():
            entry = WaitlistEntry(
                term_id=term_id,
                student_id=student_id,
                activity_id=activity_id,
                position=self.store.next_waitlist_position(activity_id),
            )
            try:
                self.store.create_waitlist_entry(entry)
            except DuplicateRecordError as e:
                logger.debug(f"Skipping duplicate waitlist entry: {e}")

        for activity_id, reason in context.cancelled.items():
            self.store.update_activity(activity_id, is_cancelled=True, cancel_reason=reason)
            self.store.delete_activity_allocations(activity_id)

    def _fill_result(self, result: AllocationResult, sim: Simulation, selections: List[Selection]) -> None:
        context = sim.context
        stats = context.get_statistics()

        result.total_students = len({s.student_id for s in selections})
        result.students_placed = stats["students_placed"]
        result.total_allocations = stats["total_allocations"]
        result.waitlisted = stats["waitlisted"]

        result.first_choice_allocations = stats["first_choice"]
        result.second_choice_allocations = stats["second_choice"]
        result.third_choice_allocations = stats["third_choice"]
        result.forced_allocations = stats["forced"]

        result.cancelled_activities = len(context.cancelled)
        result.cancelled_activity_names = [context.activities[aid].name for aid in context.cancelled]
        result.activities_at_risk = sim.enforcement.at_risk

        result.unallocated_students = find_unallocated_students(context, selections)
        result.suggestions = generate_suggestions(context, sim.demand, result.unallocated_students)
        result.iteration_cap_hit = context.iteration_cap_hit

    # --- Helpers ---

    def _get_term(self, term_id: str, school_id: str) -> Term:
        term = self.store.get_term(term_id)
        if term is None or term.school_id != school_id:
            raise TermNotFoundError(term_id)
        return term

    def _resolve_mode(self, school_id: str, requested: Optional[SelectionMode]) -> SelectionMode:
        if requested is not None:
            return requested
        settings = self.store.get_settings(school_id)
        if settings is None:
            return SelectionMode.FIRST_COME_FIRST_SERVED
        return settings.selection_mode

    def _restore_status(self, term_id: str, prior: TermStatus, committing: bool, result: AllocationResult) -> None:
        """
        Put a failed term back into a runnable state.
        A failed re-run never keeps ALLOCATION_COMPLETE, and once commit has
        started the earlier rows are gone, so `allocation_run` is cleared too.
        """
        status = TermStatus.REGISTRATION_CLOSED if prior == TermStatus.ALLOCATION_COMPLETE else prior
        fields = {"status": status}
        if committing:
            fields["allocation_run"] = False
        try:
            self.store.update_term(term_id, **fields)
        except Exception as e:
            logger.exception(f"Could not restore status of term {term_id}")
            result.errors.append(f"Could not restore term status: {e}")
