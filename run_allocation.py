"""
Main Execution Script for the ECA Allocator.
Loads a term snapshot (JSON), runs or previews an allocation, prints a report
and optionally exports the result.
"""

import argparse
import json
import logging
import random
import sys
from typing import List, Optional

from allocator.config import AllocatorConfig
from allocator.engine import AllocationEngine
from allocator.memory_store import InMemoryStore
from models import AllocationOptions, AllocationPreview, AllocationResult, SelectionMode

logger = logging.getLogger("Main")


def load_snapshot(filename: str) -> Optional[InMemoryStore]:
    """Load a JSON snapshot and re-hydrate it into an in-memory store."""
    try:
        with open(filename, 'r') as f:
            data = json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.error(f"❌ Snapshot {filename} not found or invalid: {e}")
        return None

    store = InMemoryStore.from_snapshot(data)
    logger.info(f"📂 Loaded {len(store.activities)} activities and {len(store.selections)} selections from {filename}")
    return store


def export_result(payload, store: InMemoryStore, term_id: str, filename: str) -> None:
    """Write the report plus the post-run term snapshot."""
    data = {
        "report": payload.model_dump(mode='json'),
        "snapshot": store.to_snapshot(term_id),
    }
    with open(filename, 'w') as f:
        json.dump(data, f, indent=2)
    logger.info(f"💾 Exported result to {filename}")


def print_result(result: AllocationResult) -> None:
    print("\n" + "=" * 50)
    print("📊 ALLOCATION REPORT")
    print("=" * 50)
    if not result.success:
        print("❌ Allocation failed:")
        for error in result.errors:
            print(f"   {error}")
        return

    print(f"Mode:               {result.selection_mode.value}")
    print(f"Students:           {result.students_placed}/{result.total_students} placed")
    print(f"Allocations:        {result.total_allocations}")
    print(f"  - 1st/2nd/3rd:    {result.first_choice_allocations}/{result.second_choice_allocations}/{result.third_choice_allocations}")
    print(f"  - Forced:         {result.forced_allocations}")
    print(f"Waitlisted:         {result.waitlisted}")
    print(f"Cancelled:          {', '.join(result.cancelled_activity_names) or 'none'}")

    if result.activities_at_risk:
        print("\n⚠️  AT RISK")
        for risk in result.activities_at_risk:
            print(f"   {risk.activity_name}: {risk.current_enrollment}/{risk.min_capacity}")

    if result.suggestions:
        print("\n💡 SUGGESTIONS")
        for suggestion in result.suggestions:
            print(f"   [{suggestion.priority.value}] {suggestion.message}")


def print_preview(preview: AllocationPreview) -> None:
    print("\n" + "=" * 50)
    print(f"🔍 ALLOCATION PREVIEW ({preview.selection_mode.value})")
    print("=" * 50)
    for row in preview.activities:
        flag = " ❌ cancel" if row.will_be_cancelled else ""
        print(f"   {row.activity_name:<30} {row.allocations:>3}/{row.max_capacity:<3} waitlist {row.waitlist:>3}{flag}")
    print(f"\nTotal: {preview.total_allocations} allocated, {preview.total_waitlist} waitlisted, "
          f"{preview.activities_to_cancel} to cancel")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Allocate students to ECA activities for one term.")
    parser.add_argument("snapshot", help="Path to the term snapshot JSON")
    parser.add_argument("--mode", choices=[m.value for m in SelectionMode], default=None,
                        help="Override the school's selection mode")
    parser.add_argument("--no-cancel", action="store_true", help="Report under-enrolled activities instead of cancelling them")
    parser.add_argument("--preview", action="store_true", help="Simulate without committing")
    parser.add_argument("--seed", type=int, default=None, help="Seed the fairness shuffles (reproducible runs)")
    parser.add_argument("--config", default=None, help="JSON file with AllocatorConfig overrides")
    parser.add_argument("--output", default=None, help="Write the report and resulting snapshot here")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()]
    )

    store = load_snapshot(args.snapshot)
    if store is None:
        return 1

    config = AllocatorConfig.from_file(args.config) if args.config else AllocatorConfig()
    rng = random.Random(args.seed) if args.seed is not None else None
    engine = AllocationEngine(store, config=config, rng=rng)

    term = next(iter(store.terms.values()))
    mode = SelectionMode(args.mode) if args.mode else None

    if args.preview:
        payload = engine.preview_allocation(term.id, term.school_id, mode_override=mode)
        print_preview(payload)
        exit_code = 0
    else:
        options = AllocationOptions(
            selection_mode=mode,
            cancel_below_minimum=False if args.no_cancel else None,
        )
        payload = engine.run_allocation(term.id, term.school_id, options)
        print_result(payload)
        exit_code = 0 if payload.success else 2

    if args.output:
        export_result(payload, store, term.id, args.output)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
