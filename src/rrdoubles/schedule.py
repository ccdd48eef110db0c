#!/usr/bin/env python3
"""Doubles round-robin schedule builder.

Generate mode (default):
    rrdoubles [config.yaml] [--seed N] [--strategy ID] [-o PREFIX]

    Generates a schedule from the YAML config and writes:
      {PREFIX}/schedule.txt   - Human-readable round-by-round schedule
      {PREFIX}/schedule.csv   - One row per court
      {PREFIX}/schedule.yaml  - Saved schedule (input for --resume)
      {PREFIX}/stats.txt      - Validation report + statistics

Resume mode:
    rrdoubles [config.yaml] --resume <schedule.yaml> --completed N
              [--remove ID ...] [--add K]

    Keeps the first N rounds of a saved schedule, applies the roster
    change and regenerates the rounds that have not been played.

Verify mode:
    rrdoubles --verify <schedule.yaml>

Examples:
    rrdoubles                                  # default config
    rrdoubles --seed 42 -o club-night          # reproducible, custom prefix
    rrdoubles --strategy greedy                # exhaustive search
    rrdoubles --resume output/schedule.yaml --completed 3 --remove 5 --add 1
"""

import argparse
import sys
from pathlib import Path

from rrdoubles.config import load_config
from rrdoubles.errors import SchedulingError
from rrdoubles.models import RegenerationParams, ScheduleParams
from rrdoubles.output import load_schedule_yaml, write_schedule
from rrdoubles.registry import available_strategies
from rrdoubles.scheduler import generate_schedule, regenerate_suffix, validate_params
from rrdoubles.stats import compute_stats, format_stats_report
from rrdoubles.verify import format_validation_report, validate_schedule


def apply_roster_change(players: list[int], remove: list[int],
                        add: int) -> list[int]:
    """Drop ``remove`` and append ``add`` new players with the next free ids."""
    active = [p for p in sorted(players) if p not in set(remove)]
    next_id = max(players) + 1
    active.extend(range(next_id, next_id + add))
    return active


def _report(schedule, output_prefix: str) -> bool:
    print("\nValidating...")
    result = validate_schedule(schedule)
    report = format_validation_report(result)
    print(report)

    stats_text = format_stats_report(compute_stats(schedule))
    print("\n" + stats_text)

    print("\nWriting output files...")
    write_schedule(schedule, output_prefix=output_prefix)
    stats_path = Path(output_prefix) / "stats.txt"
    stats_path.write_text(report + "\n\n" + stats_text)
    print(f"Written: {stats_path}")
    return result["valid"]


def main():
    parser = argparse.ArgumentParser(
        description="Doubles round-robin schedule builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Output files (generate and resume modes):
  {prefix}/schedule.txt   Human-readable schedule
  {prefix}/schedule.csv   One row per court
  {prefix}/schedule.yaml  Saved schedule (input for --resume)
  {prefix}/stats.txt      Validation report + balance statistics

Exit codes:
  0  Schedule generated (or verified) with no violations
  1  Violations found, or generation error
""",
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed (overrides the config) for reproducible schedules"
    )
    parser.add_argument(
        "--strategy", default=None,
        help="Strategy id (overrides the config); see --list-strategies"
    )
    parser.add_argument(
        "--output-prefix", "-o", default="output",
        help="Output directory for generated files (default: output/)"
    )
    parser.add_argument(
        "--quiet", "-q", action="store_true",
        help="Do not print per-round progress"
    )
    parser.add_argument(
        "--list-strategies", action="store_true",
        help="List available strategies and exit"
    )
    parser.add_argument(
        "--verify", metavar="YAML",
        help="Verify a saved schedule instead of generating"
    )
    parser.add_argument(
        "--resume", metavar="YAML",
        help="Regenerate the unplayed rounds of a saved schedule"
    )
    parser.add_argument(
        "--completed", type=int, default=0,
        help="Rounds already played (kept unchanged) when resuming"
    )
    parser.add_argument(
        "--remove", type=int, nargs="*", default=[], metavar="ID",
        help="Players leaving before the next round"
    )
    parser.add_argument(
        "--add", type=int, default=0, metavar="K",
        help="Number of players joining before the next round"
    )
    args = parser.parse_args()

    if args.list_strategies:
        for s in available_strategies():
            tag = " (experimental)" if s.is_experimental else ""
            print(f"{s.id:<22} {s.name}{tag}")
            print(f"{'':<22} {s.description}")
        return

    if args.verify:
        print(f"Verifying schedule from {args.verify}...")
        try:
            schedule = load_schedule_yaml(args.verify)
        except (OSError, SchedulingError) as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"Loaded {len(schedule.rounds)} rounds")
        result = validate_schedule(schedule)
        print(format_validation_report(result))
        print("\n" + format_stats_report(compute_stats(schedule)))
        sys.exit(0 if result["valid"] else 1)

    config = None
    if Path(args.config).exists():
        print(f"Loading config from {args.config}...")
        try:
            config = load_config(args.config)
        except SchedulingError as e:
            print(f"Error: {e}")
            sys.exit(1)
    elif not args.resume:
        print(f"Error: config file {args.config} not found")
        sys.exit(1)

    params = config["params"] if config else ScheduleParams(0, 0, 0)
    strategy = args.strategy or (config["strategy"] if config else None)
    seed = args.seed if args.seed is not None else params.seed
    verbose = not args.quiet

    try:
        if args.resume:
            saved = load_schedule_yaml(args.resume, params.weights)
            total = len(saved.rounds)
            if not 0 <= args.completed <= total:
                print(f"Error: --completed must be between 0 and {total}")
                sys.exit(1)
            kept = sorted(saved.rounds, key=lambda r: r.number)[:args.completed]
            roster = saved.active_players or list(range(1, saved.players + 1))
            active = apply_roster_change(roster, args.remove, args.add)
            print(f"Resuming after round {args.completed}: "
                  f"{len(active)} active players, "
                  f"{total - args.completed} rounds to regenerate")
            regen = RegenerationParams(
                courts_count=saved.courts,
                completed_rounds=kept,
                active_players=active,
                remaining_rounds_count=total - args.completed,
                weights=params.weights,
                fixed_pairs=saved.fixed_pairs,
                seed=seed,
            )
            schedule = regenerate_suffix(regen, strategy, verbose=verbose)
        else:
            params.seed = seed
            for w in validate_params(params):
                print(f"Warning: {w}")
            print(f"Generating schedule (seed={seed})...")
            schedule = generate_schedule(params, strategy, verbose=verbose)
    except (OSError, SchedulingError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    if _report(schedule, args.output_prefix):
        print("\nSchedule generated successfully!")
    else:
        print("\nSchedule has violations; review errors above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
