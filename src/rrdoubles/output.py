"""Output formatters for the doubles round-robin scheduler."""

import csv
from io import StringIO
from pathlib import Path

import yaml

from rrdoubles.errors import InvalidParameters
from rrdoubles.evaluation import evaluate
from rrdoubles.models import FixedPair, Match, Pair, Round, Schedule, Weights


def format_schedule(schedule: Schedule) -> str:
    """Format schedule as human-readable text, one block per round."""
    lines = []
    lines.append("=" * 60)
    lines.append(f"DOUBLES ROUND ROBIN: {len(schedule.rounds)} rounds, "
                 f"{schedule.courts} courts")
    lines.append("=" * 60)

    if schedule.fixed_pairs:
        pairs = ", ".join(f"{fp.player1}&{fp.player2}" for fp in schedule.fixed_pairs)
        lines.append(f"Fixed pairs: {pairs}")

    for rnd in sorted(schedule.rounds, key=lambda r: r.number):
        lines.append(f"\n--- ROUND {rnd.number} ---")
        for court, m in enumerate(rnd.matches, 1):
            a, b = m.pair_a, m.pair_b
            lines.append(f"  Court {court}:  {a.player1:>3} & {a.player2:<3} vs "
                         f"{b.player1:>3} & {b.player2:<3}")
        if rnd.resting_players:
            resting = ", ".join(str(p) for p in rnd.resting_players)
            lines.append(f"  Resting:  {resting}")

    return "\n".join(lines)


def format_csv(schedule: Schedule) -> str:
    """Format schedule as CSV.

    Columns: Round, Court, A1, A2, B1, B2, Resting
    Resting is filled on the first court row of each round only.
    """
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Round", "Court", "A1", "A2", "B1", "B2", "Resting"])
    for rnd in sorted(schedule.rounds, key=lambda r: r.number):
        resting = " ".join(str(p) for p in rnd.resting_players)
        for court, m in enumerate(rnd.matches, 1):
            writer.writerow([rnd.number, court, *m.players,
                             resting if court == 1 else ""])
    return output.getvalue()


def schedule_to_dict(schedule: Schedule) -> dict:
    return {
        "courts": schedule.courts,
        "players": schedule.players,
        "active_players": list(schedule.active_players),
        "fixed_pairs": [list(fp.players) for fp in schedule.fixed_pairs],
        "played_rounds": list(schedule.played_rounds),
        "rounds": [
            {
                "number": rnd.number,
                "matches": [list(m.players) for m in rnd.matches],
                "resting": list(rnd.resting_players),
            }
            for rnd in sorted(schedule.rounds, key=lambda r: r.number)
        ],
    }


def schedule_from_dict(data: dict, weights: Weights | None = None) -> Schedule:
    """Rebuild a Schedule from ``schedule_to_dict`` output.

    The evaluation is recomputed from the rounds with ``weights``.
    """
    try:
        rounds = []
        for r in data["rounds"]:
            matches = []
            for players in r["matches"]:
                p1, p2, p3, p4 = (int(p) for p in players)
                matches.append(Match(Pair.of(p1, p2), Pair.of(p3, p4)))
            rounds.append(Round(
                number=int(r["number"]),
                matches=matches,
                resting_players=sorted(int(p) for p in r.get("resting", [])),
            ))
        players = int(data["players"])
        schedule = Schedule(
            courts=int(data["courts"]),
            players=players,
            rounds=rounds,
            evaluation=evaluate(rounds, players, weights or Weights()),
            fixed_pairs=[FixedPair.of(int(a), int(b))
                         for a, b in data.get("fixed_pairs", [])],
            active_players=[int(p) for p in data.get("active_players", [])],
            played_rounds=[int(n) for n in data.get("played_rounds", [])],
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidParameters(f"Malformed schedule data: {e}") from e
    return schedule


def write_schedule_yaml(schedule: Schedule, path: str | Path) -> Path:
    path = Path(path)
    with open(path, "w") as f:
        yaml.safe_dump(schedule_to_dict(schedule), f, sort_keys=False,
                       default_flow_style=None)
    return path


def load_schedule_yaml(path: str | Path, weights: Weights | None = None) -> Schedule:
    """Load a schedule written by ``write_schedule_yaml``."""
    with open(Path(path)) as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise InvalidParameters(f"{path}: not a saved schedule")
    return schedule_from_dict(data, weights)


def write_schedule(schedule: Schedule, output_prefix: str = "output") -> None:
    """Write all output files into {output_prefix}/ directory."""
    out_dir = Path(output_prefix)
    out_dir.mkdir(parents=True, exist_ok=True)

    schedule_path = out_dir / "schedule.txt"
    schedule_path.write_text(format_schedule(schedule))
    print(f"Written: {schedule_path}")

    csv_path = out_dir / "schedule.csv"
    csv_path.write_text(format_csv(schedule))
    print(f"Written: {csv_path}")

    yaml_path = write_schedule_yaml(schedule, out_dir / "schedule.yaml")
    print(f"Written: {yaml_path}")
