"""Per-player statistics and balance reporting for doubles schedules."""

from collections import defaultdict

from rrdoubles.evaluation import (
    initialize_count_matrix, initialize_rest_counts, update_count_matrices,
    update_rest_counts,
)
from rrdoubles.models import Schedule


def compute_stats(schedule: Schedule) -> dict:
    """Compute per-player statistics for a schedule.

    Returns dict with pair and opponent matrices (indexed by player id - 1),
    per-player rest, play, distinct-partner and distinct-opponent counts,
    and the player pairs a fixed pair forces to zero.
    """
    n = schedule.players
    pair_counts = initialize_count_matrix(n)
    oppo_counts = initialize_count_matrix(n)
    rest_counts = initialize_rest_counts(n)
    play_counts = defaultdict(int)

    for rnd in schedule.rounds:
        update_count_matrices(rnd, pair_counts, oppo_counts)
        update_rest_counts(rnd, rest_counts)
        for p in rnd.playing_players:
            play_counts[p] += 1

    players = sorted(schedule.active_players) or list(range(1, n + 1))
    distinct_partners = {}
    distinct_opponents = {}
    for p in players:
        distinct_partners[p] = sum(1 for c in pair_counts[p - 1] if c > 0)
        distinct_opponents[p] = sum(1 for c in oppo_counts[p - 1] if c > 0)

    # A fixed pair's members never partner anyone else, so those cells
    # stay at zero by construction rather than by imbalance.
    forced_zero = set()
    for fp in schedule.fixed_pairs:
        for member in fp.players:
            for other in players:
                if other != member and other != fp.partner(member):
                    forced_zero.add((min(member, other), max(member, other)))

    return {
        "players": players,
        "rounds": len(schedule.rounds),
        "pair_counts": pair_counts,
        "oppo_counts": oppo_counts,
        "rest_counts": {p: rest_counts[p - 1] for p in players},
        "play_counts": {p: play_counts.get(p, 0) for p in players},
        "distinct_partners": distinct_partners,
        "distinct_opponents": distinct_opponents,
        "fixed_pair_zero_cells": forced_zero,
        "evaluation": schedule.evaluation,
    }


def format_stats_report(stats: dict) -> str:
    """Format statistics into a human-readable report."""
    lines = []
    lines.append("=" * 60)
    lines.append("SCHEDULE STATISTICS")
    lines.append("=" * 60)

    players = stats["players"]
    evaluation = stats["evaluation"]
    lines.append(f"\nRounds: {stats['rounds']}   Players: {len(players)}")
    lines.append(f"Score: {evaluation.total_score:.4f}  "
                 f"(pair sd {evaluation.pair_stddev:.4f}, "
                 f"opponent sd {evaluation.oppo_stddev:.4f}, "
                 f"rest sd {evaluation.rest_stddev:.4f})")

    lines.append("\n--- PLAYER BALANCE ---")
    lines.append(f"{'Player':<8} {'Play':>5} {'Rest':>5} {'Partners':>9} {'Opponents':>10}")
    lines.append("-" * 41)
    rests = stats["rest_counts"]
    spread = max(rests.values()) - min(rests.values()) if rests else 0
    for p in players:
        flag = " ***" if spread > 1 and rests[p] == max(rests.values()) else ""
        lines.append(f"{p:<8} {stats['play_counts'][p]:>5} {rests[p]:>5} "
                     f"{stats['distinct_partners'][p]:>9} "
                     f"{stats['distinct_opponents'][p]:>10}{flag}")

    zero_cells = stats["fixed_pair_zero_cells"]
    for title, key in (("PARTNER MATRIX", "pair_counts"),
                       ("OPPONENT MATRIX", "oppo_counts")):
        matrix = stats[key]
        lines.append(f"\n--- {title} ---")
        header = f"{'':>4}"
        for p in players:
            header += f" {p:>3}"
        lines.append(header)
        lines.append("-" * (4 + 4 * len(players)))
        for p1 in players:
            row = f"{p1:>4}"
            for p2 in players:
                if p1 == p2:
                    row += "   -"
                elif key == "pair_counts" and (min(p1, p2), max(p1, p2)) in zero_cells:
                    row += "   x"
                else:
                    row += f" {matrix[p1 - 1][p2 - 1]:>3}"
            lines.append(row)
    if zero_cells:
        lines.append("\n  x = kept at zero by a fixed pair")

    return "\n".join(lines)
