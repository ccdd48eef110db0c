"""Schedule validation for doubles round-robin schedules.

Checks a finished (or loaded) schedule against the structural rules every
round must satisfy.
"""

from rrdoubles.fixed_pairs import active_fixed_pairs, satisfies_fixed_pairs
from rrdoubles.models import Round, Schedule, is_normalized


def _flatten(rnd: Round) -> list[int]:
    return [p for m in rnd.matches for p in m.players]


def validate_schedule(schedule: Schedule,
                      active_players: list[int] | None = None) -> dict:
    """Validate a schedule.

    ``active_players`` is the roster every round must cover; defaults to
    ``schedule.active_players`` (or 1..players when that is empty). Pass
    it explicitly to check against another roster. Rounds listed in
    ``schedule.played_rounds`` were played by an earlier roster and skip
    the roster membership checks.

    Returns dict with:
    - valid: bool (True if no hard violations)
    - errors: list of hard violations
    - warnings: list of soft issues (repeat rests, rest imbalance)
    """
    errors = []
    warnings = []

    if active_players is None:
        active_players = schedule.active_players or list(
            range(1, schedule.players + 1))
    roster = set(active_players)
    fixed_pairs = active_fixed_pairs(schedule.fixed_pairs, roster)
    played = set(schedule.played_rounds)

    seen_numbers = set()
    rest_counts = {p: 0 for p in roster}
    previous_resting: set[int] = set()
    for rnd in sorted(schedule.rounds, key=lambda r: r.number):
        label = f"Round {rnd.number}"
        if rnd.number in seen_numbers:
            errors.append(f"{label}: duplicate round number")
        seen_numbers.add(rnd.number)

        if len(rnd.matches) != schedule.courts:
            errors.append(
                f"{label}: {len(rnd.matches)} matches for {schedule.courts} courts"
            )

        slots = _flatten(rnd)
        everyone = slots + list(rnd.resting_players)
        duplicates = sorted({p for p in everyone if everyone.count(p) > 1})
        if duplicates:
            errors.append(f"{label}: players appear twice: {duplicates}")
        if rnd.number not in played:
            missing = sorted(roster - set(everyone))
            if missing:
                errors.append(f"{label}: players missing: {missing}")
            extra = sorted(set(everyone) - roster)
            if extra:
                errors.append(f"{label}: players not on the roster: {extra}")

        # Court order is free; each match must be canonical.
        for m in rnd.matches:
            if not is_normalized(list(m.players), 1):
                errors.append(f"{label}: match {m.players} is not canonical")

        if fixed_pairs and not satisfies_fixed_pairs(slots, len(rnd.matches),
                                                     fixed_pairs):
            errors.append(f"{label}: a fixed pair is split")

        resting = set(rnd.resting_players)
        repeat = sorted(resting & previous_resting)
        if repeat:
            warnings.append(f"{label}: players rest twice in a row: {repeat}")
        previous_resting = resting
        for p in resting:
            if p in rest_counts:
                rest_counts[p] += 1

    if rest_counts:
        spread = max(rest_counts.values()) - min(rest_counts.values())
        if spread > 1:
            warnings.append(f"Rest counts differ by {spread} between players")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def format_validation_report(result: dict) -> str:
    """Format validation results as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("SCHEDULE VALIDATION REPORT")
    lines.append("=" * 60)

    if result["valid"]:
        lines.append("\nRESULT: VALID (no violations)")
    else:
        lines.append(f"\nRESULT: INVALID ({len(result['errors'])} violations)")

    if result["errors"]:
        lines.append(f"\n--- ERRORS ({len(result['errors'])}) ---")
        for e in result["errors"]:
            lines.append(f"  ERROR: {e}")

    if result["warnings"]:
        lines.append(f"\n--- WARNINGS ({len(result['warnings'])}) ---")
        for w in result["warnings"]:
            lines.append(f"  WARN: {w}")

    return "\n".join(lines)
