"""Fixed pairs: players who must always be teammates when both are active."""

from collections.abc import Iterable, Sequence

from rrdoubles.models import FixedPair


def normalize_fixed_pair(a: int, b: int) -> FixedPair:
    return FixedPair.of(a, b)


def validate_fixed_pairs(fixed_pairs: list[FixedPair], players_count: int,
                         courts_count: int) -> dict:
    """Check fixed pairs against the roster size.

    Returns dict with:
    - valid: bool
    - errors: list of problems that make generation impossible
    - warnings: list of legal but notable situations
    """
    errors = []
    warnings = []

    used: set[int] = set()
    for fp in fixed_pairs:
        if fp.player1 == fp.player2:
            errors.append(f"Player {fp.player1} cannot be paired with themselves")
            continue
        for p in fp.players:
            if p in used:
                errors.append(f"Player {p} is already in another fixed pair")
            used.add(p)

    for fp in fixed_pairs:
        for p in fp.players:
            if p < 1 or p > players_count:
                errors.append(
                    f"Player {p} is out of range (1-{players_count})"
                )

    if len(fixed_pairs) > courts_count:
        warnings.append(
            f"{len(fixed_pairs)} fixed pairs for {courts_count} courts: "
            f"some fixed pairs will face each other"
        )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def active_fixed_pairs(fixed_pairs: Iterable[FixedPair],
                       active_players: Iterable[int]) -> list[FixedPair]:
    """Fixed pairs whose two members are both on the active roster."""
    active = set(active_players)
    return [fp for fp in fixed_pairs
            if fp.player1 in active and fp.player2 in active]


def splits_fixed_pair(resting_players: Iterable[int],
                      fixed_pairs: Iterable[FixedPair]) -> bool:
    """True if exactly one member of some fixed pair is resting."""
    resting = set(resting_players)
    return any((fp.player1 in resting) != (fp.player2 in resting)
               for fp in fixed_pairs)


def satisfies_fixed_pairs(arrangement: Sequence[int], courts_count: int,
                          fixed_pairs: Sequence[FixedPair],
                          player_map: Sequence[int] | None = None) -> bool:
    """Check that every fixed pair shares a pair slot in the arrangement.

    ``arrangement`` is a flat [p1,p2,p3,p4, ...] list, or a template of
    local indices when ``player_map`` is given. A fixed pair with neither
    member on court (both resting) is satisfied; one with a single member
    on court is not.
    """
    if not fixed_pairs:
        return True

    partner: dict[int, int] = {}
    for c in range(courts_count):
        slots = arrangement[c * 4:c * 4 + 4]
        if player_map is not None:
            p0, p1, p2, p3 = (player_map[i] for i in slots)
        else:
            p0, p1, p2, p3 = slots
        partner[p0] = p1
        partner[p1] = p0
        partner[p2] = p3
        partner[p3] = p2

    for fp in fixed_pairs:
        if fp.player1 not in partner and fp.player2 not in partner:
            continue
        if partner.get(fp.player1) != fp.player2:
            return False
    return True
