"""Choosing which players sit out a round.

Two selectors:
- ``iter_resting_candidates`` enumerates every acceptable resting set
  (used by the greedy strategy, which scores them all).
- ``select_resting_players`` draws a single resting set (used by the
  sequential decision strategy).
"""

import random
from collections.abc import Iterator, Sequence
from itertools import combinations

from rrdoubles.fixed_pairs import active_fixed_pairs, splits_fixed_pair
from rrdoubles.models import FixedPair

# Added to a unit's score when it rested in the previous round.
PREVIOUS_REST_PENALTY = 1000


def generate_resting_candidates(all_players: Sequence[int], rest_count: int,
                                rest_counts: Sequence[int],
                                previous_resting: Sequence[int] | None = None,
                                fixed_pairs: Sequence[FixedPair] = (),
                                balanced: bool = True) -> Iterator[list[int]]:
    """Yield resting sets of size ``rest_count``.

    With ``balanced`` and a rest-count spread (max - min) of 2 or more,
    only players at the minimum may rest, topped up from players below
    the maximum when there are too few of them. Otherwise any subset of
    ``all_players`` is a candidate.

    Candidates that overlap ``previous_resting`` or split a fixed pair
    are skipped.
    """
    if rest_count == 0:
        yield []
        return

    counts = {p: rest_counts[p - 1] for p in all_players}
    min_rest = min(counts.values())
    max_rest = max(counts.values())

    if balanced and max_rest - min_rest >= 2:
        must_rest = [p for p in all_players if counts[p] == min_rest]
        if len(must_rest) >= rest_count:
            source = (list(c) for c in combinations(must_rest, rest_count))
        else:
            others = [p for p in all_players
                      if min_rest < counts[p] < max_rest]
            source = (sorted(must_rest + list(extra)) for extra in
                      combinations(others, rest_count - len(must_rest)))
    else:
        source = (list(c) for c in combinations(all_players, rest_count))

    previous = set(previous_resting or ())
    for candidate in source:
        if previous and not previous.isdisjoint(candidate):
            continue
        if fixed_pairs and splits_fixed_pair(candidate, fixed_pairs):
            continue
        yield candidate


def iter_resting_candidates(all_players: Sequence[int], rest_count: int,
                            rest_counts: Sequence[int],
                            previous_resting: Sequence[int] | None = None,
                            fixed_pairs: Sequence[FixedPair] = (),
                            ) -> Iterator[list[int]]:
    """Yield resting candidates from the strictest tier that has any.

    Tiers, in order: balanced pool avoiding last round's resters,
    balanced pool, full pool avoiding last round's resters, full pool.
    Never comes back empty unless every subset splits a fixed pair.
    """
    tiers: list[tuple[bool, Sequence[int] | None]] = []
    if previous_resting:
        tiers.append((True, previous_resting))
    tiers.append((True, None))
    if previous_resting:
        tiers.append((False, previous_resting))
    tiers.append((False, None))

    for balanced, previous in tiers:
        candidates = generate_resting_candidates(
            all_players, rest_count, rest_counts,
            previous_resting=previous, fixed_pairs=fixed_pairs,
            balanced=balanced,
        )
        first = next(candidates, None)
        if first is not None:
            yield first
            yield from candidates
            return


def _rank_players(all_players: Sequence[int], rest_counts: Sequence[int],
                  previous: set[int], rng: random.Random) -> list[int]:
    return sorted(
        all_players,
        key=lambda p: (rest_counts[p - 1], p in previous, rng.random()),
    )


def select_resting_players(all_players: Sequence[int], rest_count: int,
                           rest_counts: Sequence[int],
                           previous_resting: Sequence[int] | None = None,
                           fixed_pairs: Sequence[FixedPair] | None = None,
                           rng: random.Random | None = None) -> list[int]:
    """Pick one resting set, least-rested players first.

    Ranking is (rest count, rested last round, random). Active fixed pairs
    rest together as a two-slot unit scored by the pair's combined rest
    count; solo players score double their rest count so both compare on
    the same scale. If whole units cannot fill the quota exactly, fixed
    pairs are ignored for this round.

    Returns the resting players in ascending order.
    """
    if rest_count == 0:
        return []
    if rng is None:
        rng = random.Random()

    previous = set(previous_resting or ())
    pairs = active_fixed_pairs(fixed_pairs or [], all_players)

    if pairs:
        in_pairs = {p for fp in pairs for p in fp.players}
        units: list[tuple[float, list[int]]] = []
        for fp in pairs:
            score = rest_counts[fp.player1 - 1] + rest_counts[fp.player2 - 1]
            if fp.player1 in previous or fp.player2 in previous:
                score += PREVIOUS_REST_PENALTY
            units.append((score + rng.random() * 0.1, [fp.player1, fp.player2]))
        for p in all_players:
            if p in in_pairs:
                continue
            score = rest_counts[p - 1] * 2
            if p in previous:
                score += PREVIOUS_REST_PENALTY
            units.append((score + rng.random() * 0.1, [p]))
        units.sort(key=lambda u: u[0])

        selected: list[int] = []
        for _, members in units:
            if len(selected) + len(members) <= rest_count:
                selected.extend(members)
            if len(selected) == rest_count:
                return sorted(selected)

    ranked = _rank_players(all_players, rest_counts, previous, rng)
    return sorted(ranked[:rest_count])
