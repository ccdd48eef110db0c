"""Sequential decision: randomized court-by-court construction.

Round 1 is fixed (lowest ids play in ascending order). For every later
round the resting set is drawn once, then three phases run in order and
the first to produce a full round wins:

1.   Hard constraints with backtracking: nobody pairs with a previous
     partner and nobody faces a previous opponent.
1.5. Opponent constraints only: previous partners are allowed but the
     least-used partner is preferred.
2.   Scoring fallback: pick the least-repeated partner and opponents for
     each slot. Always succeeds; the best of several tries is kept.

Fast and with predictable latency, but not as thorough as the greedy
search.
"""

import random
from collections.abc import Callable, Sequence

from rrdoubles.evaluation import CountMatrix, extract_previous_opponents
from rrdoubles.fixed_pairs import active_fixed_pairs
from rrdoubles.models import FixedPair, Match, Round, arrangement_to_round
from rrdoubles.resting import select_resting_players
from rrdoubles.strategy import RoundContext, RoundSearch, ScheduleStrategy

Court = tuple[int, int, int, int]
PreviousOpponents = dict[int, set[int]]

CONSECUTIVE_OPPONENT_PENALTY = 100


def _take(available: list[int], court: Court) -> Court:
    for p in court:
        available.remove(p)
    return court


def _shuffled(players: Sequence[int], rng: random.Random) -> list[int]:
    result = list(players)
    rng.shuffle(result)
    return result


def _applicable(fixed_pairs: Sequence[FixedPair],
                available: Sequence[int]) -> tuple[list[FixedPair], dict[int, int]]:
    pairs = active_fixed_pairs(fixed_pairs, available)
    partner = {}
    for fp in pairs:
        partner[fp.player1] = fp.player2
        partner[fp.player2] = fp.player1
    return pairs, partner


def pick_min_score(candidates: Sequence[int], score: Callable[[int], float],
                   rng: random.Random) -> int:
    """Candidate with the lowest score; ties broken uniformly at random."""
    best: list[int] = []
    best_score = None
    for p in candidates:
        s = score(p)
        if best_score is None or s < best_score:
            best_score = s
            best = [p]
        elif s == best_score:
            best.append(p)
    return rng.choice(best)


# Phase 1: hard pair and opponent constraints.

def try_assign_court_with_backtracking(available: list[int],
                                       pair_history: CountMatrix,
                                       opponent_history: CountMatrix,
                                       rng: random.Random) -> Court | None:
    """Fill one court with fresh partners and fresh opponents.

    Searches p1 -> p2 -> p3 -> p4 depth first, backing up a slot when the
    next one has no candidate. On success the four players are removed
    from ``available``; on failure it is left untouched.
    """
    if len(available) < 4:
        return None
    shuffled = _shuffled(available, rng)

    for p1 in shuffled:
        pairs1 = pair_history[p1 - 1]
        opps1 = opponent_history[p1 - 1]
        for p2 in [p for p in shuffled if p != p1 and pairs1[p - 1] == 0]:
            opps2 = opponent_history[p2 - 1]
            p3_candidates = [p for p in shuffled
                             if p != p1 and p != p2
                             and opps1[p - 1] == 0 and opps2[p - 1] == 0]
            for p3 in p3_candidates:
                pairs3 = pair_history[p3 - 1]
                for p4 in p3_candidates:
                    if p4 != p3 and pairs3[p4 - 1] == 0:
                        return _take(available, (p1, p2, p3, p4))
    return None


def try_assign_court_with_backtracking_fixed_pairs(
        available: list[int], pair_history: CountMatrix,
        opponent_history: CountMatrix, fixed_pairs: Sequence[FixedPair],
        rng: random.Random) -> Court | None:
    """Phase 1 with a fixed pair pinned as the first pair of the court.

    The other side is either another fixed pair or two unpaired players.
    Fixed pairs are exempt from the fresh-partner rule.
    """
    pairs, partner = _applicable(fixed_pairs, available)
    if not pairs:
        return try_assign_court_with_backtracking(
            available, pair_history, opponent_history, rng)

    for fp in _shuffled(pairs, rng):
        p1, p2 = fp.players
        opps1 = opponent_history[p1 - 1]
        opps2 = opponent_history[p2 - 1]
        remaining = _shuffled([p for p in available if p != p1 and p != p2], rng)
        for p3 in remaining:
            if opps1[p3 - 1] != 0 or opps2[p3 - 1] != 0:
                continue
            mate = partner.get(p3)
            if mate is not None:
                options = [mate]
            else:
                pairs3 = pair_history[p3 - 1]
                options = [p for p in remaining
                           if p != p3 and p not in partner and pairs3[p - 1] == 0]
            for p4 in options:
                if opps1[p4 - 1] == 0 and opps2[p4 - 1] == 0:
                    return _take(available, (p1, p2, p3, p4))
    return None


# Phase 1.5: hard opponent constraint, soft pair preference.

def try_assign_court_opponent_only(available: list[int],
                                   pair_history: CountMatrix,
                                   opponent_history: CountMatrix,
                                   rng: random.Random) -> Court | None:
    if len(available) < 4:
        return None
    shuffled = _shuffled(available, rng)

    for p1 in shuffled:
        pairs1 = pair_history[p1 - 1]
        opps1 = opponent_history[p1 - 1]
        p2_candidates = sorted((p for p in shuffled if p != p1),
                               key=lambda p: pairs1[p - 1])
        for p2 in p2_candidates:
            opps2 = opponent_history[p2 - 1]
            p3_candidates = [p for p in shuffled
                             if p != p1 and p != p2
                             and opps1[p - 1] == 0 and opps2[p - 1] == 0]
            for p3 in p3_candidates:
                p4_candidates = [p for p in p3_candidates if p != p3]
                if p4_candidates:
                    pairs3 = pair_history[p3 - 1]
                    p4 = min(p4_candidates, key=lambda p: pairs3[p - 1])
                    return _take(available, (p1, p2, p3, p4))
    return None


def try_assign_court_opponent_only_fixed_pairs(
        available: list[int], pair_history: CountMatrix,
        opponent_history: CountMatrix, fixed_pairs: Sequence[FixedPair],
        rng: random.Random) -> Court | None:
    pairs, partner = _applicable(fixed_pairs, available)
    if not pairs:
        return try_assign_court_opponent_only(
            available, pair_history, opponent_history, rng)

    for fp in _shuffled(pairs, rng):
        p1, p2 = fp.players
        opps1 = opponent_history[p1 - 1]
        opps2 = opponent_history[p2 - 1]
        remaining = _shuffled([p for p in available if p != p1 and p != p2], rng)
        for p3 in remaining:
            if opps1[p3 - 1] != 0 or opps2[p3 - 1] != 0:
                continue
            mate = partner.get(p3)
            if mate is not None:
                options = [mate]
            else:
                options = [p for p in remaining if p != p3 and p not in partner]
            options = [p for p in options
                       if opps1[p - 1] == 0 and opps2[p - 1] == 0]
            if options:
                pairs3 = pair_history[p3 - 1]
                p4 = min(options, key=lambda p: pairs3[p - 1])
                return _take(available, (p1, p2, p3, p4))
    return None


# Phase 2: scoring fallback, always succeeds.

def consecutive_opponent_penalty(player: int, opponents: Sequence[int],
                                 previous_opponents: PreviousOpponents | None,
                                 penalty: int = CONSECUTIVE_OPPONENT_PENALTY,
                                 ) -> int:
    """``penalty`` per opponent that ``player`` also faced last round."""
    if not previous_opponents:
        return 0
    faced = previous_opponents.get(player)
    if not faced:
        return 0
    return penalty * sum(1 for o in opponents if o in faced)


def _pick_other_side(available: list[int], p1: int, p2: int,
                     pair_history: CountMatrix, opponent_history: CountMatrix,
                     previous_opponents: PreviousOpponents | None,
                     rng: random.Random, penalty: int,
                     partner: dict[int, int] | None = None) -> tuple[int, int]:
    opps1 = opponent_history[p1 - 1]
    opps2 = opponent_history[p2 - 1]

    def opponent_score(p: int) -> int:
        return (opps1[p - 1] + opps2[p - 1]
                + consecutive_opponent_penalty(p, (p1, p2), previous_opponents, penalty))

    p3 = pick_min_score(available, opponent_score, rng)
    available.remove(p3)

    if partner and p3 in partner and partner[p3] in available:
        p4 = partner[p3]
    else:
        pairs3 = pair_history[p3 - 1]
        pool = available
        if partner:
            pool = [p for p in available if p not in partner] or available
        p4 = pick_min_score(pool, lambda p: opponent_score(p) + pairs3[p - 1], rng)
    available.remove(p4)
    return p3, p4


def assign_court_with_scoring(available: list[int], pair_history: CountMatrix,
                              opponent_history: CountMatrix,
                              previous_opponents: PreviousOpponents | None,
                              rng: random.Random,
                              penalty: int = CONSECUTIVE_OPPONENT_PENALTY,
                              ) -> Court:
    """Greedy court fill minimizing repeats; removes the players it uses."""
    p1 = rng.choice(available)
    available.remove(p1)
    pairs1 = pair_history[p1 - 1]
    p2 = pick_min_score(available, lambda p: pairs1[p - 1], rng)
    available.remove(p2)
    p3, p4 = _pick_other_side(available, p1, p2, pair_history, opponent_history,
                              previous_opponents, rng, penalty)
    return (p1, p2, p3, p4)


def assign_court_with_scoring_fixed_pairs(
        available: list[int], pair_history: CountMatrix,
        opponent_history: CountMatrix, fixed_pairs: Sequence[FixedPair],
        previous_opponents: PreviousOpponents | None, rng: random.Random,
        penalty: int = CONSECUTIVE_OPPONENT_PENALTY) -> Court:
    pairs, partner = _applicable(fixed_pairs, available)
    if not pairs:
        return assign_court_with_scoring(available, pair_history, opponent_history,
                                         previous_opponents, rng, penalty)

    p1, p2 = rng.choice(pairs).players
    available.remove(p1)
    available.remove(p2)
    p3, p4 = _pick_other_side(available, p1, p2, pair_history, opponent_history,
                              previous_opponents, rng, penalty, partner)
    return (p1, p2, p3, p4)


def build_normalized_matches(courts: Sequence[Court],
                             rng: random.Random) -> list[Match]:
    """Canonical matches in random court order."""
    matches = [Match.of(*court) for court in courts]
    rng.shuffle(matches)
    return matches


def first_round_layout(players: Sequence[int], courts_count: int,
                       fixed_pairs: Sequence[FixedPair] = ()) -> tuple[list[int], list[int]]:
    """Deterministic round-1 arrangement and resting set.

    Lowest ids play, highest rest. Fixed pairs rest or play as a unit when
    the quota allows it and always share a pair slot when both play;
    remaining players pair up in ascending order.
    """
    ordered = sorted(players)
    rest_count = len(ordered) - courts_count * 4
    pairs = active_fixed_pairs(fixed_pairs, ordered)
    partner = {}
    for fp in pairs:
        partner[fp.player1] = fp.player2
        partner[fp.player2] = fp.player1

    resting: list[int] = []
    for p in reversed(ordered):
        if len(resting) == rest_count:
            break
        if p in resting:
            continue
        unit = [p] if p not in partner else [p, partner[p]]
        if partner.get(p, 0) > p:
            # Pair already passed over as its higher member did not fit.
            continue
        if len(resting) + len(unit) <= rest_count:
            resting.extend(unit)
    if len(resting) != rest_count:
        resting = ordered[len(ordered) - rest_count:] if rest_count > 0 else []

    resting_set = set(resting)
    playing = [p for p in ordered if p not in resting_set]
    slots = []
    solos = []
    for p in playing:
        mate = partner.get(p)
        if mate is not None and mate not in resting_set:
            if p < mate:
                slots.append((p, mate))
        else:
            solos.append(p)
    slots.extend(zip(solos[0::2], solos[1::2]))
    slots.sort()

    arrangement = [p for slot in slots for p in slot]
    return arrangement, sorted(resting)


class SequentialDecisionStrategy(ScheduleStrategy):
    id = "sequential-decision"
    name = "Sequential decision"
    description = ("Fast randomized construction with constraint checks and "
                   "a scoring fallback")
    is_experimental = True

    def __init__(self, max_retry_hard: int = 100, max_retry_oppo: int = 100,
                 max_retry_soft: int = 100, pair_max_penalty: int = 100,
                 oppo_max_penalty: int = 100,
                 consecutive_opponent_penalty: int = CONSECUTIVE_OPPONENT_PENALTY):
        self.max_retry_hard = max_retry_hard
        self.max_retry_oppo = max_retry_oppo
        self.max_retry_soft = max_retry_soft
        self.pair_max_penalty = pair_max_penalty
        self.oppo_max_penalty = oppo_max_penalty
        self.consecutive_opponent_penalty = consecutive_opponent_penalty

    def round_evaluations(self, players_count: int, courts_count: int) -> int:
        return 1

    def first_round(self, ctx: RoundContext) -> Round:
        arrangement, resting = first_round_layout(
            ctx.players, ctx.courts_count, ctx.fixed_pairs)
        return arrangement_to_round(arrangement, ctx.courts_count,
                                    ctx.round_number, resting)

    def search_round(self, ctx: RoundContext) -> RoundSearch:
        rnd = self.generate_round(ctx)
        yield 1
        return rnd

    def generate_round(self, ctx: RoundContext) -> Round:
        rng = ctx.rng
        pair_history = ctx.state.pair_counts
        opponent_history = ctx.state.oppo_counts
        previous_opponents = extract_previous_opponents(ctx.previous_round)
        fixed_pairs = ctx.fixed_pairs

        resting = select_resting_players(
            ctx.players, ctx.rest_count, ctx.state.rest_counts,
            ctx.previous_resting, fixed_pairs, rng,
        )
        resting_set = set(resting)
        playing = [p for p in ctx.players if p not in resting_set]

        if fixed_pairs:
            def hard(available):
                return try_assign_court_with_backtracking_fixed_pairs(
                    available, pair_history, opponent_history, fixed_pairs, rng)

            def oppo_only(available):
                return try_assign_court_opponent_only_fixed_pairs(
                    available, pair_history, opponent_history, fixed_pairs, rng)

            def scoring(available):
                return assign_court_with_scoring_fixed_pairs(
                    available, pair_history, opponent_history, fixed_pairs,
                    previous_opponents, rng, self.consecutive_opponent_penalty)
        else:
            def hard(available):
                return try_assign_court_with_backtracking(
                    available, pair_history, opponent_history, rng)

            def oppo_only(available):
                return try_assign_court_opponent_only(
                    available, pair_history, opponent_history, rng)

            def scoring(available):
                return assign_court_with_scoring(
                    available, pair_history, opponent_history,
                    previous_opponents, rng, self.consecutive_opponent_penalty)

        for assign, retries in ((hard, self.max_retry_hard),
                                (oppo_only, self.max_retry_oppo)):
            courts = self._try_phase(playing, ctx.courts_count, assign, retries, rng)
            if courts is not None:
                return Round(ctx.round_number,
                             build_normalized_matches(courts, rng), resting)

        best_courts = None
        best_score = None
        for _ in range(max(1, self.max_retry_soft)):
            available = _shuffled(playing, rng)
            courts = [scoring(available) for _ in range(ctx.courts_count)]
            score = self.quick_evaluate(courts, pair_history, opponent_history,
                                        previous_opponents)
            if best_score is None or score < best_score:
                best_score = score
                best_courts = courts
        return Round(ctx.round_number,
                     build_normalized_matches(best_courts, rng), resting)

    @staticmethod
    def _try_phase(playing: list[int], courts_count: int,
                   assign: Callable[[list[int]], Court | None], retries: int,
                   rng: random.Random) -> list[Court] | None:
        for _ in range(retries):
            available = _shuffled(playing, rng)
            courts = []
            for _ in range(courts_count):
                court = assign(available)
                if court is None:
                    break
                courts.append(court)
            else:
                return courts
        return None

    def quick_evaluate(self, courts: Sequence[Court], pair_history: CountMatrix,
                       opponent_history: CountMatrix,
                       previous_opponents: PreviousOpponents) -> int:
        """Cheap score for a scoring-phase round.

        The worst repeated partnership and the worst repeated opposition
        dominate; the raw sum of existing counts breaks ties. Facing last
        round's opponent again adds the consecutive-opponent penalty.
        """
        total = 0
        pair_max = 0
        oppo_max = 0
        for p1, p2, p3, p4 in courts:
            for a, b in ((p1, p2), (p3, p4)):
                count = pair_history[a - 1][b - 1]
                pair_max = max(pair_max, count + 1)
                total += count
            for a in (p1, p2):
                faced = previous_opponents.get(a, ())
                for b in (p3, p4):
                    count = opponent_history[a - 1][b - 1]
                    oppo_max = max(oppo_max, count + 1)
                    total += count
                    if b in faced:
                        total += self.consecutive_opponent_penalty
        return (pair_max * self.pair_max_penalty
                + oppo_max * self.oppo_max_penalty + total)
