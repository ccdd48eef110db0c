"""Greedy sequential construction.

Round 1 is the plain ascending arrangement when nobody rests and there
are no fixed pairs; otherwise the first arrangement that satisfies the
fixed pairs. Every later round scores every (resting set, canonical
template) combination against the cumulative state and keeps the lowest.

Ties go to the first candidate seen: resting sets in lexicographic order
of the roster (sets avoiding last round's resters first), then templates
in enumeration order.
"""

import math

from rrdoubles.arrangements import estimate_arrangement_count, template_to_arrangement
from rrdoubles.errors import ConstraintUnsatisfiable
from rrdoubles.evaluation import evaluate_candidate
from rrdoubles.fixed_pairs import satisfies_fixed_pairs
from rrdoubles.models import Round, arrangement_to_round
from rrdoubles.resting import iter_resting_candidates
from rrdoubles.strategy import RoundContext, RoundSearch, ScheduleStrategy


def estimate_normalized_count(players_count: int, courts_count: int) -> int:
    """Candidates per round: C(players, resting) * canonical templates.

    e.g. 2 courts / 10 players: C(10, 2) * 315 = 14,175.
    """
    playing_count = courts_count * 4
    rest_count = players_count - playing_count
    per_selection = estimate_arrangement_count(courts_count, playing_count)
    if rest_count <= 0:
        return per_selection
    return math.comb(players_count, rest_count) * per_selection


class GreedyStrategy(ScheduleStrategy):
    id = "greedy"
    name = "Greedy sequential construction"
    description = ("Scores every canonical arrangement each round and keeps "
                   "the one with the lowest cumulative fairness score")
    is_experimental = False

    def round_evaluations(self, players_count: int, courts_count: int) -> int:
        return estimate_normalized_count(players_count, courts_count)

    def estimate_total_evaluations(self, players_count: int, courts_count: int,
                                   rounds_count: int) -> int:
        # Round 1 is not searched.
        per_round = self.round_evaluations(players_count, courts_count)
        return per_round * max(0, rounds_count - 1)

    def first_round(self, ctx: RoundContext) -> Round:
        if ctx.rest_count <= 0 and not ctx.fixed_pairs:
            return arrangement_to_round(list(ctx.players), ctx.courts_count,
                                        ctx.round_number)

        # Highest ids rest first, mirroring the plain ascending layout.
        roster = sorted(ctx.players, reverse=True)
        for resting in iter_resting_candidates(
                roster, ctx.rest_count, ctx.state.rest_counts,
                fixed_pairs=ctx.fixed_pairs):
            resting_set = set(resting)
            playing = [p for p in ctx.players if p not in resting_set]
            for template in ctx.cache.get(ctx.courts_count, len(playing)):
                if satisfies_fixed_pairs(template, ctx.courts_count,
                                         ctx.fixed_pairs, playing):
                    return arrangement_to_round(
                        template_to_arrangement(template, playing),
                        ctx.courts_count, ctx.round_number, resting,
                    )
        raise ConstraintUnsatisfiable(ctx.round_number)

    def search_round(self, ctx: RoundContext) -> RoundSearch:
        best_template = None
        best_playing: list[int] = []
        best_resting: list[int] = []
        best_score = math.inf
        evaluations = 0

        for resting in iter_resting_candidates(
                ctx.players, ctx.rest_count, ctx.state.rest_counts,
                previous_resting=ctx.previous_resting,
                fixed_pairs=ctx.fixed_pairs):
            resting_set = set(resting)
            playing = [p for p in ctx.players if p not in resting_set]

            for template in ctx.cache.get(ctx.courts_count, len(playing)):
                if not satisfies_fixed_pairs(template, ctx.courts_count,
                                             ctx.fixed_pairs, playing):
                    continue
                evaluations += 1
                score = evaluate_candidate(ctx.state, template, playing,
                                           resting, ctx.weights)
                if score < best_score:
                    best_score = score
                    best_template = tuple(template)
                    best_playing = playing
                    best_resting = resting

                if evaluations % self.batch_size == 0:
                    yield evaluations

        if best_template is None:
            raise ConstraintUnsatisfiable(ctx.round_number)
        if evaluations % self.batch_size:
            yield evaluations

        return arrangement_to_round(
            template_to_arrangement(best_template, best_playing),
            ctx.courts_count, ctx.round_number, best_resting,
        )
