"""Fairness evaluation: count matrices, running statistics, candidate scoring.

Player ids are 1-based; matrix and vector indices are 0-based, so player
``p`` lives at index ``p - 1``. Count matrices are symmetric and both
directions are always updated together.

The cumulative state keeps, for pair counts (upper triangle), opponent
counts (upper triangle) and rest counts, a running sum and sum of
squares. Incrementing a count from v to v+1 adds 1 to the sum and 2v+1 to
the sum of squares, so standard deviations come out in O(1) and a
candidate round is scored in O(courts) without touching the matrices.
"""

import copy
import math
import statistics
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from rrdoubles.models import Evaluation, Round, Weights

CountMatrix = list[list[int]]


def initialize_count_matrix(players_count: int) -> CountMatrix:
    return [[0] * players_count for _ in range(players_count)]


def initialize_rest_counts(players_count: int) -> list[int]:
    return [0] * players_count


def update_count_matrices(rnd: Round, pair_counts: CountMatrix,
                          oppo_counts: CountMatrix) -> None:
    """Add one round's pairings and oppositions to the matrices in place."""
    for match in rnd.matches:
        for pair in (match.pair_a, match.pair_b):
            i, j = pair.player1 - 1, pair.player2 - 1
            pair_counts[i][j] += 1
            pair_counts[j][i] += 1
        for a, b in match.opponents():
            oppo_counts[a - 1][b - 1] += 1
            oppo_counts[b - 1][a - 1] += 1


def update_rest_counts(rnd: Round, rest_counts: list[int]) -> None:
    for p in rnd.resting_players:
        rest_counts[p - 1] += 1


def upper_triangle_values(matrix: CountMatrix) -> list[int]:
    """Values above the diagonal, so each player pair is counted once."""
    values = []
    for i in range(len(matrix)):
        values.extend(matrix[i][i + 1:])
    return values


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for an empty list."""
    if not values:
        return 0.0
    return statistics.pstdev(values)


def evaluate(rounds: Iterable[Round], players_count: int,
             weights: Weights) -> Evaluation:
    """Score a list of rounds from scratch.

    totalScore = pairStdDev * w1 + oppoStdDev * w2 + restStdDev * w3.
    Lower is better; all zeros means perfectly balanced.
    """
    pair_counts = initialize_count_matrix(players_count)
    oppo_counts = initialize_count_matrix(players_count)
    rest_counts = initialize_rest_counts(players_count)
    for rnd in rounds:
        update_count_matrices(rnd, pair_counts, oppo_counts)
        update_rest_counts(rnd, rest_counts)

    pair_sd = standard_deviation(upper_triangle_values(pair_counts))
    oppo_sd = standard_deviation(upper_triangle_values(oppo_counts))
    rest_sd = standard_deviation(rest_counts)
    return Evaluation(
        pair_stddev=pair_sd,
        oppo_stddev=oppo_sd,
        rest_stddev=rest_sd,
        total_score=pair_sd * weights.w1 + oppo_sd * weights.w2 + rest_sd * weights.w3,
    )


@dataclass
class CumulativeState:
    """Running fairness state for one generation run.

    Mutated only by ``commit_round``; ``evaluate_candidate`` reads it.
    """
    pair_counts: CountMatrix
    oppo_counts: CountMatrix
    rest_counts: list[int]
    pair_sum: int = 0
    pair_sum_sq: int = 0
    pair_n: int = 0
    oppo_sum: int = 0
    oppo_sum_sq: int = 0
    oppo_n: int = 0
    rest_sum: int = 0
    rest_sum_sq: int = 0
    rest_n: int = 0

    @property
    def players_count(self) -> int:
        return len(self.rest_counts)

    def copy(self) -> "CumulativeState":
        return copy.deepcopy(self)


def create_state(players_count: int,
                 active_count: int | None = None) -> CumulativeState:
    """Fresh all-zero state sized for player ids 1..players_count.

    ``active_count`` sets the population the statistics are taken over
    (defaults to every id); pair and opponent populations are k(k-1)/2.
    """
    k = players_count if active_count is None else active_count
    n = k * (k - 1) // 2
    return CumulativeState(
        pair_counts=initialize_count_matrix(players_count),
        oppo_counts=initialize_count_matrix(players_count),
        rest_counts=initialize_rest_counts(players_count),
        pair_n=n,
        oppo_n=n,
        rest_n=k,
    )


def commit_round(state: CumulativeState, rnd: Round,
                 active: set[int] | None = None) -> None:
    """Fold a round into the state.

    When ``active`` is given, only events between active players (and
    rests of active players) are counted.
    """
    pair_counts = state.pair_counts
    oppo_counts = state.oppo_counts
    for match in rnd.matches:
        for pair in (match.pair_a, match.pair_b):
            a, b = pair.player1, pair.player2
            if active is not None and (a not in active or b not in active):
                continue
            old = pair_counts[a - 1][b - 1]
            pair_counts[a - 1][b - 1] += 1
            pair_counts[b - 1][a - 1] += 1
            state.pair_sum += 1
            state.pair_sum_sq += 2 * old + 1
        for a, b in match.opponents():
            if active is not None and (a not in active or b not in active):
                continue
            old = oppo_counts[a - 1][b - 1]
            oppo_counts[a - 1][b - 1] += 1
            oppo_counts[b - 1][a - 1] += 1
            state.oppo_sum += 1
            state.oppo_sum_sq += 2 * old + 1

    for p in rnd.resting_players:
        if active is not None and p not in active:
            continue
        old = state.rest_counts[p - 1]
        state.rest_counts[p - 1] += 1
        state.rest_sum += 1
        state.rest_sum_sq += 2 * old + 1


def build_state_for_active_players(rounds: Iterable[Round],
                                   active_players: Sequence[int],
                                   max_player: int | None = None,
                                   ) -> CumulativeState:
    """Rebuild a state from kept rounds, restricted to the active roster.

    Players no longer active (including ids above ``max_player``) are
    ignored, so the statistics describe the current roster only.
    """
    if max_player is None:
        max_player = max(active_players)
    active = {p for p in active_players if p <= max_player}
    state = create_state(max_player, active_count=len(active))
    for rnd in rounds:
        commit_round(state, rnd, active=active)
    return state


def _stddev(total: int, total_sq: int, n: int) -> float:
    if n <= 1:
        return 0.0
    mean = total / n
    return math.sqrt(max(0.0, total_sq / n - mean * mean))


def _score(pair_sum, pair_sum_sq, oppo_sum, oppo_sum_sq, rest_sum,
           rest_sum_sq, state: CumulativeState, weights: Weights) -> Evaluation:
    pair_sd = _stddev(pair_sum, pair_sum_sq, state.pair_n)
    oppo_sd = _stddev(oppo_sum, oppo_sum_sq, state.oppo_n)
    rest_sd = _stddev(rest_sum, rest_sum_sq, state.rest_n)
    return Evaluation(
        pair_stddev=pair_sd,
        oppo_stddev=oppo_sd,
        rest_stddev=rest_sd,
        total_score=pair_sd * weights.w1 + oppo_sd * weights.w2 + rest_sd * weights.w3,
    )


def evaluate_from_state(state: CumulativeState, weights: Weights) -> Evaluation:
    return _score(state.pair_sum, state.pair_sum_sq, state.oppo_sum,
                  state.oppo_sum_sq, state.rest_sum, state.rest_sum_sq,
                  state, weights)


def evaluate_candidate(state: CumulativeState, template: Sequence[int],
                       player_map: Sequence[int],
                       resting_players: Iterable[int],
                       weights: Weights) -> float:
    """Total score the state would have after committing this candidate.

    ``template`` holds local indices into ``player_map``, four per court,
    read as (p1, p2) vs (p3, p4) with p1 < p2 and p3 < p4. Does not
    modify ``state``.
    """
    pair_counts = state.pair_counts
    oppo_counts = state.oppo_counts
    pair_sum = state.pair_sum
    pair_sum_sq = state.pair_sum_sq
    oppo_sum = state.oppo_sum
    oppo_sum_sq = state.oppo_sum_sq
    rest_sum = state.rest_sum
    rest_sum_sq = state.rest_sum_sq

    for c in range(0, len(template), 4):
        i1 = player_map[template[c]] - 1
        i2 = player_map[template[c + 1]] - 1
        i3 = player_map[template[c + 2]] - 1
        i4 = player_map[template[c + 3]] - 1

        pair_sum += 2
        pair_sum_sq += 2 * pair_counts[i1][i2] + 1
        pair_sum_sq += 2 * pair_counts[i3][i4] + 1

        oppo_sum += 4
        oppo_sum_sq += 2 * oppo_counts[i1][i3] + 1
        oppo_sum_sq += 2 * oppo_counts[i1][i4] + 1
        oppo_sum_sq += 2 * oppo_counts[i2][i3] + 1
        oppo_sum_sq += 2 * oppo_counts[i2][i4] + 1

    rest_counts = state.rest_counts
    for p in resting_players:
        rest_sum += 1
        rest_sum_sq += 2 * rest_counts[p - 1] + 1

    return _score(pair_sum, pair_sum_sq, oppo_sum, oppo_sum_sq, rest_sum,
                  rest_sum_sq, state, weights).total_score


def extract_previous_opponents(rnd: Round | None) -> dict[int, set[int]]:
    """Map each player to the opponents they faced in ``rnd``."""
    opponents: dict[int, set[int]] = {}
    if rnd is None:
        return opponents
    for match in rnd.matches:
        for a, b in match.opponents():
            opponents.setdefault(a, set()).add(b)
            opponents.setdefault(b, set()).add(a)
    return opponents
