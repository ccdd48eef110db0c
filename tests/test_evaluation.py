"""Tests for evaluation.py: count matrices, cumulative state, scoring."""

import math
import random

import pytest

from rrdoubles.arrangements import get_normalized_arrangements, template_to_arrangement
from rrdoubles.evaluation import (
    build_state_for_active_players, commit_round, create_state, evaluate,
    evaluate_candidate, evaluate_from_state, extract_previous_opponents,
    standard_deviation, upper_triangle_values,
)
from rrdoubles.models import Match, Round, Weights, arrangement_to_round


def _make_round(number, *courts, resting=()):
    return Round(number, [Match.of(*c) for c in courts], list(resting))


def _random_rounds(players, courts, count, seed):
    rng = random.Random(seed)
    rounds = []
    for n in range(1, count + 1):
        order = list(range(1, players + 1))
        rng.shuffle(order)
        playing = order[:courts * 4]
        resting = order[courts * 4:]
        rounds.append(arrangement_to_round(playing, courts, n, resting))
    return rounds


class TestFullEvaluation:
    def test_single_round_four_players(self):
        rnd = _make_round(1, (1, 2, 3, 4))
        ev = evaluate([rnd], 4, Weights())
        # Pair values [1,0,0,0,0,1], opponent values [0,1,1,1,1,0].
        assert ev.pair_stddev == pytest.approx(math.sqrt(2) / 3)
        assert ev.oppo_stddev == pytest.approx(math.sqrt(2) / 3)
        assert ev.rest_stddev == 0
        assert ev.total_score == pytest.approx(math.sqrt(2) / 3 * 1.5)

    def test_empty(self):
        ev = evaluate([], 8, Weights())
        assert ev.total_score == 0

    def test_helpers(self):
        assert upper_triangle_values([[0, 1, 2], [1, 0, 3], [2, 3, 0]]) == [1, 2, 3]
        assert standard_deviation([]) == 0
        assert standard_deviation([2, 2, 2]) == 0


class TestCumulativeState:
    def test_matches_full_evaluation(self):
        rounds = _random_rounds(10, 2, 6, seed=1)
        state = create_state(10)
        for rnd in rounds:
            commit_round(state, rnd)
        weights = Weights(1.0, 0.5, 2.0)
        incremental = evaluate_from_state(state, weights)
        full = evaluate(rounds, 10, weights)
        assert incremental.pair_stddev == pytest.approx(full.pair_stddev)
        assert incremental.oppo_stddev == pytest.approx(full.oppo_stddev)
        assert incremental.rest_stddev == pytest.approx(full.rest_stddev)
        assert incremental.total_score == pytest.approx(full.total_score)

    def test_counts_never_decrease(self):
        state = create_state(9)
        previous = None
        for rnd in _random_rounds(9, 2, 8, seed=2):
            commit_round(state, rnd)
            snapshot = ([row[:] for row in state.pair_counts],
                        [row[:] for row in state.oppo_counts],
                        state.rest_counts[:])
            for matrix in snapshot[:2]:
                assert all(v >= 0 for row in matrix for v in row)
            if previous is not None:
                for new, old in zip(snapshot[0], previous[0]):
                    assert all(a >= b for a, b in zip(new, old))
                for new, old in zip(snapshot[1], previous[1]):
                    assert all(a >= b for a, b in zip(new, old))
                assert all(a >= b for a, b in zip(snapshot[2], previous[2]))
            previous = snapshot

    def test_matrices_stay_symmetric(self):
        state = create_state(8)
        for rnd in _random_rounds(8, 2, 5, seed=3):
            commit_round(state, rnd)
        for i in range(8):
            for j in range(8):
                assert state.pair_counts[i][j] == state.pair_counts[j][i]
                assert state.oppo_counts[i][j] == state.oppo_counts[j][i]

    def test_single_player_population(self):
        state = create_state(1)
        assert evaluate_from_state(state, Weights()).total_score == 0

    def test_copy_is_independent(self):
        state = create_state(4)
        clone = state.copy()
        commit_round(clone, _make_round(1, (1, 2, 3, 4)))
        assert state.pair_sum == 0
        assert state.pair_counts[0][1] == 0


class TestEvaluateCandidate:
    @pytest.mark.parametrize("players,courts", [(8, 2), (10, 2), (5, 1)])
    def test_agrees_with_commit(self, players, courts):
        weights = Weights(1.0, 0.5, 2.0)
        state = create_state(players)
        for rnd in _random_rounds(players, courts, 4, seed=players):
            commit_round(state, rnd)

        rng = random.Random(99)
        order = list(range(1, players + 1))
        rng.shuffle(order)
        playing = sorted(order[:courts * 4])
        resting = sorted(order[courts * 4:])
        for template in list(get_normalized_arrangements(courts, courts * 4))[:50]:
            score = evaluate_candidate(state, template, playing, resting, weights)
            committed = state.copy()
            commit_round(committed, arrangement_to_round(
                template_to_arrangement(template, playing), courts, 5, resting))
            assert score == evaluate_from_state(committed, weights).total_score

    def test_does_not_modify_state(self):
        state = create_state(4)
        commit_round(state, _make_round(1, (1, 2, 3, 4)))
        before = state.copy()
        evaluate_candidate(state, (0, 2, 1, 3), [1, 2, 3, 4], [], Weights())
        assert state == before


class TestActivePlayerState:
    def test_ignores_inactive_players(self):
        rounds = [
            _make_round(1, (1, 2, 3, 4), resting=[5]),
            _make_round(2, (1, 5, 2, 3), resting=[4]),
        ]
        state = build_state_for_active_players(rounds, [1, 2, 3, 5], 5)
        assert state.pair_n == 6
        assert state.rest_n == 4
        # Player 4's events are gone.
        assert state.pair_counts[2][3] == 0
        assert state.oppo_counts[0][3] == 0
        assert state.rest_counts[3] == 0
        # Events among active players remain.
        assert state.pair_counts[0][1] == 1
        assert state.pair_counts[0][4] == 1
        assert state.rest_counts[4] == 1
        assert state.pair_sum == 3
        assert state.rest_sum == 1

    def test_default_max_player(self):
        state = build_state_for_active_players([], [1, 2, 3, 4, 6])
        assert state.players_count == 6
        assert state.rest_n == 5


class TestPreviousOpponents:
    def test_none(self):
        assert extract_previous_opponents(None) == {}

    def test_extract(self):
        opponents = extract_previous_opponents(_make_round(1, (1, 2, 3, 4)))
        assert opponents[1] == {3, 4}
        assert opponents[4] == {1, 2}
