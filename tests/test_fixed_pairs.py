"""Tests for fixed_pairs.py: validation and arrangement checks."""

from rrdoubles.fixed_pairs import (
    active_fixed_pairs, normalize_fixed_pair, satisfies_fixed_pairs,
    splits_fixed_pair, validate_fixed_pairs,
)
from rrdoubles.models import FixedPair


class TestValidateFixedPairs:
    def test_valid(self):
        result = validate_fixed_pairs([FixedPair.of(1, 2), FixedPair.of(3, 4)], 8, 2)
        assert result["valid"]
        assert result["errors"] == []
        assert result["warnings"] == []

    def test_self_pair(self):
        result = validate_fixed_pairs([FixedPair(3, 3)], 8, 2)
        assert not result["valid"]
        assert any("themselves" in e for e in result["errors"])

    def test_overlapping_pairs(self):
        result = validate_fixed_pairs([FixedPair.of(1, 2), FixedPair.of(2, 5)], 8, 2)
        assert not result["valid"]
        assert any("Player 2" in e for e in result["errors"])

    def test_out_of_range(self):
        result = validate_fixed_pairs([FixedPair.of(7, 9)], 8, 2)
        assert not result["valid"]
        assert any("out of range" in e for e in result["errors"])

    def test_more_pairs_than_courts_warns(self):
        pairs = [FixedPair.of(1, 2), FixedPair.of(3, 4), FixedPair.of(5, 6)]
        result = validate_fixed_pairs(pairs, 8, 2)
        assert result["valid"]
        assert len(result["warnings"]) == 1


class TestHelpers:
    def test_normalize(self):
        assert normalize_fixed_pair(6, 2) == FixedPair(2, 6)

    def test_active_fixed_pairs(self):
        pairs = [FixedPair.of(1, 2), FixedPair.of(3, 4)]
        assert active_fixed_pairs(pairs, [1, 2, 4, 5]) == [FixedPair(1, 2)]

    def test_splits_fixed_pair(self):
        pairs = [FixedPair.of(1, 2)]
        assert splits_fixed_pair([1, 5], pairs)
        assert not splits_fixed_pair([1, 2], pairs)
        assert not splits_fixed_pair([5, 6], pairs)


class TestSatisfiesFixedPairs:
    def test_no_pairs(self):
        assert satisfies_fixed_pairs([1, 3, 2, 4], 1, [])

    def test_together_on_pair_a(self):
        assert satisfies_fixed_pairs([1, 2, 3, 4], 1, [FixedPair.of(1, 2)])

    def test_together_on_pair_b(self):
        assert satisfies_fixed_pairs([1, 3, 2, 4], 1, [FixedPair.of(2, 4)])

    def test_split_across_sides(self):
        assert not satisfies_fixed_pairs([1, 3, 2, 4], 1, [FixedPair.of(1, 2)])

    def test_both_resting_is_fine(self):
        assert satisfies_fixed_pairs([1, 2, 3, 4], 1, [FixedPair.of(5, 6)])

    def test_one_resting_fails(self):
        assert not satisfies_fixed_pairs([1, 2, 3, 4], 1, [FixedPair.of(4, 5)])

    def test_template_with_player_map(self):
        player_map = [2, 5, 7, 9]
        assert satisfies_fixed_pairs((0, 1, 2, 3), 1, [FixedPair.of(2, 5)], player_map)
        assert not satisfies_fixed_pairs((0, 2, 1, 3), 1, [FixedPair.of(2, 5)], player_map)
