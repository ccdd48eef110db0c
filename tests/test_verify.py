"""Tests for verify.py: schedule validation report."""

from rrdoubles.models import (
    Evaluation, FixedPair, Match, Pair, Round, Schedule,
)
from rrdoubles.verify import format_validation_report, validate_schedule


def _make_schedule(rounds, courts=1, players=5, fixed_pairs=None):
    return Schedule(
        courts=courts,
        players=players,
        rounds=rounds,
        evaluation=Evaluation(),
        fixed_pairs=fixed_pairs or [],
        active_players=list(range(1, players + 1)),
    )


def _round(number, *courts, resting=()):
    return Round(number, [Match.of(*c) for c in courts], list(resting))


class TestValidateSchedule:
    def test_valid(self):
        schedule = _make_schedule([
            _round(1, (1, 2, 3, 4), resting=[5]),
            _round(2, (1, 3, 2, 5), resting=[4]),
        ])
        result = validate_schedule(schedule)
        assert result["valid"]
        assert result["errors"] == []

    def test_missing_player(self):
        result = validate_schedule(_make_schedule([_round(1, (1, 2, 3, 4))]))
        assert not result["valid"]
        assert any("missing" in e for e in result["errors"])

    def test_duplicate_player(self):
        result = validate_schedule(_make_schedule([_round(1, (1, 2, 3, 4), resting=[4, 5])]))
        assert any("twice" in e for e in result["errors"])

    def test_unknown_player(self):
        result = validate_schedule(_make_schedule([_round(1, (1, 2, 3, 6), resting=[4, 5])]))
        assert any("not on the roster" in e for e in result["errors"])

    def test_court_count(self):
        schedule = _make_schedule([_round(1, (1, 2, 3, 4), resting=[5])], courts=2)
        assert any("courts" in e for e in validate_schedule(schedule)["errors"])

    def test_non_canonical_match(self):
        bad = Round(1, [Match(Pair(3, 4), Pair(1, 2))], [5])
        result = validate_schedule(_make_schedule([bad]))
        assert any("canonical" in e for e in result["errors"])

    def test_court_order_is_free(self):
        rnd = Round(1, [Match.of(5, 6, 7, 8), Match.of(1, 2, 3, 4)], [])
        result = validate_schedule(_make_schedule([rnd], courts=2, players=8))
        assert result["valid"]

    def test_split_fixed_pair(self):
        schedule = _make_schedule([_round(1, (1, 3, 2, 4), resting=[5])],
                                  fixed_pairs=[FixedPair.of(1, 2)])
        assert any("fixed pair" in e for e in validate_schedule(schedule)["errors"])

    def test_duplicate_round_number(self):
        schedule = _make_schedule([
            _round(1, (1, 2, 3, 4), resting=[5]),
            _round(1, (1, 3, 2, 5), resting=[4]),
        ])
        assert any("duplicate round" in e for e in validate_schedule(schedule)["errors"])

    def test_repeat_rest_warns(self):
        schedule = _make_schedule([
            _round(1, (1, 2, 3, 4), resting=[5]),
            _round(2, (1, 3, 2, 4), resting=[5]),
        ])
        result = validate_schedule(schedule)
        assert result["valid"]
        assert any("twice in a row" in w for w in result["warnings"])
        assert any("differ by 2" in w for w in result["warnings"])

    def test_played_rounds_keep_their_roster(self):
        schedule = _make_schedule([
            _round(1, (1, 2, 3, 4), resting=[5]),
            _round(2, (1, 2, 3, 6), resting=[5]),
        ])
        schedule.active_players = [1, 2, 3, 5, 6]
        schedule.played_rounds = [1]
        result = validate_schedule(schedule)
        assert result["valid"], result["errors"]

        schedule.played_rounds = []
        assert not validate_schedule(schedule)["valid"]

    def test_explicit_roster(self):
        schedule = _make_schedule([_round(1, (1, 2, 3, 4), resting=[5])])
        result = validate_schedule(schedule, active_players=[1, 2, 3, 4, 5, 6])
        assert any("missing: [6]" in e for e in result["errors"])


class TestFormatReport:
    def test_valid(self):
        text = format_validation_report({"valid": True, "errors": [], "warnings": []})
        assert "RESULT: VALID" in text

    def test_invalid(self):
        text = format_validation_report(
            {"valid": False, "errors": ["bad"], "warnings": ["meh"]})
        assert "INVALID (1 violations)" in text
        assert "ERROR: bad" in text
        assert "WARN: meh" in text
