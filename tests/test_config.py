"""Tests for config.py: parsing and loading."""

from pathlib import Path

import pytest

from rrdoubles.config import load_config, parse_fixed_pairs, parse_weights
from rrdoubles.errors import InvalidParameters
from rrdoubles.models import FixedPair, Weights

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config.yaml"


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestParseWeights:
    def test_defaults(self):
        assert parse_weights(None) == Weights()
        assert parse_weights({}) == Weights()

    def test_descriptive_names(self):
        w = parse_weights({"pair": 2, "opponent": 1, "rest": 0})
        assert w == Weights(2.0, 1.0, 0.0)

    def test_short_names_and_partial(self):
        assert parse_weights({"w2": 0.25}) == Weights(1.0, 0.25, 2.0)

    def test_unknown_key(self):
        with pytest.raises(InvalidParameters):
            parse_weights({"speed": 1})

    def test_not_a_mapping(self):
        with pytest.raises(InvalidParameters, match="mapping"):
            parse_weights([1, 2])

    def test_non_numeric_value(self):
        with pytest.raises(InvalidParameters, match="number"):
            parse_weights({"pair": "heavy"})


class TestParseFixedPairs:
    def test_lists(self):
        assert parse_fixed_pairs([[4, 1], [2, 3]]) == [FixedPair(1, 4), FixedPair(2, 3)]

    def test_strings(self):
        assert parse_fixed_pairs(["5-6", "8 - 7"]) == [FixedPair(5, 6), FixedPair(7, 8)]

    def test_empty(self):
        assert parse_fixed_pairs(None) == []

    def test_wrong_size(self):
        with pytest.raises(InvalidParameters):
            parse_fixed_pairs([[1, 2, 3]])

    def test_flat_list(self):
        with pytest.raises(InvalidParameters, match="two players"):
            parse_fixed_pairs([1, 2])

    def test_non_integer_player(self):
        with pytest.raises(InvalidParameters, match="integers"):
            parse_fixed_pairs(["1-x"])

    def test_not_a_list(self):
        with pytest.raises(InvalidParameters):
            parse_fixed_pairs("1-2")


class TestLoadConfig:
    def test_loads_repo_config(self):
        config = load_config(REPO_CONFIG)
        params = config["params"]
        assert params.courts_count == 2
        assert params.players_count == 10
        assert params.rounds_count == 7
        assert params.weights == Weights(1.0, 0.5, 2.0)
        assert config["strategy"] == "greedy"

    def test_full(self, tmp_path):
        path = _write(tmp_path, """\
courts: 1
players: 6
rounds: 5
strategy: sequential-decision
seed: 7
weights: {pair: 1.5}
fixed_pairs: [[2, 1]]
""")
        config = load_config(path)
        params = config["params"]
        assert params.courts_count == 1
        assert params.players_count == 6
        assert params.rounds_count == 5
        assert params.seed == 7
        assert params.weights == Weights(1.5, 0.5, 2.0)
        assert params.fixed_pairs == [FixedPair(1, 2)]
        assert config["strategy"] == "sequential-decision"

    def test_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, "courts: 2\nplayers: 8\nrounds: 3\n"))
        assert config["strategy"] == "sequential-decision"
        assert config["params"].seed is None
        assert config["params"].fixed_pairs == []

    def test_missing_key(self, tmp_path):
        with pytest.raises(InvalidParameters, match="rounds"):
            load_config(_write(tmp_path, "courts: 2\nplayers: 8\n"))

    def test_non_integer(self, tmp_path):
        with pytest.raises(InvalidParameters, match="players"):
            load_config(_write(tmp_path, "courts: 2\nplayers: many\nrounds: 3\n"))

    def test_bad_seed(self, tmp_path):
        with pytest.raises(InvalidParameters, match="seed"):
            load_config(_write(tmp_path, "courts: 1\nplayers: 4\nrounds: 3\nseed: abc\n"))

    def test_malformed_fixed_pairs(self, tmp_path):
        with pytest.raises(InvalidParameters):
            load_config(_write(tmp_path, "courts: 1\nplayers: 4\nrounds: 3\n"
                                         "fixed_pairs: ['1-x']\n"))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(InvalidParameters, match="YAML"):
            load_config(_write(tmp_path, "courts: [1\n"))
