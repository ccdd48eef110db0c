"""Config loading and validation for the doubles round-robin scheduler."""

from pathlib import Path

import yaml

from rrdoubles.errors import InvalidParameters
from rrdoubles.fixed_pairs import normalize_fixed_pair
from rrdoubles.models import FixedPair, ScheduleParams, Weights
from rrdoubles.registry import DEFAULT_STRATEGY_ID

# Both the descriptive and the short weight names are accepted.
WEIGHT_KEYS = {
    "pair": "w1", "w1": "w1",
    "opponent": "w2", "w2": "w2",
    "rest": "w3", "w3": "w3",
}


def parse_weights(raw: dict | None) -> Weights:
    """Parse a weights mapping like {pair: 1.0, opponent: 0.5, rest: 2.0}."""
    if not raw:
        return Weights()
    if not isinstance(raw, dict):
        raise InvalidParameters(f"Weights must be a mapping, got {raw!r}")
    values = {}
    for key, value in raw.items():
        name = WEIGHT_KEYS.get(str(key).lower())
        if name is None:
            raise InvalidParameters(f"Unknown weight '{key}'")
        try:
            values[name] = float(value)
        except (TypeError, ValueError):
            raise InvalidParameters(
                f"Weight '{key}' must be a number, got {value!r}") from None
    return Weights(**values)


def parse_fixed_pairs(raw: list | None) -> list[FixedPair]:
    """Parse [[1, 2], [3, 4]] (or "1-2" strings) into normalized fixed pairs."""
    if raw is not None and not isinstance(raw, list):
        raise InvalidParameters(f"fixed_pairs must be a list, got {raw!r}")
    pairs = []
    for item in raw or []:
        if isinstance(item, str):
            item = item.replace(" ", "").split("-")
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise InvalidParameters(f"Fixed pair must have two players: {item!r}")
        try:
            a, b = int(item[0]), int(item[1])
        except (TypeError, ValueError):
            raise InvalidParameters(
                f"Fixed pair players must be integers: {item!r}") from None
        pairs.append(normalize_fixed_pair(a, b))
    return pairs


def load_config(path: str | Path) -> dict:
    """Load and check config YAML, returning structured data.

    Returns dict with:
    - params: ScheduleParams
    - strategy: strategy id
    """
    path = Path(path)
    with open(path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidParameters(f"{path}: not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise InvalidParameters(f"{path}: config must be a mapping")

    errors = []
    for key in ("courts", "players", "rounds"):
        if key not in raw:
            errors.append(f"Missing required key '{key}'")
        elif not isinstance(raw[key], int) or isinstance(raw[key], bool):
            errors.append(f"'{key}' must be an integer, got {raw[key]!r}")
    seed = raw.get("seed")
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool)):
        errors.append(f"'seed' must be an integer, got {seed!r}")

    if errors:
        print("Config validation errors:")
        for e in errors:
            print(f"  {e}")
        raise InvalidParameters(f"{path}: " + "; ".join(errors))

    params = ScheduleParams(
        courts_count=raw["courts"],
        players_count=raw["players"],
        rounds_count=raw["rounds"],
        weights=parse_weights(raw.get("weights")),
        fixed_pairs=parse_fixed_pairs(raw.get("fixed_pairs")),
        seed=seed,
    )

    return {
        "params": params,
        "strategy": str(raw.get("strategy", DEFAULT_STRATEGY_ID)),
    }
