"""Strategy registry: look up round-generation strategies by id."""

from rrdoubles.errors import InvalidParameters
from rrdoubles.greedy import GreedyStrategy
from rrdoubles.sequential import SequentialDecisionStrategy
from rrdoubles.strategy import ScheduleStrategy

DEFAULT_STRATEGY_ID = SequentialDecisionStrategy.id

_strategies: dict[str, ScheduleStrategy] = {}


def register_strategy(strategy: ScheduleStrategy) -> None:
    """Add (or replace) a strategy under its ``id``."""
    if not strategy.id:
        raise InvalidParameters("Strategy must have a non-empty id")
    _strategies[strategy.id] = strategy


def get_strategy(strategy_id: str | None = None) -> ScheduleStrategy:
    if strategy_id is None:
        strategy_id = DEFAULT_STRATEGY_ID
    try:
        return _strategies[strategy_id]
    except KeyError:
        known = ", ".join(sorted(_strategies))
        raise InvalidParameters(
            f"Unknown strategy '{strategy_id}' (available: {known})"
        ) from None


def available_strategies() -> list[ScheduleStrategy]:
    return list(_strategies.values())


register_strategy(GreedyStrategy())
register_strategy(SequentialDecisionStrategy())
