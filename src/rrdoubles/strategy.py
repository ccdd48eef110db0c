"""Common interface for round-generation strategies.

A strategy builds one round at a time from a ``RoundContext``; the
scheduler strings rounds together, commits them into the shared
cumulative state and handles progress and cancellation.
"""

import random
from collections.abc import Generator
from dataclasses import dataclass, field

from rrdoubles.arrangements import ArrangementCache, default_cache
from rrdoubles.evaluation import CumulativeState
from rrdoubles.models import FixedPair, Round, Weights

# A round search yields running evaluation counts at suspension points and
# returns the finished Round.
RoundSearch = Generator[int, None, Round]


@dataclass
class RoundContext:
    """Everything a strategy may read while building one round."""
    round_number: int
    courts_count: int
    players: list[int]
    state: CumulativeState
    weights: Weights
    fixed_pairs: list[FixedPair] = field(default_factory=list)
    previous_round: Round | None = None
    rng: random.Random = field(default_factory=random.Random)
    cache: ArrangementCache = field(default_factory=lambda: default_cache)

    @property
    def playing_count(self) -> int:
        return self.courts_count * 4

    @property
    def rest_count(self) -> int:
        return len(self.players) - self.playing_count

    @property
    def previous_resting(self) -> list[int]:
        if self.previous_round is None:
            return []
        return list(self.previous_round.resting_players)


class ScheduleStrategy:
    """Base class for round-generation algorithms."""

    id = ""
    name = ""
    description = ""
    is_experimental = False

    # Candidate evaluations between suspension points.
    batch_size = 100

    def round_evaluations(self, players_count: int, courts_count: int) -> int:
        """Estimated candidate evaluations for one searched round."""
        raise NotImplementedError

    def estimate_total_evaluations(self, players_count: int, courts_count: int,
                                   rounds_count: int) -> int:
        return self.round_evaluations(players_count, courts_count) * rounds_count

    def first_round(self, ctx: RoundContext) -> Round:
        """Build round 1 of a fresh schedule (no history to optimize)."""
        raise NotImplementedError

    def search_round(self, ctx: RoundContext) -> RoundSearch:
        """Build a later round, yielding evaluation counts as it goes."""
        raise NotImplementedError

    def build_round(self, ctx: RoundContext) -> Round:
        """Run ``search_round`` to completion without suspending."""
        search = self.search_round(ctx)
        while True:
            try:
                next(search)
            except StopIteration as done:
                return done.value

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id!r}>"
