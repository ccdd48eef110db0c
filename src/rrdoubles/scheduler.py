"""Schedule assembler: runs a strategy round by round.

Three modes:
1. Fresh generation: rounds 1..N from an empty state.
2. Progress-reporting generation: same search, driven step by step so the
   caller gets progress updates, can yield to an event loop, and can cancel.
3. Suffix regeneration: keep the rounds already played, rebuild the state
   from them for the current roster, and generate the remaining rounds.

A run goes IDLE -> RUNNING -> COMPLETED | FAILED | CANCELLED. A cancelled
run keeps the rounds it committed; a failed run keeps none.
"""

import asyncio
import random
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum

from rrdoubles.arrangements import ArrangementCache, default_cache
from rrdoubles.errors import (
    Cancelled, InsufficientPlayers, InvalidParameters, SchedulingError,
)
from rrdoubles.evaluation import (
    CumulativeState, build_state_for_active_players, commit_round, create_state,
    evaluate_from_state,
)
from rrdoubles.fixed_pairs import active_fixed_pairs, validate_fixed_pairs
from rrdoubles.models import (
    FixedPair, GenerationProgress, RegenerationParams, Round, Schedule,
    ScheduleParams, Weights,
)
from rrdoubles.registry import get_strategy
from rrdoubles.strategy import RoundContext, ScheduleStrategy

ProgressCallback = Callable[[GenerationProgress], None]
RoundCallback = Callable[[list[Round]], None]


class RunStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _resolve_strategy(strategy: ScheduleStrategy | str | None) -> ScheduleStrategy:
    if strategy is None or isinstance(strategy, str):
        return get_strategy(strategy)
    return strategy


def _check_weights(weights: Weights) -> None:
    for name, value in (("w1", weights.w1), ("w2", weights.w2), ("w3", weights.w3)):
        if value < 0:
            raise InvalidParameters(f"Weight {name} must be non-negative, got {value}")


def validate_params(params: ScheduleParams) -> list[str]:
    """Reject unusable generation parameters.

    Raises InvalidParameters or InsufficientPlayers; returns warnings for
    legal but notable setups.
    """
    if params.courts_count < 1:
        raise InvalidParameters(
            f"courts must be at least 1, got {params.courts_count}")
    if params.rounds_count < 1:
        raise InvalidParameters(
            f"rounds must be at least 1, got {params.rounds_count}")
    required = params.courts_count * 4
    if params.players_count < required:
        raise InsufficientPlayers(params.players_count, required)
    _check_weights(params.weights)

    result = validate_fixed_pairs(params.fixed_pairs, params.players_count,
                                  params.courts_count)
    if not result["valid"]:
        raise InvalidParameters("; ".join(result["errors"]))
    return result["warnings"]


def validate_regeneration(params: RegenerationParams) -> list[str]:
    if params.courts_count < 1:
        raise InvalidParameters(
            f"courts must be at least 1, got {params.courts_count}")
    if params.remaining_rounds_count < 0:
        raise InvalidParameters(
            f"remaining rounds cannot be negative, got {params.remaining_rounds_count}")
    if len(set(params.active_players)) != len(params.active_players):
        raise InvalidParameters("Active players contain duplicates")
    if any(p < 1 for p in params.active_players):
        raise InvalidParameters("Player ids start at 1")
    required = params.courts_count * 4
    if len(params.active_players) < required:
        raise InsufficientPlayers(len(params.active_players), required)
    _check_weights(params.weights)

    max_player = max(params.active_players)
    pairs = active_fixed_pairs(params.fixed_pairs, params.active_players)
    result = validate_fixed_pairs(pairs, max_player, params.courts_count)
    if not result["valid"]:
        raise InvalidParameters("; ".join(result["errors"]))
    return result["warnings"]


def _free_round_numbers(used: set[int], count: int) -> list[int]:
    """The ``count`` smallest positive round numbers not in ``used``."""
    numbers = []
    n = 1
    while len(numbers) < count:
        if n not in used:
            numbers.append(n)
        n += 1
    return numbers


class GenerationRun:
    """One generation run over a private cumulative state.

    Build with ``fresh`` or ``regeneration``, then drive with ``run`` or
    ``run_async``. Each run may be driven once.
    """

    def __init__(self, strategy: ScheduleStrategy, courts_count: int,
                 players: list[int], round_numbers: list[int],
                 state: CumulativeState, weights: Weights,
                 fixed_pairs: list[FixedPair], rng: random.Random,
                 kept_rounds: list[Round] | None = None,
                 previous_round: Round | None = None,
                 fresh: bool = True,
                 cache: ArrangementCache | None = None,
                 on_progress: ProgressCallback | None = None,
                 on_round_complete: RoundCallback | None = None,
                 verbose: bool = False):
        self.strategy = strategy
        self.courts_count = courts_count
        self.players = players
        self.round_numbers = round_numbers
        self.state = state
        self.weights = weights
        self.fixed_pairs = fixed_pairs
        self.rng = rng
        self.kept_rounds = list(kept_rounds or [])
        self.previous_round = previous_round
        self.fresh = fresh
        self.cache = cache if cache is not None else default_cache
        self.on_progress = on_progress
        self.on_round_complete = on_round_complete
        self.verbose = verbose

        self.status = RunStatus.IDLE
        self.error: BaseException | None = None
        self.new_rounds: list[Round] = []
        self.total_rounds = len(self.kept_rounds) + len(round_numbers)

    @classmethod
    def fresh_run(cls, params: ScheduleParams,
                  strategy: ScheduleStrategy | str | None = None,
                  **kwargs) -> "GenerationRun":
        validate_params(params)
        n = params.players_count
        return cls(
            strategy=_resolve_strategy(strategy),
            courts_count=params.courts_count,
            players=list(range(1, n + 1)),
            round_numbers=list(range(1, params.rounds_count + 1)),
            state=create_state(n),
            weights=params.weights,
            fixed_pairs=list(params.fixed_pairs),
            rng=random.Random(params.seed),
            fresh=True,
            **kwargs,
        )

    @classmethod
    def regeneration_run(cls, params: RegenerationParams,
                         strategy: ScheduleStrategy | str | None = None,
                         **kwargs) -> "GenerationRun":
        validate_regeneration(params)
        active = sorted(params.active_players)
        max_player = active[-1]
        completed = sorted(params.completed_rounds, key=lambda r: r.number)
        state = build_state_for_active_players(completed, active, max_player)
        numbers = _free_round_numbers({r.number for r in completed},
                                      params.remaining_rounds_count)
        return cls(
            strategy=_resolve_strategy(strategy),
            courts_count=params.courts_count,
            players=active,
            round_numbers=numbers,
            state=state,
            weights=params.weights,
            fixed_pairs=active_fixed_pairs(params.fixed_pairs, active),
            rng=random.Random(params.seed),
            kept_rounds=completed,
            previous_round=completed[-1] if completed else None,
            fresh=False,
            **kwargs,
        )

    # Progress accounting

    def _evaluations_after(self, rounds_done: int) -> int:
        if self.fresh:
            return self.strategy.estimate_total_evaluations(
                len(self.players), self.courts_count, rounds_done)
        per_round = self.strategy.round_evaluations(len(self.players),
                                                    self.courts_count)
        return per_round * rounds_done

    @property
    def total_evaluations(self) -> int:
        return max(1, self._evaluations_after(len(self.round_numbers)))

    def _progress(self, current: int, round_number: int) -> GenerationProgress:
        total = self.total_evaluations
        percentage = min(100, max(0, round(current * 100 / total)))
        return GenerationProgress(
            current_evaluations=current,
            total_evaluations=total,
            percentage=percentage,
            current_round=round_number,
            total_rounds=self.total_rounds,
        )

    # Generation

    @property
    def rounds(self) -> list[Round]:
        """Kept and newly generated rounds, ordered by round number."""
        return sorted(self.kept_rounds + self.new_rounds, key=lambda r: r.number)

    def _context(self, round_number: int, previous: Round | None) -> RoundContext:
        return RoundContext(
            round_number=round_number,
            courts_count=self.courts_count,
            players=self.players,
            state=self.state,
            weights=self.weights,
            fixed_pairs=self.fixed_pairs,
            previous_round=previous,
            rng=self.rng,
            cache=self.cache,
        )

    def steps(self) -> Iterator[GenerationProgress]:
        """Generate every round, yielding progress at each suspension point."""
        previous = self.previous_round
        for index, number in enumerate(self.round_numbers):
            ctx = self._context(number, previous)
            base = self._evaluations_after(index)
            ceiling = self._evaluations_after(index + 1)

            if self.fresh and index == 0:
                rnd = self.strategy.first_round(ctx)
            else:
                search = self.strategy.search_round(ctx)
                while True:
                    try:
                        count = next(search)
                    except StopIteration as done:
                        rnd = done.value
                        break
                    yield self._progress(min(base + count, ceiling), number)

            commit_round(self.state, rnd)
            self.new_rounds.append(rnd)
            previous = rnd

            if self.verbose:
                score = evaluate_from_state(self.state, self.weights).total_score
                print(f"  Round {number}/{self.total_rounds}: "
                      f"{len(rnd.matches)} matches, "
                      f"{len(rnd.resting_players)} resting, score {score:.4f}")
            if self.on_round_complete is not None:
                self.on_round_complete(self.rounds)
            yield self._progress(ceiling, number)

    def _report(self, progress: GenerationProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)

    def _check_cancel(self, cancel_event) -> None:
        # A cancel that lands after the last commit leaves a finished run.
        if len(self.new_rounds) == len(self.round_numbers):
            return
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(self.rounds)

    @contextmanager
    def _tracking(self):
        if self.status is not RunStatus.IDLE:
            raise SchedulingError(f"Run already {self.status.value}")
        self.status = RunStatus.RUNNING
        if self.verbose:
            print(f"Generating {len(self.round_numbers)} rounds with "
                  f"{self.strategy.name} ({len(self.players)} players, "
                  f"{self.courts_count} courts)...")
        try:
            yield
        except (Cancelled, asyncio.CancelledError):
            self.status = RunStatus.CANCELLED
            if self.verbose:
                print(f"Cancelled after {len(self.new_rounds)} rounds")
            raise
        except Exception as exc:
            self.status = RunStatus.FAILED
            self.error = exc
            self.new_rounds = []
            raise
        self.status = RunStatus.COMPLETED
        if self.verbose:
            evaluation = evaluate_from_state(self.state, self.weights)
            print(f"Done: score {evaluation.total_score:.4f} "
                  f"(pair {evaluation.pair_stddev:.4f}, "
                  f"opponent {evaluation.oppo_stddev:.4f}, "
                  f"rest {evaluation.rest_stddev:.4f})")

    def run(self, cancel_event=None) -> Schedule:
        """Generate synchronously. ``cancel_event`` is polled between steps."""
        with self._tracking():
            for progress in self.steps():
                self._report(progress)
                self._check_cancel(cancel_event)
        return self.schedule()

    async def run_async(self, cancel_event=None) -> Schedule:
        """Generate, handing control back to the event loop at every step.

        ``cancel_event`` is any object with ``is_set()`` (e.g.
        ``asyncio.Event``); once set, the run raises Cancelled at the next
        suspension point.
        """
        with self._tracking():
            for progress in self.steps():
                self._report(progress)
                await asyncio.sleep(0)
                self._check_cancel(cancel_event)
        return self.schedule()

    def schedule(self) -> Schedule:
        """The schedule as committed so far (partial if cancelled)."""
        return Schedule(
            courts=self.courts_count,
            players=self.state.players_count,
            rounds=self.rounds,
            evaluation=evaluate_from_state(self.state, self.weights),
            fixed_pairs=list(self.fixed_pairs),
            active_players=list(self.players),
            played_rounds=sorted(r.number for r in self.kept_rounds),
        )


class ScheduleSession:
    """Runs generations one at a time for a single caller.

    Starting a generation cancels the one in flight, so two runs never
    share a caller's attention; each run has its own state.
    """

    def __init__(self, strategy: ScheduleStrategy | str | None = None,
                 verbose: bool = False, cache: ArrangementCache | None = None):
        self.strategy = strategy
        self.verbose = verbose
        self.cache = cache
        self.current: GenerationRun | None = None
        self._cancel_event: asyncio.Event | None = None

    @property
    def is_running(self) -> bool:
        return (self.current is not None
                and self.current.status is RunStatus.RUNNING)

    def cancel(self) -> None:
        if self._cancel_event is not None:
            self._cancel_event.set()

    def _start(self, run: GenerationRun) -> asyncio.Event:
        self.cancel()
        self.current = run
        self._cancel_event = asyncio.Event()
        return self._cancel_event

    async def generate(self, params: ScheduleParams,
                       on_progress: ProgressCallback | None = None,
                       on_round_complete: RoundCallback | None = None) -> Schedule:
        run = GenerationRun.fresh_run(
            params, self.strategy, cache=self.cache, on_progress=on_progress,
            on_round_complete=on_round_complete, verbose=self.verbose)
        return await run.run_async(self._start(run))

    async def regenerate(self, params: RegenerationParams,
                         on_progress: ProgressCallback | None = None,
                         on_round_complete: RoundCallback | None = None) -> Schedule:
        run = GenerationRun.regeneration_run(
            params, self.strategy, cache=self.cache, on_progress=on_progress,
            on_round_complete=on_round_complete, verbose=self.verbose)
        return await run.run_async(self._start(run))


def generate_schedule(params: ScheduleParams,
                      strategy: ScheduleStrategy | str | None = None,
                      verbose: bool = False, **kwargs) -> Schedule:
    """Generate a full schedule synchronously."""
    run = GenerationRun.fresh_run(params, strategy, verbose=verbose, **kwargs)
    return run.run()


async def generate_schedule_async(params: ScheduleParams,
                                  strategy: ScheduleStrategy | str | None = None,
                                  cancel_event=None, verbose: bool = False,
                                  **kwargs) -> Schedule:
    run = GenerationRun.fresh_run(params, strategy, verbose=verbose, **kwargs)
    return await run.run_async(cancel_event)


def regenerate_suffix(params: RegenerationParams,
                      strategy: ScheduleStrategy | str | None = None,
                      verbose: bool = False, **kwargs) -> Schedule:
    """Keep the completed rounds and regenerate the rest for a new roster.

    New rounds take the smallest round numbers the completed rounds leave
    free; the result is ordered by round number.
    """
    run = GenerationRun.regeneration_run(params, strategy, verbose=verbose, **kwargs)
    return run.run()


async def regenerate_suffix_async(params: RegenerationParams,
                                  strategy: ScheduleStrategy | str | None = None,
                                  cancel_event=None, verbose: bool = False,
                                  **kwargs) -> Schedule:
    run = GenerationRun.regeneration_run(params, strategy, verbose=verbose, **kwargs)
    return await run.run_async(cancel_event)


def estimate_total_evaluations(players_count: int, courts_count: int,
                               rounds_count: int,
                               strategy: ScheduleStrategy | str | None = None) -> int:
    """Progress-bar denominator for a fresh generation."""
    return _resolve_strategy(strategy).estimate_total_evaluations(
        players_count, courts_count, rounds_count)
