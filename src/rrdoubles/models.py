"""Data models for the doubles round-robin scheduler."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Pair:
    """Two teammates on one side of a court. Stored with player1 < player2."""
    player1: int
    player2: int

    @classmethod
    def of(cls, a: int, b: int) -> "Pair":
        return cls(a, b) if a < b else cls(b, a)

    @property
    def players(self) -> tuple[int, int]:
        return (self.player1, self.player2)

    def involves(self, player: int) -> bool:
        return player in (self.player1, self.player2)

    def partner(self, player: int) -> int:
        if player == self.player1:
            return self.player2
        return self.player1


@dataclass(frozen=True)
class Match:
    """Two pairs contesting one court. Stored with min(pair_a) < min(pair_b)."""
    pair_a: Pair
    pair_b: Pair

    @classmethod
    def of(cls, p1: int, p2: int, p3: int, p4: int) -> "Match":
        """Build a normalized match from (p1, p2) vs (p3, p4) in any order."""
        a = Pair.of(p1, p2)
        b = Pair.of(p3, p4)
        if a.player1 < b.player1:
            return cls(a, b)
        return cls(b, a)

    @property
    def players(self) -> tuple[int, int, int, int]:
        return (self.pair_a.player1, self.pair_a.player2,
                self.pair_b.player1, self.pair_b.player2)

    def opponents(self) -> list[tuple[int, int]]:
        """The four cross-court (player, opponent) combinations."""
        return [(a, b) for a in self.pair_a.players for b in self.pair_b.players]


# Fixed pairs share the Pair shape and normalization.
FixedPair = Pair


@dataclass
class Round:
    """One round: a match per court plus the players sitting out."""
    number: int
    matches: list[Match]
    resting_players: list[int] = field(default_factory=list)

    @property
    def playing_players(self) -> list[int]:
        return sorted(p for m in self.matches for p in m.players)

    @property
    def all_players(self) -> list[int]:
        return sorted(self.playing_players + list(self.resting_players))


@dataclass(frozen=True)
class Weights:
    """Fairness weights: w1 pair spread, w2 opponent spread, w3 rest spread."""
    w1: float = 1.0
    w2: float = 0.5
    w3: float = 2.0


@dataclass(frozen=True)
class Evaluation:
    pair_stddev: float = 0.0
    oppo_stddev: float = 0.0
    rest_stddev: float = 0.0
    total_score: float = 0.0


@dataclass
class Schedule:
    """A complete tournament schedule.

    ``players`` is the largest player id in use (the size of the count
    matrices), not necessarily the number of active players.
    ``played_rounds`` lists the round numbers kept from before the last
    roster change; those rounds were played by an earlier roster.
    """
    courts: int
    players: int
    rounds: list[Round]
    evaluation: Evaluation
    fixed_pairs: list[FixedPair] = field(default_factory=list)
    active_players: list[int] = field(default_factory=list)
    played_rounds: list[int] = field(default_factory=list)

    def round_by_number(self, number: int) -> Round | None:
        for rnd in self.rounds:
            if rnd.number == number:
                return rnd
        return None


@dataclass
class ScheduleParams:
    """Inputs for a fresh schedule generation."""
    courts_count: int
    players_count: int
    rounds_count: int
    weights: Weights = field(default_factory=Weights)
    fixed_pairs: list[FixedPair] = field(default_factory=list)
    seed: int | None = None


@dataclass
class RegenerationParams:
    """Inputs for rebuilding the unplayed suffix of a schedule."""
    courts_count: int
    completed_rounds: list[Round]
    active_players: list[int]
    remaining_rounds_count: int
    weights: Weights = field(default_factory=Weights)
    fixed_pairs: list[FixedPair] = field(default_factory=list)
    seed: int | None = None


@dataclass(frozen=True)
class GenerationProgress:
    current_evaluations: int
    total_evaluations: int
    percentage: int
    current_round: int
    total_rounds: int


def is_normalized(arrangement: list[int], courts_count: int) -> bool:
    """Check the three canonical-form rules on a flat 4-slots-per-court list.

    1. Within each pair: player1 < player2.
    2. Within a court: min(pair_a) < min(pair_b).
    3. Between courts: min(court[i]) < min(court[i+1]).
    """
    previous_min = None
    for c in range(courts_count):
        p1, p2, p3, p4 = arrangement[c * 4:c * 4 + 4]
        if p1 >= p2 or p3 >= p4:
            return False
        if p1 >= p3:
            return False
        court_min = p1
        if previous_min is not None and previous_min >= court_min:
            return False
        previous_min = court_min
    return True


def arrangement_to_round(arrangement: list[int], courts_count: int,
                         round_number: int,
                         resting_players: list[int] | None = None) -> Round:
    """Convert a flat [p1,p2,p3,p4, ...] arrangement into a Round.

    The arrangement is read as (p1, p2) vs (p3, p4) per court; each court
    is normalized into a canonical Match.
    """
    matches = []
    for c in range(courts_count):
        p1, p2, p3, p4 = arrangement[c * 4:c * 4 + 4]
        matches.append(Match.of(p1, p2, p3, p4))
    return Round(
        number=round_number,
        matches=matches,
        resting_players=sorted(resting_players or []),
    )
