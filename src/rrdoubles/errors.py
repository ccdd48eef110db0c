"""Exceptions raised by schedule generation."""


class SchedulingError(Exception):
    """Base class for all scheduler errors."""


class InvalidParameters(SchedulingError, ValueError):
    """Raised when generation parameters are malformed."""


class InsufficientPlayers(SchedulingError):
    """Raised when there are fewer active players than the courts need."""

    def __init__(self, active_count: int, required: int):
        self.active_count = active_count
        self.required = required
        super().__init__(
            f"{active_count} active players is below the {required} "
            f"needed to fill every court"
        )


class ConstraintUnsatisfiable(SchedulingError):
    """Raised when no arrangement keeps every fixed pair together."""

    def __init__(self, round_number: int):
        self.round_number = round_number
        super().__init__(
            f"No arrangement satisfies the fixed pairs for round {round_number}"
        )


class Cancelled(SchedulingError):
    """Raised when a generation run observes its cancellation signal.

    ``rounds`` holds the rounds committed before cancellation.
    """

    def __init__(self, rounds=None):
        self.rounds = list(rounds or [])
        super().__init__(
            f"Generation cancelled after {len(self.rounds)} rounds"
        )
