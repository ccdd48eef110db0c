"""Canonical court-arrangement templates.

Builds only arrangements that already satisfy the canonical-form rules
(see ``models.is_normalized``) instead of filtering all n! permutations.
For 2 courts / 8 players that is 315 templates instead of 40,320.

Templates are expressed over local indices [0, playing_count) so one
template set serves every player subset of the same size. Map a template
onto real player ids with ``template_to_arrangement``.
"""

import math
from collections.abc import Iterable, Iterator, Sequence

# Above this many templates, enumerate lazily instead of caching a list.
CACHE_THRESHOLD = 1_000_000


def estimate_arrangement_count(courts_count: int, playing_count: int) -> int:
    """Number of canonical arrangements: n! / (2^(3c) * c!).

    2^(2c) for the order inside each pair, 2^c for the order of the two
    pairs on a court, c! for the order of the courts.
    """
    divisor = 2 ** (3 * courts_count) * math.factorial(courts_count)
    return math.factorial(playing_count) // divisor


def iter_normalized_templates(courts_count: int,
                              playing_count: int) -> Iterator[list[int]]:
    """Lazily yield every canonical template.

    The yielded list is a single buffer reused between steps: copy it
    (``tuple(t)``) before advancing the iterator if you need to keep it.
    """
    _check_sizes(courts_count, playing_count)
    return _build(list(range(playing_count)), courts_count, [])


def _check_sizes(courts_count: int, playing_count: int) -> None:
    if courts_count < 1:
        raise ValueError(f"courts_count must be >= 1, got {courts_count}")
    if playing_count != courts_count * 4:
        raise ValueError(
            f"{courts_count} courts need exactly {courts_count * 4} playing "
            f"players, got {playing_count}"
        )


def _build(available: list[int], remaining_courts: int,
           current: list[int]) -> Iterator[list[int]]:
    if remaining_courts == 0:
        yield current
        return
    if len(available) < 4:
        return

    # The smallest remaining player always leads pair A of the next court,
    # which keeps courts ordered by their minimum.
    first = available[0]
    rest = available[1:]
    for i, second in enumerate(rest):
        after_pair_a = rest[:i] + rest[i + 1:]
        n = len(after_pair_a)
        for j in range(n - 1):
            for k in range(j + 1, n):
                remainder = [p for idx, p in enumerate(after_pair_a)
                             if idx != j and idx != k]
                current.extend((first, second, after_pair_a[j], after_pair_a[k]))
                yield from _build(remainder, remaining_courts - 1, current)
                del current[-4:]


class ArrangementCache:
    """Template store keyed by (courts_count, playing_count).

    Small template sets are materialized once as tuples and reused; sets
    larger than ``threshold`` are never stored and come back as a fresh
    lazy iterator on every call.
    """

    def __init__(self, threshold: int = CACHE_THRESHOLD):
        self.threshold = threshold
        self._templates: dict[tuple[int, int], list[tuple[int, ...]]] = {}

    def get(self, courts_count: int,
            playing_count: int) -> Iterable[Sequence[int]]:
        if estimate_arrangement_count(courts_count, playing_count) > self.threshold:
            return iter_normalized_templates(courts_count, playing_count)
        key = (courts_count, playing_count)
        cached = self._templates.get(key)
        if cached is None:
            cached = [tuple(t) for t in
                      iter_normalized_templates(courts_count, playing_count)]
            self._templates[key] = cached
        return cached

    def clear(self) -> None:
        self._templates.clear()

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, key: tuple[int, int]) -> bool:
        return key in self._templates


default_cache = ArrangementCache()


def get_normalized_arrangements(courts_count: int, playing_count: int,
                                cache: ArrangementCache | None = None,
                                ) -> Iterable[Sequence[int]]:
    """All canonical templates for the given size, cached when small."""
    if cache is None:
        cache = default_cache
    return cache.get(courts_count, playing_count)


def template_to_arrangement(template: Sequence[int],
                            player_map: Sequence[int]) -> list[int]:
    """Replace each template index with the real player id it maps to."""
    return [player_map[i] for i in template]
