"""
Bounded in-memory tables: transposition table, history heuristic, and the
evaluation cache.

All three share one eviction policy (BoundedTable). When an insert makes
the table reach its capacity, a fixed fraction of the lowest-ranked entries
is dropped in one batch, leaving the table strictly below capacity. The
transposition table ranks by search depth, the history table by score.
Ties go oldest-first: dicts keep insertion order and sorted() is stable.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, Optional, TypeVar

from hybrid_chess.constants import (
    EVAL_CACHE_SIZE,
    EVICT_FRACTION,
    HISTORY_MAX,
    HISTORY_SIZE,
    TT_SIZE,
)

_log = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class BoundedTable(Generic[K, V]):
    """
    A dict with a capacity and rank-based batch eviction.

    Args:
        capacity:       Maximum number of entries; reaching it triggers eviction.
        evict_fraction: Share of the table (0 < f <= 1) dropped per eviction.
        rank:           Maps a value to its keep-priority; lowest ranks go first.
    """

    def __init__(
        self,
        capacity: int,
        evict_fraction: float = EVICT_FRACTION,
        rank: Callable[[V], float] = lambda value: 0,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        if not 0.0 < evict_fraction <= 1.0:
            raise ValueError("evict_fraction must be in (0, 1]")
        self.capacity = capacity
        self.evict_fraction = evict_fraction
        self._rank = rank
        self._data: dict[K, V] = {}
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        return self._data.get(key, default)

    def items(self):
        return self._data.items()

    def put(self, key: K, value: V) -> None:
        self._data[key] = value
        if len(self._data) >= self.capacity:
            self._evict()

    def clear(self) -> None:
        self._data.clear()

    def rescale(self, fn: Callable[[V], V]) -> None:
        """Replace every value with fn(value), keeping keys and their order."""
        for key in self._data:
            self._data[key] = fn(self._data[key])

    def _evict(self) -> None:
        count = max(1, math.ceil(len(self._data) * self.evict_fraction))
        victims = sorted(self._data, key=lambda k: self._rank(self._data[k]))[:count]
        for key in victims:
            del self._data[key]
        self.evictions += 1
        _log.debug("evicted %d entries, %d remain", count, len(self._data))


class Bound(enum.Enum):
    EXACT = "exact"
    LOWER = "lower"
    UPPER = "upper"


@dataclass(frozen=True)
class TTEntry:
    key: int
    score: int
    depth: int
    best_move: Optional[str]
    flag: Bound


class TranspositionTable:
    """Search results keyed by Zobrist hash, evicting shallowest entries first."""

    def __init__(self, capacity: int = TT_SIZE, evict_fraction: float = EVICT_FRACTION) -> None:
        self._table: BoundedTable[int, TTEntry] = BoundedTable(
            capacity, evict_fraction, rank=lambda entry: entry.depth
        )

    def __len__(self) -> int:
        return len(self._table)

    @property
    def capacity(self) -> int:
        return self._table.capacity

    @property
    def evictions(self) -> int:
        """Number of eviction batches since the table was created."""
        return self._table.evictions

    def get(self, key: int) -> Optional[TTEntry]:
        """Raw lookup, regardless of depth. Used for the hash move."""
        return self._table.get(key)

    def lookup(self, key: int, depth: int) -> Optional[TTEntry]:
        """Return the entry only if it was searched at least `depth` plies deep."""
        entry = self._table.get(key)
        if entry is None or entry.depth < depth:
            return None
        return entry

    def store(self, key: int, score: int, depth: int, best_move: Optional[str], flag: Bound) -> None:
        self._table.put(key, TTEntry(key, score, depth, best_move, flag))

    def entries(self) -> list[TTEntry]:
        return [entry for _, entry in self._table.items()]

    def clear(self) -> None:
        self._table.clear()


class HistoryTable:
    """
    Move string -> accumulated cutoff score (+depth² per cutoff).

    When a reward takes a score to `max_score` or beyond, every score in the
    table is halved. Scores therefore stay below max_score, and old cutoffs
    weigh less than recent ones.
    """

    def __init__(
        self,
        capacity: int = HISTORY_SIZE,
        evict_fraction: float = EVICT_FRACTION,
        max_score: int = HISTORY_MAX,
    ) -> None:
        self._table: BoundedTable[str, int] = BoundedTable(capacity, evict_fraction, rank=lambda score: score)
        self.max_score = max_score

    def __len__(self) -> int:
        return len(self._table)

    def score(self, move: str) -> int:
        return self._table.get(move, 0)

    def reward(self, move: str, depth: int) -> None:
        score = self._table.get(move, 0) + depth * depth
        self._table.put(move, score)
        while score >= self.max_score:
            self._table.rescale(lambda value: value // 2)
            score //= 2

    def clear(self) -> None:
        self._table.clear()


def make_eval_cache(capacity: int = EVAL_CACHE_SIZE) -> BoundedTable[int, int]:
    # Every cached evaluation is a depth-0 result, so eviction is oldest-first.
    return BoundedTable(capacity, EVICT_FRACTION)
