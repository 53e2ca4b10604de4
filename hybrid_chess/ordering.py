"""
Move ordering: hash move, MVV-LVA captures, killer moves, history heuristic.

Alpha-beta prunes most when the best move is searched first. Every move gets
an additive priority:

    hash move           HASH_MOVE_BONUS (always first)
    capture             CAPTURE_BONUS + victim * 100 - attacker   (MVV-LVA)
    killer, slot 0/1    KILLER_BONUS, KILLER_BONUS - KILLER_SLOT_STEP
    gives check         + CHECK_BONUS
    castling            + CASTLE_BONUS
    any move            + history score (kept below HISTORY_MAX)

and the list is sorted descending. sorted() is stable, so equal scores keep
the order the rules collaborator generated them in.
"""

from __future__ import annotations

from typing import Iterable, Optional

from hybrid_chess.constants import (
    CAPTURE_BONUS,
    CASTLE_BONUS,
    CHECK_BONUS,
    HASH_MOVE_BONUS,
    KILLER_BONUS,
    KILLER_SLOT_STEP,
    KILLER_SLOTS,
)
from hybrid_chess.moves import describe
from hybrid_chess.position import Grid
from hybrid_chess.tables import HistoryTable


class KillerTable:
    """Per-ply quiet moves that caused a beta cutoff, most recent first."""

    def __init__(self, slots: int = KILLER_SLOTS) -> None:
        self.slots = slots
        self._killers: dict[int, list[str]] = {}

    def at(self, ply: int) -> list[str]:
        return self._killers.get(ply, [])

    def is_killer(self, ply: int, move: str) -> bool:
        return move in self._killers.get(ply, ())

    def add(self, ply: int, move: str) -> None:
        killers = self._killers.setdefault(ply, [])
        if move in killers:
            killers.remove(move)
        killers.insert(0, move)
        del killers[self.slots:]

    def clear(self) -> None:
        self._killers.clear()


class MoveOrderer:
    """
    Scores and sorts moves for the main search.

    Args:
        killers: Killer table shared with the search; read per ply.
        history: History table shared with the search; read for every move.
    """

    def __init__(self, killers: KillerTable, history: HistoryTable) -> None:
        self.killers = killers
        self.history = history

    def score(self, move: str, grid: Grid, ply: int, hash_move: Optional[str] = None) -> int:
        """Priority of one move at `ply`; higher is searched earlier."""
        if move == hash_move:
            return HASH_MOVE_BONUS
        info = describe(move, grid)
        score = self.history.score(move)
        if info.is_capture:
            score += CAPTURE_BONUS + info.mvv_lva
        else:
            killers = self.killers.at(ply)
            if move in killers:
                score += KILLER_BONUS - killers.index(move) * KILLER_SLOT_STEP
        if info.gives_check:
            score += CHECK_BONUS
        if info.is_castle:
            score += CASTLE_BONUS
        return score

    def order(
        self,
        moves: Iterable[str],
        grid: Grid,
        ply: int,
        hash_move: Optional[str] = None,
    ) -> list[str]:
        """
        Return `moves` sorted by descending priority.

        Args:
            moves:     SAN moves to order.
            grid:      Board grid of the position the moves are played from.
            ply:       Distance from the root; selects the killer slots.
            hash_move: Best move stored for this position, if any.

        Returns:
            A new list; ties keep their input order.
        """
        return sorted(moves, key=lambda m: self.score(m, grid, ply, hash_move), reverse=True)


def order_tactical(moves: Iterable[str], grid: Grid) -> list[str]:
    """MVV-LVA ordering for quiescence; checking moves sort after captures."""
    def _key(move: str) -> int:
        info = describe(move, grid)
        return CAPTURE_BONUS + info.mvv_lva if info.is_capture else 0

    return sorted(moves, key=_key, reverse=True)
