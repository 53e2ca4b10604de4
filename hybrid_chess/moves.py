"""
Move features derived from SAN on demand.

The engine keeps moves as SAN strings and never builds a persistent move
object. Ordering, LMR and quiescence only need a handful of facts about a
move, all of which can be read off the SAN text plus the current board grid:

    Nxe5+   knight (attacker) captures on e5 (victim read from the grid), check
    exd6    pawn capture; an empty destination means en passant (victim pawn)
    e8=Q#   promotion to a queen, mate
    O-O     castling: quiet king move, no destination square needed
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import chess

from hybrid_chess.constants import ORDER_VALUES, SAN_PIECES
from hybrid_chess.position import Grid


class MoveInfo(NamedTuple):
    destination: Optional[str]
    attacker_value: int
    victim_value: int
    is_capture: bool
    gives_check: bool
    gives_mate: bool
    is_promotion: bool
    is_castle: bool

    @property
    def is_quiet(self) -> bool:
        return not (self.is_capture or self.gives_check or self.is_promotion)

    @property
    def mvv_lva(self) -> int:
        """Most valuable victim first, least valuable attacker as tie-break."""
        return self.victim_value * 100 - self.attacker_value


def grid_piece(grid: Grid, square: str) -> Optional[chess.Piece]:
    """Look up a square name ("e4") in a rank-8-first grid."""
    file_index = ord(square[0]) - ord("a")
    rank = int(square[1])
    return grid[8 - rank][file_index]


def describe(san: str, grid: Grid) -> MoveInfo:
    gives_mate = san.endswith("#")
    gives_check = gives_mate or san.endswith("+")
    text = san.rstrip("+#!?")

    if text.startswith("O-O"):
        return MoveInfo(None, ORDER_VALUES[chess.KING], 0, False, gives_check, gives_mate, False, True)

    is_promotion = "=" in text
    if is_promotion:
        text = text[: text.index("=")]

    destination = text[-2:]
    attacker = SAN_PIECES.get(text[0], chess.PAWN)
    is_capture = "x" in text

    victim_value = 0
    if is_capture:
        victim = grid_piece(grid, destination)
        victim_type = victim.piece_type if victim is not None else chess.PAWN
        victim_value = ORDER_VALUES[victim_type]

    return MoveInfo(
        destination=destination,
        attacker_value=ORDER_VALUES[attacker],
        victim_value=victim_value,
        is_capture=is_capture,
        gives_check=gives_check,
        gives_mate=gives_mate,
        is_promotion=is_promotion,
        is_castle=False,
    )
