"""
Opening book for the first few plies of a game.

Known replies come from OPENING_BOOK, keyed by the SAN moves played so far.
After the listed lines, and until OPENING_BOOK_PLIES plies have been played,
the book picks a quiet developing move: a knight or bishop move that
captures nothing, or short castling.

Choices are random but drawn from a seeded generator, so one book replays
the same choices for the same sequence of positions.

The book only answers when the position's move history is the whole game
from the standard starting position. A position set up from some other FEN
gets no book move, whatever its history length.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

import chess

from hybrid_chess.constants import BOOK_SEED, OPENING_BOOK, OPENING_BOOK_PLIES
from hybrid_chess.position import Position

_log = logging.getLogger(__name__)


def _starts_from_initial_position(position: Position, history: list[str]) -> bool:
    board = chess.Board()
    try:
        for san in history:
            board.push_san(san)
    except ValueError:
        return False
    return board.board_fen() == position.to_fen().split()[0]


def developing_moves(legal_moves: list[str]) -> list[str]:
    return [
        move for move in legal_moves
        if (move[0] in "NB" and "x" not in move) or move.rstrip("+#") == "O-O"
    ]


class OpeningBook:
    """
    Seeded opening move picker.

    Args:
        seed:  Seed for the move choice.
        plies: Number of plies from the start during which the book answers.
    """

    def __init__(self, seed: int = BOOK_SEED, plies: int = OPENING_BOOK_PLIES) -> None:
        self.rng = random.Random(seed)
        self.plies = plies

    def choose(self, position: Position, legal_moves: list[str]) -> Optional[str]:
        """
        Return a book move for `position`, or None when out of book.

        Args:
            position:    Position to move in. Not modified.
            legal_moves: Its legal SAN moves; a book move is always one of them.
        """
        history = position.move_history()
        if len(history) >= self.plies or not _starts_from_initial_position(position, history):
            return None

        line = tuple(history)
        if line in OPENING_BOOK:
            candidates = [move for move in OPENING_BOOK[line] if move in legal_moves]
        else:
            candidates = developing_moves(legal_moves)
        if not candidates:
            return None

        move = self.rng.choice(candidates)
        _log.debug("book move %s after %s", move, " ".join(history) or "start")
        return move
