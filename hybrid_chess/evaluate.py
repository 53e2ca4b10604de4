"""
Static evaluation: material, piece-square tables, bishop pair, king safety.

Scores are computed in an absolute frame: positive favours Black, negative
favours White. The search works in the side-to-move frame, so it converts
every score with relative() before using it.

Components:
    material      standard centipawn values, king excluded
    positional    piece-square table per piece type, indexed by grid row and
                  mirrored by rank for Black; the king switches to a
                  centralisation table in the endgame
    bishop pair   ±BISHOP_PAIR_BONUS for the side holding both bishops
    king safety   ±PAWN_SHIELD_BONUS per own pawn on the three squares
                  directly in front of the king, and ±KING_BACK_RANK_BONUS
                  while the king is on its own first two ranks (middlegame
                  only)
    mobility      ±MOBILITY_WEIGHT per legal move of the side to move
    in check      ∓IN_CHECK_PENALTY against the side to move
    terminal      ±MATE_SCORE when the side to move is checkmated

Material, position and king safety depend only on the grid (evaluate_grid);
mobility, check and mate need the position and are added by Evaluator.

Draws (stalemate, repetition, fifty-move rule) are not special-cased; those
positions score by material like any other.
"""

from __future__ import annotations

from typing import Optional

import chess

from hybrid_chess.constants import (
    BISHOP_PAIR_BONUS,
    ENDGAME_PIECE_LIMIT,
    IN_CHECK_PENALTY,
    KING_BACK_RANK_BONUS,
    KING_ENDGAME_TABLE,
    MATE_SCORE,
    MOBILITY_WEIGHT,
    PAWN_SHIELD_BONUS,
    PIECE_TABLES,
    PIECE_VALUES,
)
from hybrid_chess.position import Grid, Position
from hybrid_chess.tables import BoundedTable


def relative(score: int, turn: chess.Color) -> int:
    """Convert an absolute score to the perspective of the side to move."""
    return score if turn == chess.BLACK else -score


def is_endgame(grid: Grid) -> bool:
    officers = 0
    for row in grid:
        for piece in row:
            if piece is not None and piece.piece_type not in (chess.PAWN, chess.KING):
                officers += 1
    return officers <= ENDGAME_PIECE_LIMIT


def _sign(color: chess.Color) -> int:
    return -1 if color == chess.WHITE else 1


def pawn_shield(grid: Grid, row: int, column: int, color: chess.Color) -> int:
    """Count own pawns on the three squares one rank ahead of a king."""
    front = row - 1 if color == chess.WHITE else row + 1
    if not 0 <= front < 8:
        return 0
    count = 0
    for col in range(max(0, column - 1), min(7, column + 1) + 1):
        piece = grid[front][col]
        if piece is not None and piece.piece_type == chess.PAWN and piece.color == color:
            count += 1
    return count


def evaluate_grid(grid: Grid) -> int:
    """Absolute material + positional score of a board grid (no terminal check)."""
    endgame = is_endgame(grid)
    score = 0
    bishops = {chess.WHITE: 0, chess.BLACK: 0}

    for row_index, row in enumerate(grid):
        for column, piece in enumerate(row):
            if piece is None:
                continue
            pt = piece.piece_type
            sign = _sign(piece.color)
            table_row = row_index if piece.color == chess.WHITE else 7 - row_index

            table = KING_ENDGAME_TABLE if (pt == chess.KING and endgame) else PIECE_TABLES[pt]
            score += sign * (PIECE_VALUES[pt] + table[table_row][column])

            if pt == chess.BISHOP:
                bishops[piece.color] += 1
            elif pt == chess.KING and not endgame:
                score += sign * PAWN_SHIELD_BONUS * pawn_shield(grid, row_index, column, piece.color)
                if table_row >= 6:
                    score += sign * KING_BACK_RANK_BONUS

    for color, count in bishops.items():
        if count >= 2:
            score += _sign(color) * BISHOP_PAIR_BONUS

    return score


class Evaluator:
    """
    Position evaluator with an optional bounded cache keyed by Zobrist hash.

    The cache belongs to one engine instance; entries hold absolute scores,
    so they stay valid whichever side is to move when they are read back.
    """

    def __init__(self, cache: Optional[BoundedTable[int, int]] = None) -> None:
        self.cache = cache

    def evaluate(self, position: Position, key: Optional[int] = None) -> int:
        """
        Absolute centipawn evaluation (positive = Black is better).

        Args:
            position: The position to score. Not modified.
            key:      Zobrist hash of the position; enables the cache.

        Returns:
            Absolute score. The mover's mobility is credited to it, a
            check is charged against it, and ±MATE_SCORE replaces the check
            penalty when it is checkmated.
        """
        if key is not None and self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        score = evaluate_grid(position.board())
        mover = _sign(position.turn())
        if position.is_checkmate():
            # The side to move has been mated: the other side wins.
            score -= mover * MATE_SCORE
        elif position.is_check():
            score -= mover * IN_CHECK_PENALTY
        score += mover * MOBILITY_WEIGHT * len(position.legal_moves())

        if key is not None and self.cache is not None:
            self.cache.put(key, score)
        return score

    def evaluate_relative(self, position: Position, key: Optional[int] = None) -> int:
        return relative(self.evaluate(position, key), position.turn())
