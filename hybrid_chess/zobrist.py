"""
Zobrist hashing: a 64-bit fingerprint of piece placement and side to move.

Each (color, piece type, square) triple gets a random 64-bit key, plus one
key for "Black to move". A position's hash is the XOR of the keys of every
occupied square, XOR the side key when Black is to move. Two move orders
that reach the same placement with the same side to move always hash the
same, which is what lets the transposition table share work between them.

Keys are drawn from a splitmix64 stream seeded per hasher, so the same seed
reproduces the same keys (and the same hashes) on every run. Castling
rights and en-passant state are not part of the key.

The hash is recomputed by a full 64-square scan at each node. The Position
contract exposes no move deltas, and 64 squares is cheap.
"""

from __future__ import annotations

import chess

from hybrid_chess.constants import ZOBRIST_SEED
from hybrid_chess.position import Grid, Position

MASK_64: int = (1 << 64) - 1


class SplitMix64:
    """Deterministic 64-bit generator (Steele, Lea & Flood's splitmix64)."""

    def __init__(self, seed: int) -> None:
        self.state = seed & MASK_64

    def next(self) -> int:
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK_64
        z = self.state
        z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & MASK_64
        z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & MASK_64
        return z ^ (z >> 31)


class ZobristHasher:
    """
    Zobrist keys for one engine instance.

    Args:
        seed: splitmix64 seed. Equal seeds give equal keys, so hashes are
              reproducible across runs and comparable between hashers.
    """

    def __init__(self, seed: int = ZOBRIST_SEED) -> None:
        rng = SplitMix64(seed)
        # piece_keys[color][piece_type][square_index]; square index is
        # row * 8 + column in grid order (a8 = 0, h1 = 63).
        self.piece_keys: dict[bool, dict[int, list[int]]] = {
            color: {
                piece_type: [rng.next() for _ in range(64)]
                for piece_type in chess.PIECE_TYPES
            }
            for color in chess.COLORS
        }
        self.black_to_move: int = rng.next()

    def hash_grid(self, grid: Grid, turn: chess.Color) -> int:
        """
        Hash a piece grid (rank 8 first) with `turn` to move.

        Returns:
            64-bit unsigned key.
        """
        key = 0
        for row_index, row in enumerate(grid):
            for column, piece in enumerate(row):
                if piece is not None:
                    key ^= self.piece_keys[piece.color][piece.piece_type][row_index * 8 + column]
        if turn == chess.BLACK:
            key ^= self.black_to_move
        return key

    def hash(self, position: Position) -> int:
        return self.hash_grid(position.board(), position.turn())
