"""
Engine constants: piece values, piece-square tables, search parameters,
ordering bonuses, and table sizes.

All numeric constants used throughout the engine are defined here so that
the other modules never need to introduce new magic numbers.

Piece values follow the standard centipawn convention (1 pawn = 100 cp).
The king carries no material value in evaluation; KING_ORDER_VALUE is only
used as the attacker value in MVV-LVA so king captures sort last.
"""

import chess

# ---------------------------------------------------------------------------
# Piece values (centipawns)
# ---------------------------------------------------------------------------

PAWN_VALUE: int = 100
KNIGHT_VALUE: int = 320
BISHOP_VALUE: int = 330
ROOK_VALUE: int = 500
QUEEN_VALUE: int = 900
KING_ORDER_VALUE: int = 20_000

# Material used by the evaluator. The king is never traded, so it counts zero.
PIECE_VALUES: dict[int, int] = {
    chess.PAWN:   PAWN_VALUE,
    chess.KNIGHT: KNIGHT_VALUE,
    chess.BISHOP: BISHOP_VALUE,
    chess.ROOK:   ROOK_VALUE,
    chess.QUEEN:  QUEEN_VALUE,
    chess.KING:   0,
}

# Values used by MVV-LVA ordering.
ORDER_VALUES: dict[int, int] = {**PIECE_VALUES, chess.KING: KING_ORDER_VALUE}

# SAN piece letters to python-chess piece types. Pawn moves carry no letter.
SAN_PIECES: dict[str, int] = {
    "N": chess.KNIGHT,
    "B": chess.BISHOP,
    "R": chess.ROOK,
    "Q": chess.QUEEN,
    "K": chess.KING,
}

# ---------------------------------------------------------------------------
# Special scores
# ---------------------------------------------------------------------------
# Evaluation runs in an absolute frame: positive favours Black, negative
# favours White. The search converts to the side-to-move frame.

MATE_SCORE: int = 100_000
INFINITY: int = 1_000_000

# ---------------------------------------------------------------------------
# Evaluation terms
# ---------------------------------------------------------------------------

BISHOP_PAIR_BONUS: int = 40
PAWN_SHIELD_BONUS: int = 10

# King still on one of its own two back ranks (middlegame only).
KING_BACK_RANK_BONUS: int = 30

# Per legal move of the side to move, credited to that side.
MOBILITY_WEIGHT: int = 2

# Charged to the side to move when it is in check (but not mated).
IN_CHECK_PENALTY: int = 50

# A position with this many non-pawn, non-king pieces or fewer is an endgame.
ENDGAME_PIECE_LIMIT: int = 6

# ---------------------------------------------------------------------------
# Piece-square tables
# ---------------------------------------------------------------------------
# Written from White's point of view: row 0 is rank 8, row 7 is rank 1.
# White pieces index the table with their grid row; Black pieces use the
# rank-mirrored row (7 - row).

PAWN_TABLE: list[list[int]] = [
    [0,   0,   0,   0,   0,   0,   0,   0],
    [50,  50,  50,  50,  50,  50,  50,  50],
    [10,  10,  20,  30,  30,  20,  10,  10],
    [5,   5,   10,  25,  25,  10,  5,   5],
    [0,   0,   0,   20,  20,  0,   0,   0],
    [5,   -5,  -10, 0,   0,   -10, -5,  5],
    [5,   10,  10,  -20, -20, 10,  10,  5],
    [0,   0,   0,   0,   0,   0,   0,   0],
]

KNIGHT_TABLE: list[list[int]] = [
    [-50, -40, -30, -30, -30, -30, -40, -50],
    [-40, -20, 0,   0,   0,   0,   -20, -40],
    [-30, 0,   10,  15,  15,  10,  0,   -30],
    [-30, 5,   15,  20,  20,  15,  5,   -30],
    [-30, 0,   15,  20,  20,  15,  0,   -30],
    [-30, 5,   10,  15,  15,  10,  5,   -30],
    [-40, -20, 0,   5,   5,   0,   -20, -40],
    [-50, -40, -30, -30, -30, -30, -40, -50],
]

BISHOP_TABLE: list[list[int]] = [
    [-20, -10, -10, -10, -10, -10, -10, -20],
    [-10, 0,   0,   0,   0,   0,   0,   -10],
    [-10, 0,   5,   10,  10,  5,   0,   -10],
    [-10, 5,   5,   10,  10,  5,   5,   -10],
    [-10, 0,   10,  10,  10,  10,  0,   -10],
    [-10, 10,  10,  10,  10,  10,  10,  -10],
    [-10, 5,   0,   0,   0,   0,   5,   -10],
    [-20, -10, -10, -10, -10, -10, -10, -20],
]

ROOK_TABLE: list[list[int]] = [
    [0,   0,   0,   0,   0,   0,   0,   0],
    [5,   10,  10,  10,  10,  10,  10,  5],
    [-5,  0,   0,   0,   0,   0,   0,   -5],
    [-5,  0,   0,   0,   0,   0,   0,   -5],
    [-5,  0,   0,   0,   0,   0,   0,   -5],
    [-5,  0,   0,   0,   0,   0,   0,   -5],
    [-5,  0,   0,   0,   0,   0,   0,   -5],
    [0,   0,   0,   5,   5,   0,   0,   0],
]

QUEEN_TABLE: list[list[int]] = [
    [-20, -10, -10, -5,  -5,  -10, -10, -20],
    [-10, 0,   0,   0,   0,   0,   0,   -10],
    [-10, 0,   5,   5,   5,   5,   0,   -10],
    [-5,  0,   5,   5,   5,   5,   0,   -5],
    [0,   0,   5,   5,   5,   5,   0,   -5],
    [-10, 5,   5,   5,   5,   5,   0,   -10],
    [-10, 0,   5,   0,   0,   0,   0,   -10],
    [-20, -10, -10, -5,  -5,  -10, -10, -20],
]

KING_MIDDLEGAME_TABLE: list[list[int]] = [
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-30, -40, -40, -50, -50, -40, -40, -30],
    [-20, -30, -30, -40, -40, -30, -30, -20],
    [-10, -20, -20, -20, -20, -20, -20, -10],
    [20,  20,  0,   0,   0,   0,   20,  20],
    [20,  30,  10,  0,   0,   10,  30,  20],
]

KING_ENDGAME_TABLE: list[list[int]] = [
    [-50, -40, -30, -20, -20, -30, -40, -50],
    [-30, -20, -10, 0,   0,   -10, -20, -30],
    [-30, -10, 20,  30,  30,  20,  -10, -30],
    [-30, -10, 30,  40,  40,  30,  -10, -30],
    [-30, -10, 30,  40,  40,  30,  -10, -30],
    [-30, -10, 20,  30,  30,  20,  -10, -30],
    [-30, -30, 0,   0,   0,   0,   -30, -30],
    [-50, -30, -30, -30, -30, -30, -30, -50],
]

PIECE_TABLES: dict[int, list[list[int]]] = {
    chess.PAWN:   PAWN_TABLE,
    chess.KNIGHT: KNIGHT_TABLE,
    chess.BISHOP: BISHOP_TABLE,
    chess.ROOK:   ROOK_TABLE,
    chess.QUEEN:  QUEEN_TABLE,
    chess.KING:   KING_MIDDLEGAME_TABLE,
}

# ---------------------------------------------------------------------------
# Search parameters
# ---------------------------------------------------------------------------
# MAX_DEPTH caps iterative deepening. The time limit normally ends the
# search long before this depth.
MAX_DEPTH: int = 64

# How often (in visited nodes) the search polls the clock.
TIME_CHECK_NODES: int = 256

# Late-move reduction: quiet moves at index >= LMR_MIN_INDEX, at depth
# >= LMR_MIN_DEPTH, are first searched LMR_REDUCTION plies shallower.
LMR_MIN_INDEX: int = 3
LMR_MIN_DEPTH: int = 3
LMR_REDUCTION: int = 1

# Null-move pruning: at depth >= NULL_MOVE_MIN_DEPTH (never at the root or
# in check) the side to move passes and the opponent is searched
# 1 + NULL_MOVE_REDUCTION plies shallower with a null window at beta.
NULL_MOVE_MIN_DEPTH: int = 2
NULL_MOVE_REDUCTION: int = 1

# Quiescence search: hard cap on the tactical extension, and how many of its
# plies may also look at quiet checking moves.
QUIESCENCE_MAX_PLY: int = 8
QUIESCENCE_CHECK_PLIES: int = 1

# ---------------------------------------------------------------------------
# Move ordering
# ---------------------------------------------------------------------------

HASH_MOVE_BONUS: int = 10_000_000
CAPTURE_BONUS: int = 1_000_000
KILLER_BONUS: int = 900_000
KILLER_SLOT_STEP: int = 100_000
KILLER_SLOTS: int = 2
CHECK_BONUS: int = 500
CASTLE_BONUS: int = 100

# History scores are halved across the table once one reaches this value,
# which keeps the best quiet move below the killer and capture tiers.
HISTORY_MAX: int = 50_000

# ---------------------------------------------------------------------------
# Table sizes
# ---------------------------------------------------------------------------
# Entries per table and the fraction of the table dropped when it fills.

TT_SIZE: int = 1 << 18
HISTORY_SIZE: int = 10_000
EVAL_CACHE_SIZE: int = 1 << 16
EVICT_FRACTION: float = 0.1

# Zobrist key generator seed. Fixed so test fixtures hash identically.
ZOBRIST_SEED: int = 0x9E3779B97F4A7C15

# ---------------------------------------------------------------------------
# Time management
# ---------------------------------------------------------------------------
# Default per-move budget and the share of it the engine may consume before
# it stops starting new iterations.

DEFAULT_TIME_LIMIT_MS: int = 3_000
TIME_USAGE_FRACTION: float = 0.9

# ---------------------------------------------------------------------------
# Remote collaborators
# ---------------------------------------------------------------------------

REMOTE_TIMEOUT_S: float = 30.0
REFERENCE_DEFAULT_DEPTH: int = 12
REFERENCE_DEFAULT_TIME_MS: int = 3_000

# ---------------------------------------------------------------------------
# Opening book
# ---------------------------------------------------------------------------
# Book moves are only played in the first OPENING_BOOK_PLIES plies of a game
# that started from the standard position.

OPENING_BOOK_PLIES: int = 6
BOOK_SEED: int = 2024

OPENING_BOOK: dict[tuple[str, ...], list[str]] = {
    ():        ["e4", "d4"],
    ("e4",):   ["e5", "c5", "e6", "c6"],
    ("d4",):   ["d5", "Nf6", "f5", "c6"],
}
