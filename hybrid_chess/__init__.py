"""
Hybrid chess move-selection engine.

A local engine (negamax with alpha-beta pruning, quiescence search,
transposition table, killer/history ordering, late-move reduction and
null-move pruning) plus an orchestrator that can instead ask a
language-model suggester or a reference UCI engine, validating every answer
against the legal-move list.

Modules:
    constants: Piece values, piece-square tables, search and table parameters
    position:  Position contract and its python-chess implementation
    moves:     SAN move features (destination, victim, check) on demand
    zobrist:   splitmix64 keys and Zobrist hashing
    tables:    Bounded transposition, history and evaluation tables
    evaluate:  Static evaluation (absolute frame, Black positive)
    ordering:  Hash move, MVV-LVA, killer and history move ordering
    book:      Seeded opening book for the first plies of a game
    search:    Quiescence, negamax, null move, iterative deepening (Searcher)
    errors:    Failure taxonomy
    remote:    Language-model suggester and reference UCI channel
    hybrid:    Orchestrator (HybridAI)
"""

from hybrid_chess.errors import MoveFailure
from hybrid_chess.hybrid import EngineMode, HybridAI, HybridConfig, MoveResult
from hybrid_chess.position import ChessPosition, Position
from hybrid_chess.search import Searcher

__all__ = [
    "ChessPosition",
    "EngineMode",
    "HybridAI",
    "HybridConfig",
    "MoveFailure",
    "MoveResult",
    "Position",
    "Searcher",
]
