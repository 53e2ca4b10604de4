"""
Position contract: the narrow rules interface the engine depends on.

The engine never enforces chess rules itself. Legal-move generation,
apply/undo, check and checkmate detection, and FEN handling all come from a
rules collaborator behind the Position protocol below. ChessPosition is the
implementation backed by python-chess.

Board grid convention:
    board() returns 8 rows of 8 cells. Row 0 is rank 8 and column 0 is the
    a-file, so grid[0][0] is a8 and grid[7][7] is h1. Each cell holds a
    chess.Piece or None.

Moves are SAN strings ("Nf3", "exd5", "O-O", "e8=Q+"). undo_move() is strict
LIFO: it reverts the most recent apply_move() or apply_null_move().
"""

from __future__ import annotations

from typing import NamedTuple, Optional, Protocol, runtime_checkable

import chess

Grid = list[list[Optional[chess.Piece]]]

# SAN-style placeholder recorded in the history for a passed turn.
NULL_MOVE = "--"


class VerboseMove(NamedTuple):
    """A legal move in both SAN and coordinate form."""

    san: str
    from_square: str
    to_square: str
    promotion: Optional[str] = None  # lowercase piece letter, e.g. "q"


@runtime_checkable
class Position(Protocol):
    def legal_moves(self) -> list[str]: ...

    def verbose_moves(self) -> list[VerboseMove]: ...

    def apply_move(self, move: str) -> None: ...

    def apply_null_move(self) -> None: ...

    def undo_move(self) -> None: ...

    def is_check(self) -> bool: ...

    def is_checkmate(self) -> bool: ...

    def is_game_over(self) -> bool: ...

    def to_fen(self) -> str: ...

    def board(self) -> Grid: ...

    def turn(self) -> chess.Color: ...

    def move_history(self) -> list[str]: ...


class ChessPosition:
    """
    Position backed by a python-chess Board.

    The legal-move list is cached per ply so that apply_move() can resolve a
    SAN string without re-parsing it. The cache is invalidated on every
    apply/undo.
    """

    def __init__(self, fen: Optional[str] = None) -> None:
        self._board = chess.Board(fen) if fen else chess.Board()
        self._history: list[str] = []
        self._legal: Optional[dict[str, chess.Move]] = None

    @classmethod
    def from_board(cls, board: chess.Board) -> "ChessPosition":
        position = cls()
        position._board = board.copy()
        # Replay SAN history from the root so move_history() is complete.
        replay = board.root()
        for move in board.move_stack:
            position._history.append(replay.san(move))
            replay.push(move)
        return position

    def _legal_map(self) -> dict[str, chess.Move]:
        if self._legal is None:
            board = self._board
            self._legal = {board.san(move): move for move in board.legal_moves}
        return self._legal

    def legal_moves(self) -> list[str]:
        return list(self._legal_map())

    def verbose_moves(self) -> list[VerboseMove]:
        result = []
        for san, move in self._legal_map().items():
            promotion = chess.piece_symbol(move.promotion) if move.promotion else None
            result.append(
                VerboseMove(
                    san=san,
                    from_square=chess.square_name(move.from_square),
                    to_square=chess.square_name(move.to_square),
                    promotion=promotion,
                )
            )
        return result

    def apply_move(self, move: str) -> None:
        parsed = self._legal_map().get(move)
        if parsed is None:
            # Raises ValueError for illegal or malformed SAN.
            parsed = self._board.parse_san(move)
            move = self._board.san(parsed)
        self._board.push(parsed)
        self._history.append(move)
        self._legal = None

    def apply_null_move(self) -> None:
        """Pass the turn without moving. Reverted by undo_move() like any move."""
        self._board.push(chess.Move.null())
        self._history.append(NULL_MOVE)
        self._legal = None

    def undo_move(self) -> None:
        self._board.pop()
        self._history.pop()
        self._legal = None

    def is_check(self) -> bool:
        return self._board.is_check()

    def is_checkmate(self) -> bool:
        return self._board.is_checkmate()

    def is_game_over(self) -> bool:
        return self._board.is_game_over()

    def to_fen(self) -> str:
        return self._board.fen()

    def board(self) -> Grid:
        grid: Grid = [[None] * 8 for _ in range(8)]
        for square, piece in self._board.piece_map().items():
            grid[7 - chess.square_rank(square)][chess.square_file(square)] = piece
        return grid

    def turn(self) -> chess.Color:
        return self._board.turn

    def move_history(self) -> list[str]:
        return list(self._history)

    def __repr__(self) -> str:
        return f"ChessPosition({self.to_fen()!r})"
