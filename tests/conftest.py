import os
import sys
import time

import chess
import pytest

# Ensure repo-local imports resolve without an install.
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if repo_root not in sys.path:
    sys.path.insert(0, repo_root)

from hybrid_chess.position import ChessPosition, Grid, VerboseMove  # noqa: E402


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        dest="run_slow",
        help="Run tests marked with @pytest.mark.slow (subprocess engines, long searches)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("run_slow"):
        return
    skip_slow = pytest.mark.skip(reason="use --slow to enable")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class CountingPosition(ChessPosition):
    """ChessPosition that counts apply/undo calls. Null moves count as applied."""

    def __init__(self, fen=None) -> None:
        super().__init__(fen)
        self.applied = 0
        self.undone = 0
        self.null_moves = 0

    def apply_move(self, move: str) -> None:
        super().apply_move(move)
        self.applied += 1

    def apply_null_move(self) -> None:
        super().apply_null_move()
        self.applied += 1
        self.null_moves += 1

    def undo_move(self) -> None:
        super().undo_move()
        self.undone += 1


class WidePosition:
    """
    Stub position with an artificially large branching factor.

    Every node offers `width` quiet moves and the game never ends. Each
    apply_move sleeps briefly so the search is slow per node.
    """

    def __init__(self, width: int = 300, delay_s: float = 0.0) -> None:
        self.width = width
        self.delay_s = delay_s
        self.stack: list[str] = []
        self._grid: Grid = [[None] * 8 for _ in range(8)]
        self._grid[7][4] = chess.Piece(chess.KING, chess.WHITE)
        self._grid[0][4] = chess.Piece(chess.KING, chess.BLACK)

    def legal_moves(self) -> list[str]:
        return [f"m{i}" for i in range(self.width)]

    def verbose_moves(self) -> list[VerboseMove]:
        return []

    def apply_move(self, move: str) -> None:
        if self.delay_s:
            time.sleep(self.delay_s)
        self.stack.append(move)

    def apply_null_move(self) -> None:
        self.stack.append("--")

    def undo_move(self) -> None:
        self.stack.pop()

    def is_check(self) -> bool:
        return False

    def is_checkmate(self) -> bool:
        return False

    def is_game_over(self) -> bool:
        return False

    def to_fen(self) -> str:
        return "4k3/8/8/8/8/8/8/4K3 w - - 0 1"

    def board(self) -> Grid:
        return [row[:] for row in self._grid]

    def turn(self) -> chess.Color:
        return chess.WHITE if len(self.stack) % 2 == 0 else chess.BLACK

    def move_history(self) -> list[str]:
        return list(self.stack)


@pytest.fixture
def counting_position():
    return CountingPosition


@pytest.fixture
def wide_position():
    return WidePosition
