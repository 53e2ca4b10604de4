"""
UCI (Universal Chess Interface) front end for the local engine.

Reads commands from stdin and writes protocol lines to stdout, flushing each
one. The same script also works as a reference engine for
reference_remote mode, since that mode speaks UCI.

Supported commands:
    uci, isready, ucinewgame, position, go, stop, quit

Threading model:
    The loop runs on the main thread. "go" starts the search in a daemon
    thread on a copy of the board, so "stop" can be read while it runs.
    One Searcher lives for the whole session; "ucinewgame" clears it.
    "stop" waits for the search thread to send its "bestmove".

The session searcher carries an opening book, so the first plies of a game
from the standard start are answered from the book.

Critical rule: stdout carries protocol lines only. Diagnostics go to stderr.
"""

import logging
import os
import sys
import threading
import time

# Make 'hybrid_chess' importable when run as `python interface/uci.py`.
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

import chess

from hybrid_chess.book import OpeningBook
from hybrid_chess.constants import MAX_DEPTH
from hybrid_chess.position import ChessPosition
from hybrid_chess.search import Searcher

_log = logging.getLogger("interface.uci")

# "go infinite" and "go depth N" without a clock: search until stopped.
INFINITE_TIME_MS: int = 10_000_000


def _send(line: str) -> None:
    print(line, flush=True)


class UciHandler:
    """
    Stateful UCI session.

    Attributes:
        board:         Current position, updated by "position" commands.
        searcher:      The engine instance for this session.
        search_thread: Active search thread, or None.
        stop_event:    Shared with the search thread; set to stop it.
    """

    def __init__(self) -> None:
        self.board: chess.Board = chess.Board()
        self.searcher = Searcher(book=OpeningBook())
        self.search_thread: threading.Thread | None = None
        self.stop_event: threading.Event = threading.Event()

    def handle_uci(self) -> None:
        """Identify the engine and finish the handshake with "uciok"."""
        _send("id name HybridChess")
        _send("id author Hybrid Chess Project")
        _send("uciok")

    def handle_isready(self) -> None:
        """Reply "readyok"; the engine never needs time to get ready."""
        _send("readyok")

    def handle_ucinewgame(self) -> None:
        """Stop any search, reset the board and forget the previous game's tables."""
        self._stop_search()
        self.board = chess.Board()
        self.searcher.new_game()

    def handle_position(self, tokens: list[str]) -> None:
        """
        Apply "position startpos|fen <FEN> [moves m1 m2 ...]".

        Moves are replayed in coordinate notation; replay stops at the first
        illegal one.
        """
        if not tokens:
            return

        if "moves" in tokens:
            moves_idx = tokens.index("moves")
            spec, move_tokens = tokens[:moves_idx], tokens[moves_idx + 1:]
        else:
            spec, move_tokens = tokens, []

        try:
            if spec[0] == "startpos":
                board = chess.Board()
            elif spec[0] == "fen":
                board = chess.Board(" ".join(spec[1:]))
            else:
                _log.warning("unknown position type: %s", spec[0])
                return
        except ValueError as exc:
            _log.warning("bad FEN in position command: %s", exc)
            return

        for uci_move in move_tokens:
            try:
                move = chess.Move.from_uci(uci_move)
            except ValueError:
                _log.warning("malformed move in position command: %s", uci_move)
                break
            if move not in board.legal_moves:
                _log.warning("illegal move in position command: %s", uci_move)
                break
            board.push(move)

        self.board = board

    def handle_go(self, tokens: list[str]) -> None:
        """
        Start a background search of the current position.

        The search thread prints one "info" line and then "bestmove". In
        the opening the move may come from the book, reported as depth 0.

        Args:
            tokens: Words after "go", parsed by _parse_go().
        """
        self._stop_search()

        time_limit_ms, max_depth = self._parse_go(tokens)
        self.stop_event = threading.Event()

        board_copy = self.board.copy()
        stop_event = self.stop_event
        searcher = self.searcher

        def search_and_reply() -> None:
            try:
                start = time.monotonic()
                position = ChessPosition.from_board(board_copy)
                san, score, depth, nodes = searcher.get_best_move(
                    position, time_limit_ms, stop_event, max_depth
                )
                elapsed_ms = max(1, int((time.monotonic() - start) * 1000))

                if san is None:
                    _send("bestmove (none)")
                    return
                nps = max(1, nodes * 1000 // elapsed_ms)
                _send(
                    f"info depth {depth} score cp {score} "
                    f"nodes {nodes} nps {nps} time {elapsed_ms}"
                )
                _send(f"bestmove {board_copy.parse_san(san).uci()}")
            except Exception:
                _log.exception("search failed")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=search_and_reply, daemon=True)
        self.search_thread.start()

    def handle_stop(self) -> None:
        """Stop the running search. Returns once its "bestmove" line has been sent."""
        self._stop_search()

    def handle_quit(self) -> None:
        """Stop any search and exit the process."""
        self._stop_search()
        sys.exit(0)

    def wait(self, timeout: float | None = None) -> None:
        """Block until the current search (if any) has replied."""
        if self.search_thread is not None:
            self.search_thread.join(timeout)

    def _stop_search(self) -> None:
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join()
        self.search_thread = None

    def _parse_go(self, tokens: list[str]) -> tuple[int, int]:
        """
        Extract (time budget ms, depth cap) from "go" tokens.

            movetime <ms>                 exactly this budget
            wtime/btime [winc/binc]       1/40 of the clock plus increment
            depth <n>                     depth cap, no clock unless given
            infinite / nothing            search until "stop"
        """
        params: dict[str, int] = {}
        i = 0
        while i < len(tokens) - 1:
            try:
                params[tokens[i]] = int(tokens[i + 1])
                i += 2
            except ValueError:
                i += 1

        max_depth = max(1, min(params.get("depth", MAX_DEPTH), MAX_DEPTH))

        if "movetime" in params:
            return params["movetime"], max_depth

        white = self.board.turn == chess.WHITE
        time_key = "wtime" if white else "btime"
        inc_key = "winc" if white else "binc"
        if time_key in params:
            return max(1, params[time_key] // 40 + params.get(inc_key, 0)), max_depth

        return INFINITE_TIME_MS, max_depth


def run_uci_loop(stream=None) -> None:
    """
    Main protocol loop. Each command is isolated: an error is logged to
    stderr and the loop keeps reading.
    """
    handler = UciHandler()
    commands = {
        "uci": handler.handle_uci,
        "isready": handler.handle_isready,
        "ucinewgame": handler.handle_ucinewgame,
        "stop": handler.handle_stop,
        "quit": handler.handle_quit,
    }

    for raw_line in stream if stream is not None else sys.stdin:
        tokens = raw_line.split()
        if not tokens:
            continue
        command, args = tokens[0], tokens[1:]

        try:
            if command == "position":
                handler.handle_position(args)
            elif command == "go":
                handler.handle_go(args)
            elif command in commands:
                commands[command]()
            else:
                _log.debug("ignoring unknown command: %r", command)
        except Exception:
            _log.exception("unhandled error for command %r", command)

    handler.wait()


if __name__ == "__main__":
    logging.basicConfig(stream=sys.stderr, level=logging.WARNING)
    run_uci_loop()
