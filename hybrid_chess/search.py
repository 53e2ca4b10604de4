"""
Search: negamax with alpha-beta pruning, transposition table, killer and
history ordering, late-move reduction, null-move pruning, quiescence search
and iterative deepening with cooperative time management. An optional
opening book answers the first plies of a game without searching.

Searcher is one engine instance. It owns every piece of mutable search
state (Zobrist keys, transposition table, killer slots, history scores and
the evaluation cache), so concurrent games need separate Searchers. The
tables survive from one move to the next within a game and are only
cleared by new_game().

get_best_move() keeps the stable return shape used by the front ends:
(move, score_cp, depth, nodes), with move None when there is nothing to
play.

Threading model:
    The search is synchronous recursion on the caller's thread. The clock is
    polled every TIME_CHECK_NODES nodes (and before each root move); when
    the budget is spent, stop_event is set and every frame unwinds,
    returning 0. Results from an interrupted iteration are discarded and
    never written to the tables.

Position discipline:
    Every apply_move() or apply_null_move() is paired with an undo_move() in
    a finally block, so the position is restored on every exit path, cutoffs
    and timeouts included.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from hybrid_chess.book import OpeningBook
from hybrid_chess.constants import (
    DEFAULT_TIME_LIMIT_MS,
    EVAL_CACHE_SIZE,
    HISTORY_SIZE,
    INFINITY,
    LMR_MIN_DEPTH,
    LMR_MIN_INDEX,
    LMR_REDUCTION,
    MATE_SCORE,
    MAX_DEPTH,
    NULL_MOVE_MIN_DEPTH,
    NULL_MOVE_REDUCTION,
    QUIESCENCE_CHECK_PLIES,
    QUIESCENCE_MAX_PLY,
    TIME_CHECK_NODES,
    TIME_USAGE_FRACTION,
    TT_SIZE,
    ZOBRIST_SEED,
)
from hybrid_chess.evaluate import Evaluator
from hybrid_chess.moves import MoveInfo, describe
from hybrid_chess.ordering import KillerTable, MoveOrderer, order_tactical
from hybrid_chess.position import Position
from hybrid_chess.tables import Bound, HistoryTable, TranspositionTable, make_eval_cache
from hybrid_chess.zobrist import ZobristHasher

_log = logging.getLogger(__name__)

SearchResult = tuple[Optional[str], int, int, int]


@dataclass
class SearchState:
    """
    Per-search mutable state.

    Attributes:
        stop_event:     Set by the caller (UCI "stop") or by the clock check.
                        Every search frame returns immediately once it is set.
        time_limit_ms:  Budget for this move, in milliseconds.
        node_count:     Nodes visited (negamax and quiescence) in this search.
        start_time:     Monotonic timestamp at which the search began.
    """

    stop_event: threading.Event = field(default_factory=threading.Event)
    time_limit_ms: float = float("inf")
    node_count: int = 0
    start_time: float = field(default_factory=time.monotonic)


class Searcher:
    """
    One local engine instance and all of its search tables.

    Args:
        seed:            Zobrist key seed; the same seed gives the same hashes.
        tt_size:         Transposition table capacity (entries).
        history_size:    History table capacity (moves).
        eval_cache_size: Evaluation cache capacity (entries).
        book:            Optional opening book consulted before searching.
                         None (the default) always searches.
    """

    def __init__(
        self,
        seed: int = ZOBRIST_SEED,
        tt_size: int = TT_SIZE,
        history_size: int = HISTORY_SIZE,
        eval_cache_size: int = EVAL_CACHE_SIZE,
        book: Optional[OpeningBook] = None,
    ) -> None:
        self.book = book
        self.hasher = ZobristHasher(seed)
        self.tt = TranspositionTable(tt_size)
        self.history = HistoryTable(history_size)
        self.killers = KillerTable()
        self.evaluator = Evaluator(make_eval_cache(eval_cache_size))
        self.orderer = MoveOrderer(self.killers, self.history)
        self.state = SearchState()

    def new_game(self) -> None:
        """Forget everything learned in the previous game."""
        self.tt.clear()
        self.history.clear()
        self.killers.clear()
        if self.evaluator.cache is not None:
            self.evaluator.cache.clear()

    # ------------------------------------------------------------------
    # Time management
    # ------------------------------------------------------------------

    def _elapsed_ms(self) -> float:
        return (time.monotonic() - self.state.start_time) * 1000

    def _check_clock(self) -> bool:
        """Set the stop flag once the budget is spent. Returns True if stopped."""
        state = self.state
        if state.stop_event.is_set():
            return True
        if self._elapsed_ms() >= state.time_limit_ms * TIME_USAGE_FRACTION:
            state.stop_event.set()
            return True
        return False

    def _visit(self) -> bool:
        """Count a node and poll the clock every TIME_CHECK_NODES. True if stopped."""
        state = self.state
        if state.stop_event.is_set():
            return True
        state.node_count += 1
        if state.node_count % TIME_CHECK_NODES == 0:
            return self._check_clock()
        return False

    # ------------------------------------------------------------------
    # Quiescence
    # ------------------------------------------------------------------

    def quiescence(
        self,
        position: Position,
        alpha: int,
        beta: int,
        ply: int,
        qply: int = 0,
    ) -> int:
        """
        Resolve captures (and, near the horizon, checks) before scoring a leaf.

        The static evaluation is a lower bound: the side to move may always
        decline to capture ("stand pat"). Only tactical moves are searched
        from here, which keeps the tree small while avoiding scoring a
        position in the middle of an exchange.

        Args:
            position: Current position; restored before returning.
            alpha:    Lower bound of the window.
            beta:     Upper bound of the window.
            ply:      Distance from the root.
            qply:     Distance from the main search horizon. Checks are only
                      tried for the first QUIESCENCE_CHECK_PLIES plies and
                      the extension stops at QUIESCENCE_MAX_PLY.

        Returns:
            Score from the side to move's perspective.
        """
        if self._visit():
            return 0

        if position.is_checkmate():
            return -(MATE_SCORE - ply)

        key = self.hasher.hash(position)
        stand_pat = self.evaluator.evaluate_relative(position, key)
        if stand_pat >= beta:
            return beta
        if stand_pat > alpha:
            alpha = stand_pat
        if qply >= QUIESCENCE_MAX_PLY:
            return alpha

        grid = position.board()
        with_checks = qply < QUIESCENCE_CHECK_PLIES
        tactical = []
        for move in position.legal_moves():
            info = describe(move, grid)
            if info.is_capture or info.is_promotion or (with_checks and info.gives_check):
                tactical.append(move)

        for move in order_tactical(tactical, grid):
            position.apply_move(move)
            try:
                score = -self.quiescence(position, -beta, -alpha, ply + 1, qply + 1)
            finally:
                position.undo_move()

            if self.state.stop_event.is_set():
                return 0
            if score >= beta:
                return beta
            if score > alpha:
                alpha = score

        return alpha

    # ------------------------------------------------------------------
    # Negamax
    # ------------------------------------------------------------------

    def _reducible(self, info: MoveInfo, move: str, index: int, depth: int, ply: int) -> bool:
        """True if the move at `index` of the ordered list gets a reduced first search."""
        if not info.is_quiet or self.killers.is_killer(ply, move):
            return False
        return index >= LMR_MIN_INDEX and depth >= LMR_MIN_DEPTH

    def _null_move_cutoff(self, position: Position, depth: int, beta: int, ply: int) -> Optional[int]:
        """
        Let the opponent move twice. If a shallow search still fails high,
        return its score; the node is pruned without searching a real move.
        """
        position.apply_null_move()
        try:
            score = -self.negamax(
                position, depth - 1 - NULL_MOVE_REDUCTION, -beta, -beta + 1, ply + 1,
                allow_null=False,
            )
        finally:
            position.undo_move()
        if self.state.stop_event.is_set() or score < beta:
            return None
        return score

    def negamax(
        self,
        position: Position,
        depth: int,
        alpha: int,
        beta: int,
        ply: int,
        allow_null: bool = True,
    ) -> int:
        """
        Alpha-beta negamax; the score is from the side to move at this node.

        The transposition table is consulted first: an entry searched at least
        as deep as `depth` either answers the node outright (EXACT) or
        narrows the window (LOWER/UPPER bounds). Below the root, a side that
        is not in check first tries passing (null move); if that still fails
        high the node is cut. Quiet late moves are searched at reduced depth
        with a null window and re-searched at full depth only if they beat
        alpha. Quiet moves that cause a beta cutoff become killers for this
        ply and earn depth² history.

        Args:
            allow_null: False directly below a null move, so two passes are
                        never made in a row.
        """
        if self._visit():
            return 0

        key = self.hasher.hash(position)
        original_alpha = alpha

        entry = self.tt.lookup(key, depth)
        if entry is not None:
            if entry.flag is Bound.EXACT:
                return entry.score
            if entry.flag is Bound.LOWER:
                alpha = max(alpha, entry.score)
            else:
                beta = min(beta, entry.score)
            if alpha >= beta:
                return entry.score

        if depth <= 0 or position.is_game_over():
            return self.quiescence(position, alpha, beta, ply)

        if allow_null and ply > 0 and depth >= NULL_MOVE_MIN_DEPTH and not position.is_check():
            cutoff = self._null_move_cutoff(position, depth, beta, ply)
            if self.state.stop_event.is_set():
                return 0
            if cutoff is not None:
                return cutoff

        grid = position.board()
        hash_entry = self.tt.get(key)
        hash_move = hash_entry.best_move if hash_entry is not None else None
        moves = self.orderer.order(position.legal_moves(), grid, ply, hash_move)
        if not moves:
            return self.quiescence(position, alpha, beta, ply)

        best_score = -INFINITY
        best_move: Optional[str] = None

        for index, move in enumerate(moves):
            info = describe(move, grid)
            reduce = self._reducible(info, move, index, depth, ply)

            position.apply_move(move)
            try:
                if reduce:
                    score = -self.negamax(
                        position, depth - 1 - LMR_REDUCTION, -alpha - 1, -alpha, ply + 1
                    )
                    if score > alpha:
                        score = -self.negamax(position, depth - 1, -beta, -alpha, ply + 1)
                else:
                    score = -self.negamax(position, depth - 1, -beta, -alpha, ply + 1)
            finally:
                position.undo_move()

            if self.state.stop_event.is_set():
                return 0

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score
            if alpha >= beta:
                if not (info.is_capture or info.is_promotion):
                    self.killers.add(ply, move)
                    self.history.reward(move, depth)
                break

        if best_score <= original_alpha:
            flag = Bound.UPPER
        elif best_score >= beta:
            flag = Bound.LOWER
        else:
            flag = Bound.EXACT
        self.tt.store(key, best_score, depth, best_move, flag)
        return best_score

    # ------------------------------------------------------------------
    # Root and iterative deepening
    # ------------------------------------------------------------------

    def _search_root(self, position: Position, depth: int, moves: list[str]) -> Optional[tuple[str, int]]:
        """Search every root move to `depth`. Returns None if interrupted."""
        alpha, beta = -INFINITY, INFINITY
        best_move: Optional[str] = None
        best_score = -INFINITY

        for move in moves:
            if self._check_clock():
                return None
            position.apply_move(move)
            try:
                score = -self.negamax(position, depth - 1, -beta, -alpha, 1)
            finally:
                position.undo_move()
            if self.state.stop_event.is_set():
                return None

            if score > best_score:
                best_score = score
                best_move = move
            if score > alpha:
                alpha = score

        if best_move is None:
            return None
        self.tt.store(self.hasher.hash(position), best_score, depth, best_move, Bound.EXACT)
        return best_move, best_score

    def find_mate_in_one(self, position: Position, moves: list[str]) -> Optional[str]:
        for move in moves:
            position.apply_move(move)
            try:
                mated = position.is_checkmate()
            finally:
                position.undo_move()
            if mated:
                return move
        return None

    def get_best_move(
        self,
        position: Position,
        time_limit_ms: float = DEFAULT_TIME_LIMIT_MS,
        stop_event: Optional[threading.Event] = None,
        max_depth: int = MAX_DEPTH,
    ) -> SearchResult:
        """
        Return the best move for the side to move within the time budget.

        Steps:
            1. No legal moves: return (None, 0, 0, 0). This is a terminal
               position, not an error.
            2. A move that mates immediately is returned without searching.
            3. With a book, a book move is returned without searching, as
               (move, 0, 0, 0).
            4. Iterative deepening from depth 1 to max_depth. Root moves are
               re-ordered each iteration, previous best first. The move
               returned is the best of the last fully completed depth; if
               not even depth 1 completed, the best-ordered root move.

        Args:
            position:      Position to search. Restored before returning.
            time_limit_ms: Budget in milliseconds.
            stop_event:    Optional external stop flag (UCI "stop").
            max_depth:     Deepest iteration to attempt.

        Returns:
            (move, score_cp, depth, nodes). score_cp is from the side to
            move's perspective; depth is the last completed iteration.
        """
        legal = position.legal_moves()
        if not legal:
            return (None, 0, 0, 0)

        self.state = SearchState(
            stop_event=stop_event if stop_event is not None else threading.Event(),
            time_limit_ms=float(time_limit_ms),
            start_time=time.monotonic(),
        )

        mate = self.find_mate_in_one(position, legal)
        if mate is not None:
            _log.debug("mate in one: %s", mate)
            return (mate, MATE_SCORE - 1, 1, len(legal))

        if self.book is not None:
            book_move = self.book.choose(position, legal)
            if book_move is not None:
                return (book_move, 0, 0, 0)

        grid = position.board()
        best_move: Optional[str] = None
        best_score = 0
        completed_depth = 0

        for depth in range(1, max_depth + 1):
            # Don't start an iteration that cannot finish.
            if self._check_clock():
                break

            ordered = self.orderer.order(legal, grid, 0, hash_move=best_move)
            result = self._search_root(position, depth, ordered)
            if result is None:
                break

            best_move, best_score = result
            completed_depth = depth
            _log.debug(
                "depth %d best %s score %d nodes %d time %.0fms",
                depth, best_move, best_score, self.state.node_count, self._elapsed_ms(),
            )
            if abs(best_score) >= MATE_SCORE - MAX_DEPTH:
                break

        if best_move is None:
            best_move = self.orderer.order(legal, grid, 0)[0]

        return (best_move, best_score, completed_depth, self.state.node_count)
