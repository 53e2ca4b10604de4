import threading
import time

import chess

from hybrid_chess.book import OpeningBook
from hybrid_chess.constants import INFINITY, LMR_MIN_INDEX, LMR_REDUCTION, MATE_SCORE
from hybrid_chess.moves import describe
from hybrid_chess.position import ChessPosition
from hybrid_chess.search import Searcher
from hybrid_chess.tables import Bound

SCHOLARS_MATE = "r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4"
HANGING_QUEEN = "4k3/8/8/3q4/8/8/3R4/4K3 w - - 0 1"


def test_finds_mate_in_one() -> None:
    move, score, depth, _ = Searcher().get_best_move(ChessPosition(SCHOLARS_MATE), time_limit_ms=2000)
    assert move == "Qxf7#"
    assert score == MATE_SCORE - 1
    assert depth == 1


def test_returns_legal_move_and_restores_position() -> None:
    position = ChessPosition()
    before = position.to_fen()
    move, _, depth, nodes = Searcher().get_best_move(position, time_limit_ms=5000, max_depth=2)
    assert move in position.legal_moves()
    assert depth == 2
    assert nodes > 0
    assert position.to_fen() == before


def test_apply_and_undo_are_balanced(counting_position) -> None:
    position = counting_position("r1bqkbnr/pppp1ppp/2n5/4p3/3PP3/5N2/PPP2PPP/RNBQKB1R b KQkq - 0 3")
    Searcher().get_best_move(position, time_limit_ms=5000, max_depth=3)
    assert position.applied > 0
    assert position.applied == position.undone


def test_no_legal_moves_is_not_an_error() -> None:
    # Black is stalemated.
    position = ChessPosition("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert Searcher().get_best_move(position) == (None, 0, 0, 0)


def test_wide_tree_respects_time_budget(wide_position) -> None:
    position = wide_position(width=300, delay_s=0.001)
    start = time.monotonic()
    move, _, _, _ = Searcher().get_best_move(position, time_limit_ms=500)
    elapsed = time.monotonic() - start
    assert move in position.legal_moves()
    assert elapsed < 0.5 + 1.0
    assert position.stack == []


def test_external_stop_returns_a_move() -> None:
    stop = threading.Event()
    stop.set()
    position = ChessPosition()
    move, _, depth, _ = Searcher().get_best_move(position, time_limit_ms=60_000, stop_event=stop)
    assert move in position.legal_moves()
    assert depth == 0


def test_quiescence_resolves_hanging_queen() -> None:
    searcher = Searcher()
    position = ChessPosition(HANGING_QUEEN)
    score = searcher.quiescence(position, -INFINITY, INFINITY, 0)

    position.apply_move("Rxd5")
    expected = -searcher.evaluator.evaluate_relative(position)
    position.undo_move()

    assert score == expected
    assert score > 0
    assert position.to_fen() == HANGING_QUEEN


def test_shallow_table_entry_is_not_reused_deeper() -> None:
    searcher = Searcher()
    position = ChessPosition()
    key = searcher.hasher.hash(position)
    searcher.tt.store(key, 12345, 1, "e4", Bound.EXACT)

    assert searcher.negamax(position, 1, -INFINITY, INFINITY, 0) == 12345
    assert searcher.negamax(position, 2, -INFINITY, INFINITY, 0) != 12345


def test_interrupted_iteration_keeps_previous_best(monkeypatch) -> None:
    searcher = Searcher()
    calls = []

    def fake_root(position, depth, moves):
        calls.append(depth)
        if depth == 1:
            return "d4", 30
        return None

    monkeypatch.setattr(searcher, "_search_root", fake_root)
    move, score, depth, _ = searcher.get_best_move(ChessPosition(), time_limit_ms=5000)
    assert (move, score, depth) == ("d4", 30, 1)
    assert calls == [1, 2]


def test_killers_bounded_and_cleared_by_new_game() -> None:
    searcher = Searcher()
    searcher.get_best_move(ChessPosition(), time_limit_ms=5000, max_depth=4)
    assert all(len(searcher.killers.at(ply)) <= 2 for ply in range(8))
    assert len(searcher.tt) > 0

    searcher.new_game()
    assert len(searcher.tt) == 0
    assert len(searcher.history) == 0
    assert all(searcher.killers.at(ply) == [] for ply in range(8))


def record_child_searches(monkeypatch, searcher: Searcher) -> dict[str, list[tuple]]:
    """Record (depth, alpha, beta, result) of every search one ply below the root."""
    calls: dict[str, list[tuple]] = {}
    original = searcher.negamax

    def recording(position, depth, alpha, beta, ply, *args, **kwargs):
        result = original(position, depth, alpha, beta, ply, *args, **kwargs)
        if ply == 1:
            calls.setdefault(position.move_history()[-1], []).append((depth, alpha, beta, result))
        return result

    monkeypatch.setattr(searcher, "negamax", recording)
    return calls


def test_late_quiet_moves_get_reduced_null_window_search(monkeypatch) -> None:
    searcher = Searcher()
    position = ChessPosition()
    ordered = searcher.orderer.order(position.legal_moves(), position.board(), 0)
    calls = record_child_searches(monkeypatch, searcher)

    searcher.negamax(position, 3, -INFINITY, INFINITY, 0)

    for move in ordered[:LMR_MIN_INDEX]:
        assert calls[move][0][0] == 2
    late = ordered[LMR_MIN_INDEX:]
    for move in late:
        depth, alpha, beta, result = calls[move][0]
        assert depth == 3 - 1 - LMR_REDUCTION
        assert beta - alpha == 1
        # Re-searched at full depth only when the reduced score beat alpha.
        beat_alpha = -result > -beta
        assert len(calls[move]) == (2 if beat_alpha else 1)
        if beat_alpha:
            assert calls[move][1][0] == 2
    assert any(len(calls[move]) == 1 for move in late)


def test_reduction_skips_tactical_moves_and_killers() -> None:
    searcher = Searcher()
    grid = ChessPosition("7k/8/8/3q4/2P1Q2r/8/8/4K1N1 w - - 0 1").board()

    def reducible(move, index=5, depth=4, ply=0):
        return searcher._reducible(describe(move, grid), move, index, depth, ply)

    assert reducible("Nf3")
    assert not reducible("cxd5")
    assert not reducible("Qe8+")
    assert not reducible("Nf3", index=LMR_MIN_INDEX - 1)
    assert not reducible("Nf3", depth=2)
    searcher.killers.add(0, "Nf3")
    assert not reducible("Nf3")
    assert reducible("Nf3", ply=1)


def test_table_bounds_narrow_the_window() -> None:
    searcher = Searcher()
    position = ChessPosition()
    key = searcher.hasher.hash(position)

    searcher.tt.store(key, 300, 5, "e4", Bound.LOWER)
    # Lower bound 300 already reaches beta 200.
    assert searcher.negamax(position, 2, -INFINITY, 200, 0) == 300

    searcher.tt.store(key, -300, 5, "e4", Bound.UPPER)
    # Upper bound -300 is already at or below alpha -200.
    assert searcher.negamax(position, 2, -200, INFINITY, 0) == -300


def test_stored_bound_matches_how_the_node_ended() -> None:
    position = ChessPosition()

    def stored_flag(alpha, beta):
        searcher = Searcher()
        searcher.negamax(position, 1, alpha, beta, 0)
        return searcher.tt.get(searcher.hasher.hash(position)).flag

    assert stored_flag(-INFINITY, INFINITY) is Bound.EXACT
    # Nothing reaches 5000: every move failed low.
    assert stored_flag(5000, 5001) is Bound.UPPER
    # The first move already reaches -5000: beta cutoff.
    assert stored_flag(-5001, -5000) is Bound.LOWER


def test_quiet_cutoff_records_killer_and_history() -> None:
    searcher = Searcher()
    position = ChessPosition()
    first = searcher.orderer.order(position.legal_moves(), position.board(), 0)[0]

    searcher.negamax(position, 2, -5001, -5000, 0)

    assert searcher.killers.at(0) == [first]
    assert searcher.history.score(first) == 2 * 2
    assert len(searcher.history) == 1


def test_null_move_is_never_tried_at_the_root(counting_position) -> None:
    position = counting_position()
    Searcher().negamax(position, 2, -INFINITY, INFINITY, 0)
    assert position.null_moves == 0

    Searcher().negamax(position, 3, -INFINITY, INFINITY, 0)
    assert position.null_moves > 0
    assert position.applied == position.undone
    assert position.to_fen() == chess.STARTING_FEN


def test_null_move_cuts_when_passing_still_fails_high(counting_position) -> None:
    # White is a queen up; even passing keeps the score above beta.
    position = counting_position("4k3/8/8/8/8/8/8/Q3K3 w - - 0 1")
    score = Searcher().negamax(position, 2, -100, -99, 1)
    assert score >= -99
    assert position.null_moves == 1
    # Only the pass was played: no real move was searched.
    assert position.applied == 1
    assert position.undone == 1


def test_null_move_is_not_tried_in_check(counting_position) -> None:
    position = counting_position("4k3/8/8/8/8/8/4r3/4K3 w - - 0 1")
    Searcher().negamax(position, 2, -INFINITY, INFINITY, 1)
    assert position.null_moves == 0


def test_book_move_is_returned_without_searching() -> None:
    searcher = Searcher(book=OpeningBook())
    move, score, depth, nodes = searcher.get_best_move(ChessPosition(), time_limit_ms=5000)
    assert move in ("e4", "d4")
    assert (score, depth, nodes) == (0, 0, 0)
    assert len(searcher.tt) == 0


def test_book_is_off_by_default() -> None:
    _, _, depth, nodes = Searcher().get_best_move(ChessPosition(), time_limit_ms=5000, max_depth=1)
    assert depth == 1
    assert nodes > 0
