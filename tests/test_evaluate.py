import chess

from hybrid_chess import evaluate as evaluate_module
from hybrid_chess.constants import (
    BISHOP_PAIR_BONUS,
    IN_CHECK_PENALTY,
    KING_BACK_RANK_BONUS,
    MATE_SCORE,
    MOBILITY_WEIGHT,
    PAWN_SHIELD_BONUS,
)
from hybrid_chess.evaluate import (
    Evaluator,
    evaluate_grid,
    is_endgame,
    pawn_shield,
    relative,
)
from hybrid_chess.position import ChessPosition
from hybrid_chess.tables import make_eval_cache

FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"


def test_start_position_is_balanced() -> None:
    position = ChessPosition()
    assert evaluate_grid(position.board()) == 0
    # Only White's twenty moves of mobility separate the sides.
    assert Evaluator().evaluate(position) == -MOBILITY_WEIGHT * 20


def test_absolute_frame_black_positive() -> None:
    black_up_queen = ChessPosition("3qk3/8/8/8/8/8/8/4K3 w - - 0 1")
    white_up_queen = ChessPosition("4k3/8/8/8/8/8/8/3QK3 w - - 0 1")
    evaluator = Evaluator()
    assert evaluator.evaluate(black_up_queen) > 800
    assert evaluator.evaluate(white_up_queen) < -800


def test_colour_mirror_negates_score() -> None:
    white = ChessPosition("4k3/8/8/8/8/2N5/PP6/4K3 w - - 0 1")
    black = ChessPosition("4k3/pp6/2n5/8/8/8/8/4K3 w - - 0 1")
    assert evaluate_grid(white.board()) == -evaluate_grid(black.board())


def test_relative_flips_for_white() -> None:
    assert relative(120, chess.BLACK) == 120
    assert relative(120, chess.WHITE) == -120


def test_bishop_pair_bonus() -> None:
    pair = ChessPosition("4k3/8/8/8/8/8/8/2B1KB2 w - - 0 1").board()
    bishop_and_knight = ChessPosition("4k3/8/8/8/8/8/8/2B1KN2 w - - 0 1").board()
    single = ChessPosition("4k3/8/8/8/8/8/8/2B1K3 w - - 0 1").board()
    # Second bishop adds its material and square bonus, plus the pair bonus.
    f1_bishop = evaluate_grid(pair) - evaluate_grid(single)
    f1_knight = evaluate_grid(bishop_and_knight) - evaluate_grid(single)
    assert f1_bishop < f1_knight
    assert f1_bishop == -(330 - 10 + BISHOP_PAIR_BONUS)


def test_pawn_shield_counts_pawns_ahead_of_king() -> None:
    grid = ChessPosition("6k1/5ppp/8/8/8/8/5PP1/6K1 w - - 0 1").board()
    assert pawn_shield(grid, 7, 6, chess.WHITE) == 2
    assert pawn_shield(grid, 0, 6, chess.BLACK) == 3


def test_king_safety_only_in_middlegame() -> None:
    grid = ChessPosition().board()
    assert not is_endgame(grid)
    endgame = ChessPosition("6k1/5ppp/8/8/8/8/5PPP/6K1 w - - 0 1").board()
    assert is_endgame(endgame)
    assert PAWN_SHIELD_BONUS > 0


def test_checkmate_adds_terminal_bonus() -> None:
    score = Evaluator().evaluate(ChessPosition(FOOLS_MATE))
    # White is mated: Black wins, positive in the absolute frame.
    assert score >= MATE_SCORE - 1_000


def test_cache_returns_stored_scores() -> None:
    cache = make_eval_cache(capacity=16)
    evaluator = Evaluator(cache)
    position = ChessPosition("3qk3/8/8/8/8/8/8/4K3 w - - 0 1")
    first = evaluator.evaluate(position, key=99)
    assert cache.get(99) == first
    cache.put(99, 7)
    assert evaluator.evaluate(position, key=99) == 7


def test_mobility_is_credited_to_the_side_to_move() -> None:
    after_e4 = ChessPosition("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1")
    grid_score = evaluate_grid(after_e4.board())
    assert Evaluator().evaluate(after_e4) == grid_score + MOBILITY_WEIGHT * 20


def test_side_in_check_is_penalised() -> None:
    # White king e1 checked by an undefended rook on e2.
    position = ChessPosition("4k3/8/8/8/8/8/4r3/4K3 w - - 0 1")
    assert position.is_check() and not position.is_checkmate()
    mobility = MOBILITY_WEIGHT * len(position.legal_moves())
    grid_score = evaluate_grid(position.board())
    # Absolute frame: a White penalty is a Black gain.
    assert Evaluator().evaluate(position) == grid_score + IN_CHECK_PENALTY - mobility


def test_back_rank_king_bonus_in_middlegame(monkeypatch) -> None:
    # Black's king has walked to e6; White's is still on e1.
    walked = ChessPosition("rnbq1bnr/pppppppp/4k3/8/8/8/PPPPPPPP/RNBQKBNR w KQ - 0 1").board()
    home = ChessPosition().board()
    with_bonus = evaluate_grid(walked), evaluate_grid(home)

    monkeypatch.setattr(evaluate_module, "KING_BACK_RANK_BONUS", 0)
    without_bonus = evaluate_grid(walked), evaluate_grid(home)

    assert with_bonus[0] - without_bonus[0] == -KING_BACK_RANK_BONUS
    assert with_bonus[1] == without_bonus[1] == 0


def test_back_rank_bonus_not_applied_in_endgame(monkeypatch) -> None:
    grid = ChessPosition("6k1/5ppp/8/8/8/8/5PPP/6K1 w - - 0 1").board()
    before = evaluate_grid(grid)
    monkeypatch.setattr(evaluate_module, "KING_BACK_RANK_BONUS", 0)
    assert evaluate_grid(grid) == before
