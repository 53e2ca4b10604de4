from hybrid_chess.constants import CAPTURE_BONUS, CASTLE_BONUS, CHECK_BONUS, KILLER_BONUS
from hybrid_chess.ordering import KillerTable, MoveOrderer, order_tactical
from hybrid_chess.position import ChessPosition
from hybrid_chess.tables import HistoryTable

# White: queen e4, pawn c4, knight g1. Black: queen d5, rook h4. Captures,
# checks and quiet moves are all available to white.
FEN = "7k/8/8/3q4/2P1Q2r/8/8/4K1N1 w - - 0 1"


def make_orderer() -> MoveOrderer:
    return MoveOrderer(KillerTable(), HistoryTable())


def test_killer_table_keeps_two_most_recent() -> None:
    killers = KillerTable()
    killers.add(3, "Nf3")
    killers.add(3, "Nc3")
    killers.add(3, "e4")
    assert killers.at(3) == ["e4", "Nc3"]
    killers.add(3, "Nc3")
    assert killers.at(3) == ["Nc3", "e4"]
    assert killers.at(4) == []
    assert killers.is_killer(3, "e4")
    assert not killers.is_killer(4, "e4")


def test_captures_ordered_by_mvv_lva_before_quiet_moves() -> None:
    position = ChessPosition(FEN)
    moves = position.legal_moves()
    ordered = make_orderer().order(moves, position.board(), ply=0)

    assert ordered[0] == "cxd5"
    assert ordered[1] == "Qxd5+" or ordered[1] == "Qxd5"
    captures = [m for m in ordered if "x" in m]
    assert ordered[: len(captures)] == captures


def test_hash_move_outranks_captures() -> None:
    position = ChessPosition(FEN)
    ordered = make_orderer().order(position.legal_moves(), position.board(), 0, hash_move="Nf3")
    assert ordered[0] == "Nf3"


def test_killers_rank_above_other_quiet_moves() -> None:
    position = ChessPosition(FEN)
    orderer = make_orderer()
    orderer.killers.add(2, "Ne2")
    orderer.killers.add(2, "Nh3")
    ordered = orderer.order(position.legal_moves(), position.board(), ply=2)
    quiet = [m for m in ordered if "x" not in m]
    assert quiet[:2] == ["Nh3", "Ne2"]
    # Killers only apply at their own ply.
    other_ply = orderer.order(position.legal_moves(), position.board(), ply=5)
    assert [m for m in other_ply if "x" not in m][:2] != ["Nh3", "Ne2"]


def test_history_breaks_ties_between_quiet_moves() -> None:
    position = ChessPosition(FEN)
    orderer = make_orderer()
    orderer.history.reward("Kf2", 4)
    ordered = orderer.order(position.legal_moves(), position.board(), ply=0)
    # Checks carry their own bonus; compare plain quiet moves only.
    quiet = [m for m in ordered if "x" not in m and "+" not in m]
    assert quiet[0] == "Kf2"


def test_sort_is_stable_for_equal_scores() -> None:
    position = ChessPosition()
    moves = position.legal_moves()
    assert make_orderer().order(moves, position.board(), ply=0) == moves


def test_order_tactical_puts_captures_before_checks() -> None:
    grid = ChessPosition(FEN).board()
    assert order_tactical(["Qe8+", "Qxh4", "cxd5"], grid) == ["cxd5", "Qxh4", "Qe8+"]


def test_quiet_checks_rank_above_other_quiet_moves() -> None:
    position = ChessPosition(FEN)
    ordered = make_orderer().order(position.legal_moves(), position.board(), ply=0)
    non_captures = [m for m in ordered if "x" not in m]
    checks = [m for m in non_captures if "+" in m]
    assert checks
    assert non_captures[: len(checks)] == checks


def test_castling_bonus_and_check_bonus() -> None:
    position = ChessPosition("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    orderer = make_orderer()
    grid = position.board()
    assert orderer.score("O-O", grid, 0) == CASTLE_BONUS
    assert orderer.score("Kf1", grid, 0) == 0
    assert orderer.score("Rxa8+", grid, 0) > CAPTURE_BONUS + CHECK_BONUS
    # A quiet killer scores its slot bonus.
    orderer.killers.add(0, "Ra7")
    assert orderer.score("Ra7", grid, 0) == KILLER_BONUS


def test_history_never_outranks_captures() -> None:
    position = ChessPosition(FEN)
    orderer = make_orderer()
    for _ in range(5_000):
        orderer.history.reward("Kf2", 64)
    ordered = orderer.order(position.legal_moves(), position.board(), ply=0)
    captures = [m for m in ordered if "x" in m]
    assert ordered[: len(captures)] == captures
    assert orderer.history.score("Kf2") < CAPTURE_BONUS
