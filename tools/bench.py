#!/usr/bin/env python3
"""
Search benchmark: nodes, speed, table fill and evictions per position at a
fixed depth.

Each position gets a fresh Searcher, so the numbers do not depend on what was
searched before. Compare node counts at equal depth to judge pruning and
ordering changes; compare nodes/s to judge evaluation and move-generation
cost.

Usage: python3 tools/bench.py [--depth 4] [--time-ms 60000]
"""
import argparse
import os
import sys
import time

_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from hybrid_chess.position import ChessPosition
from hybrid_chess.search import Searcher

# Fixed across runs so results stay comparable.
POSITIONS = [
    ("Start",        "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"),
    ("Sicilian",     "rnbqkbnr/pp1ppppp/8/2p5/4P3/8/PPPP1PPP/RNBQKBNR w KQkq c6 0 2"),
    ("Italian",      "r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R b KQkq - 3 3"),
    ("Two knights",  "r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Middlegame",   "r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Hanging queen", "4k3/8/8/3q4/8/8/3R4/4K3 w - - 0 1"),
    ("Rook ending",  "8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Pawn race",    "8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1"),
]


def run_position(label: str, fen: str, depth: int, time_ms: int) -> dict:
    searcher = Searcher()
    position = ChessPosition(fen)
    start = time.monotonic()
    move, score, reached, nodes = searcher.get_best_move(position, time_ms, None, depth)
    elapsed_ms = max(1, int((time.monotonic() - start) * 1000))
    return {
        "label": label,
        "move": move or "(none)",
        "depth": reached,
        "score": score,
        "nodes": nodes,
        "nps": nodes * 1000 // elapsed_ms,
        "time_ms": elapsed_ms,
        "tt": len(searcher.tt),
        "evictions": searcher.tt.evictions,
    }


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark the local search.")
    parser.add_argument("--depth", type=int, default=4, help="iterative deepening cap")
    parser.add_argument("--time-ms", type=int, default=60_000, help="budget per position")
    args = parser.parse_args(argv)

    print(f"depth cap {args.depth}, budget {args.time_ms} ms, {sys.executable}")
    header = (
        f"{'Position':<14} {'Move':<8} {'Depth':>5} {'Score':>7} "
        f"{'Nodes':>9} {'NPS':>7} {'Time(ms)':>9} {'TT':>7} {'Evict':>6}"
    )
    print(header)
    print("-" * len(header))

    total_nodes = total_ms = 0
    for label, fen in POSITIONS:
        r = run_position(label, fen, args.depth, args.time_ms)
        total_nodes += r["nodes"]
        total_ms += r["time_ms"]
        print(
            f"{r['label']:<14} {r['move']:<8} {r['depth']:>5} {r['score']:>7} "
            f"{r['nodes']:>9,} {r['nps']:>7,} {r['time_ms']:>9,} {r['tt']:>7,} {r['evictions']:>6,}"
        )

    print("-" * len(header))
    print(f"{'TOTAL':<14} {'':<8} {'':>5} {'':>7} {total_nodes:>9,} "
          f"{total_nodes * 1000 // max(1, total_ms):>7,} {total_ms:>9,}")


if __name__ == "__main__":
    main()
