from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from ..config import AppConfig
from ..engine.board import Board
from ..engine.perft import divide, perft
from ..engine.position import Color
from ..search.service import SearchService
from .play import CommandLineGame


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="negachess", description="negachess chess engine")
    sub = ap.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Play against the engine in the terminal")
    play.add_argument(
        "--engine-color", choices=("w", "b"), default="b", help="Side the engine plays (default: b)"
    )
    play.add_argument("--depth", type=int, default=None, help="Search depth limit")
    play.add_argument("--movetime", type=int, default=None, help="Time per engine move in ms")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address")
    serve.add_argument("--port", type=int, default=None, help="Bind port")

    pf = sub.add_parser("perft", help="Count leaf nodes of the legal move tree")
    pf.add_argument("depth", type=int, help="Depth in plies")
    pf.add_argument("--fen", default=None, help="Start position (default: initial position)")
    pf.add_argument("--divide", action="store_true", help="Print counts per root move")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = AppConfig.from_env()
    except ValueError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(level=cfg.log_level)

    if args.command == "play":
        depth = args.depth
        movetime = args.movetime
        if depth is None and movetime is None:
            depth, movetime = cfg.search.depth, cfg.search.movetime_ms
        game = CommandLineGame(
            engine_color=Color(args.engine_color),
            search=SearchService(cfg.search),
            depth=depth,
            movetime_ms=movetime,
        )
        try:
            game.run()
        except (EOFError, KeyboardInterrupt):
            print()
        return 0

    if args.command == "serve":
        host = args.host or cfg.server.host
        port = args.port or cfg.server.port
        logger.info("serving on %s:%d", host, port)
        uvicorn.run(
            "negachess.protocol.http.app:create_app",
            factory=True,
            host=host,
            port=port,
            log_level=cfg.log_level.lower(),
        )
        return 0

    # perft
    try:
        board = Board.from_fen(args.fen) if args.fen else Board.new()
    except ValueError as e:
        print(f"invalid FEN: {e}", file=sys.stderr)
        return 2
    if args.depth < 0:
        print("depth must be >= 0", file=sys.stderr)
        return 2
    if args.divide and args.depth > 0:
        counts = divide(board, args.depth)
        for uci in sorted(counts):
            print(f"{uci}: {counts[uci]}")
        print(f"total: {sum(counts.values())}")
    else:
        print(perft(board, args.depth))
    return 0


if __name__ == "__main__":
    sys.exit(main())
