from __future__ import annotations

from typing import Dict, Optional

from .board import Board
from .movegen import MoveGenerator, default_generator


def perft(board: Board, depth: int, generator: Optional[MoveGenerator] = None) -> int:
    """Compute perft node count for ``board`` at ``depth``.

    Definition:
    - depth == 0 returns 1 (the current node).
    - depth > 0 returns the sum over all legal child positions' perft(depth-1).

    Children are visited with make/unmake on ``board`` itself, which is left
    unchanged on return.
    """
    if depth < 0:
        raise ValueError("depth must be >= 0")
    if depth == 0:
        return 1
    gen = generator or default_generator()
    moves = gen.generate_moves(board).moves
    if depth == 1:
        return len(moves)

    nodes = 0
    for m in moves:
        board.apply_move_mut(m)
        nodes += perft(board, depth - 1, gen)
        board.unapply_move_mut(m)
    return nodes


def divide(board: Board, depth: int, generator: Optional[MoveGenerator] = None) -> Dict[str, int]:
    """Perft split by root move, keyed by square-pair notation."""
    if depth < 1:
        raise ValueError("depth must be >= 1")
    gen = generator or default_generator()
    result: Dict[str, int] = {}
    for m in gen.generate_moves(board).moves:
        board.apply_move_mut(m)
        result[m.to_uci()] = perft(board, depth - 1, gen)
        board.unapply_move_mut(m)
    return result
