"""Negamax search over a mutable board.

Every function here mutates ``board`` while it runs and restores it before
returning. Scores are from the perspective of the side to move.
"""

from __future__ import annotations

import threading
from typing import NamedTuple, Optional

from negachess.engine.board import Board
from negachess.engine.move import Move
from negachess.engine.movegen import GeneratedMoves, MoveGenerator
from negachess.engine.position import Color
from negachess.eval import evaluate

from .transposition import Bound, TranspositionTable


EVAL_MAX = 2**31 - 1
EVAL_MIN = -EVAL_MAX
MATE_SCORE = 100_000_000


class NodeResult(NamedTuple):
    best_move: Optional[Move]
    evaluation: int
    nodes: int


CANCELLED = NodeResult(None, 0, 0)


def _sign(board: Board) -> int:
    return 1 if board.side_to_move is Color.WHITE else -1


def _terminal_score(board: Board, generated: GeneratedMoves, depth: int) -> int:
    # Mates found with more depth left are closer to the root and score lower
    if generated.is_check:
        return -(MATE_SCORE + depth)
    return _sign(board) * evaluate(board)


def is_mate_score(evaluation: int) -> bool:
    return abs(evaluation) >= MATE_SCORE


def negamax(board: Board, generator: MoveGenerator, depth: int) -> NodeResult:
    """Full-width negamax without pruning; the reference for alpha-beta."""
    if depth == 0:
        return NodeResult(None, _sign(board) * evaluate(board), 1)
    generated = generator.generate_moves(board)
    if not generated.moves:
        return NodeResult(None, _terminal_score(board, generated, depth), 1)

    best_value = EVAL_MIN
    best_move: Optional[Move] = None
    nodes = 1
    for move in generated.moves:
        board.apply_move_mut(move)
        child = negamax(board, generator, depth - 1)
        board.unapply_move_mut(move)
        nodes += child.nodes
        value = -child.evaluation
        if value > best_value:
            best_value, best_move = value, move
    return NodeResult(best_move, best_value, nodes)


def negamax_alpha_beta(
    board: Board,
    generator: MoveGenerator,
    depth: int,
    *,
    cancel: Optional[threading.Event] = None,
    principal_move: Optional[Move] = None,
) -> NodeResult:
    """Alpha-beta negamax over a full window.

    Args:
        board (Board): Position to search; restored before returning.
        generator (MoveGenerator): Legal move source.
        depth (int): Remaining plies.
        cancel (Optional[threading.Event]): Once set, every frame returns
            ``CANCELLED`` as soon as it notices.
        principal_move (Optional[Move]): Root move to try first.

    Returns:
        NodeResult: Best root move (None for a terminal position), its
        evaluation, and the number of visited nodes.
    """
    return _alpha_beta(board, generator, None, depth, cancel, principal_move)


def negamax_alpha_beta_with_table(
    board: Board,
    generator: MoveGenerator,
    table: TranspositionTable,
    depth: int,
    *,
    cancel: Optional[threading.Event] = None,
    principal_move: Optional[Move] = None,
) -> NodeResult:
    """Alpha-beta negamax that reuses and fills ``table``.

    The root is never answered from the table since it must produce a move.
    """
    return _alpha_beta(board, generator, table, depth, cancel, principal_move)


def _alpha_beta(
    board: Board,
    generator: MoveGenerator,
    table: Optional[TranspositionTable],
    depth: int,
    cancel: Optional[threading.Event],
    principal_move: Optional[Move],
) -> NodeResult:
    def node(d: int, alpha: int, beta: int, is_root: bool) -> NodeResult:
        if cancel is not None and cancel.is_set():
            return CANCELLED

        if table is not None and not is_root:
            entry = table.check(board.zobrist_hash, d)
            if entry is not None:
                if entry.bound is Bound.EXACT:
                    return NodeResult(None, entry.evaluation, 1)
                if entry.bound is Bound.LOWER:
                    alpha = max(alpha, entry.evaluation)
                else:
                    beta = min(beta, entry.evaluation)
                if alpha >= beta:
                    return NodeResult(None, entry.evaluation, 1)

        if d == 0:
            return NodeResult(None, _sign(board) * evaluate(board), 1)

        generated = generator.generate_moves(board)
        moves = generated.moves
        if not moves:
            return NodeResult(None, _terminal_score(board, generated, d), 1)

        if is_root and principal_move is not None and principal_move in moves:
            i = moves.index(principal_move)
            moves[0], moves[i] = moves[i], moves[0]

        alpha_orig = alpha
        best_value = EVAL_MIN
        best_move: Optional[Move] = None
        nodes = 1
        for move in moves:
            board.apply_move_mut(move)
            child = node(d - 1, -beta, -alpha, False)
            board.unapply_move_mut(move)
            nodes += child.nodes
            if cancel is not None and cancel.is_set():
                return NodeResult(None, 0, nodes)
            value = -child.evaluation
            if value > best_value:
                best_value, best_move = value, move
            if value > alpha:
                alpha = value
            if alpha >= beta:
                break

        if table is not None:
            if best_value <= alpha_orig:
                bound = Bound.UPPER
            elif best_value >= beta:
                bound = Bound.LOWER
            else:
                bound = Bound.EXACT
            table.update(board.zobrist_hash, d, best_value, bound)
        return NodeResult(best_move, best_value, nodes)

    return node(depth, EVAL_MIN, EVAL_MAX, True)
