from __future__ import annotations

import threading
from typing import List

import pytest

from negachess.engine.board import Board
from negachess.engine.movegen import MoveGenerator
from negachess.engine.move import parse_uci
from negachess.eval import evaluate
from negachess.search.negamax import (
    CANCELLED,
    MATE_SCORE,
    negamax,
    negamax_alpha_beta,
    negamax_alpha_beta_with_table,
)
from negachess.search.transposition import TranspositionTable


KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"
ENDGAME = "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1"


def _play(board: Board, gen: MoveGenerator, ucis: List[str]) -> Board:
    for text in ucis:
        uci = parse_uci(text)
        mv = gen.get_move(board, uci.from_sq, uci.to_sq, uci.promotion)
        assert mv is not None, text
        board.apply_move_mut(mv)
    return board


def _snapshot(board: Board):
    return (list(board.bb), board.side_to_move, board.castling, board.en_passant, board.zobrist_hash)


@pytest.mark.parametrize(
    "fen,depth",
    [
        (None, 2),
        (KIWIPETE, 2),
        (ENDGAME, 3),
    ],
)
def test_alpha_beta_matches_full_width(fen, depth: int) -> None:
    gen = MoveGenerator()
    board = Board.from_fen(fen) if fen else Board.new()
    reference = negamax(board, gen, depth)
    pruned = negamax_alpha_beta(board, gen, depth)
    assert pruned.evaluation == reference.evaluation
    assert pruned.best_move == reference.best_move
    assert pruned.nodes <= reference.nodes


def test_search_does_not_modify_board() -> None:
    gen = MoveGenerator()
    board = Board.from_fen(KIWIPETE)
    before = _snapshot(board)
    negamax_alpha_beta(board, gen, 2)
    assert _snapshot(board) == before
    negamax_alpha_beta_with_table(board, gen, TranspositionTable(10_000), 2)
    assert _snapshot(board) == before


def test_alpha_beta_is_deterministic() -> None:
    gen = MoveGenerator()
    board = Board.new()
    for depth in range(0, 4):
        first = negamax_alpha_beta(board, gen, depth)
        second = negamax_alpha_beta(board, gen, depth)
        assert first == second


@pytest.mark.parametrize(
    "fen,depth",
    [
        (None, 1),
        (None, 2),
        (None, 3),
        (KIWIPETE, 3),
        (ENDGAME, 3),
    ],
)
def test_table_does_not_change_result(fen, depth: int) -> None:
    gen = MoveGenerator()
    board = Board.from_fen(fen) if fen else Board.new()
    plain = negamax_alpha_beta(board, gen, depth)
    cached = negamax_alpha_beta_with_table(board, gen, TranspositionTable(10_000), depth)
    assert cached.evaluation == plain.evaluation
    assert cached.best_move == plain.best_move


def test_depth_zero_returns_signed_static_eval() -> None:
    gen = MoveGenerator()
    board = Board.from_fen("4k3/8/8/8/8/8/8/3QK3 b - - 0 1")
    result = negamax_alpha_beta(board, gen, 0)
    assert result.best_move is None
    assert result.evaluation == -evaluate(board)
    assert result.nodes == 1


def test_checkmated_root_scores_mate() -> None:
    gen = MoveGenerator()
    board = Board.from_fen("7k/6Q1/6K1/8/8/8/8/8 b - - 0 1")
    for depth in (1, 3):
        result = negamax_alpha_beta(board, gen, depth)
        assert result.best_move is None
        assert result.evaluation == -(MATE_SCORE + depth)


def test_stalemated_root_scores_static_eval() -> None:
    gen = MoveGenerator()
    board = Board.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    result = negamax_alpha_beta(board, gen, 2)
    assert result.best_move is None
    assert result.evaluation == -evaluate(board)


def test_finds_mate_in_one() -> None:
    gen = MoveGenerator()
    board = _play(Board.new(), gen, ["f2f3", "e7e6", "g2g4"])
    for result in (
        negamax_alpha_beta(board, gen, 2),
        negamax_alpha_beta_with_table(board, gen, TranspositionTable(10_000), 2),
    ):
        assert result.best_move is not None
        assert result.best_move.to_uci() == "d8h4"
        assert result.evaluation == MATE_SCORE + 1


def test_preset_cancel_returns_cancelled() -> None:
    gen = MoveGenerator()
    cancel = threading.Event()
    cancel.set()
    assert negamax_alpha_beta(Board.new(), gen, 3, cancel=cancel) == CANCELLED
    table = TranspositionTable(100)
    assert negamax_alpha_beta_with_table(Board.new(), gen, table, 3, cancel=cancel) == CANCELLED
    assert len(table) == 0


def test_principal_move_ordering_keeps_evaluation() -> None:
    gen = MoveGenerator()
    board = Board.new()
    baseline = negamax_alpha_beta(board, gen, 2)
    last_move = gen.generate_moves(board).moves[-1]
    reordered = negamax_alpha_beta(board, gen, 2, principal_move=last_move)
    assert reordered.evaluation == baseline.evaluation


def test_avoids_mate_in_one() -> None:
    gen = MoveGenerator()
    board = _play(
        Board.new(),
        gen,
        [
            "e2e4", "c7c5",
            "d1h5", "e7e6",
            "g1f3", "g8f6",
            "h5e5", "b8c6",
            "e5f4", "d7d5",
            "e4e5", "f6h5",
            "f4g4", "g7g6",
            "f1b5", "f8g7",
            "e1g1", "e8g8",
            "b5c6", "b7c6",
            "d2d3", "d8c7",
            "g4g5", "h7h6",
            "g5g4", "g7e5",
            "f3e5", "c7e5",
            "c1h6", "f8e8",
            "b1c3", "e5d6",
            "g4h4", "f7f5",
            "b2b4", "c5b4",
            "c3e2", "c8b7",
            "a1e1", "c6c5",
            "c2c3", "d5d4",
            "c3b4", "d6d5",
        ],
    )
    # A quiet move leaves Qxg2 as mate, so the threat is real
    assert _is_mating_reply(board, gen, "a2a3", "d5g2")

    table = TranspositionTable(10_000)
    result = negamax_alpha_beta_with_table(board, gen, table, 3)
    assert result.best_move is not None
    assert not _is_mating_reply(board, gen, result.best_move.to_uci(), "d5g2")


def _is_mating_reply(board: Board, gen: MoveGenerator, first: str, reply: str) -> bool:
    """True if ``reply`` is legal after ``first`` and mates; board is restored."""
    first_uci, reply_uci = parse_uci(first), parse_uci(reply)
    mv = gen.get_move(board, first_uci.from_sq, first_uci.to_sq, first_uci.promotion)
    assert mv is not None, first
    board.apply_move_mut(mv)
    try:
        answer = gen.get_move(board, reply_uci.from_sq, reply_uci.to_sq)
        if answer is None:
            return False
        board.apply_move_mut(answer)
        mated = gen.generate_moves(board).is_checkmate()
        board.unapply_move_mut(answer)
        return mated
    finally:
        board.unapply_move_mut(mv)
