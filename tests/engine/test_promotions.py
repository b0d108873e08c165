from __future__ import annotations

from negachess.engine.board import Board
from negachess.engine.move import MoveKind, str_to_position
from negachess.engine.movegen import MoveGenerator
from negachess.engine.position import Color, Piece


def _sq(name: str):
    return str_to_position(name)


def test_step_promotion_generates_four_moves_queen_first() -> None:
    gen = MoveGenerator()
    b = Board.from_fen("8/P7/8/8/8/8/8/k6K w - - 0 1")
    promos = [m for m in gen.generate_moves(b).moves if m.promotion is not None]
    assert [m.to_uci() for m in promos] == ["a7a8q", "a7a8r", "a7a8b", "a7a8n"]
    assert all(m.kind is MoveKind.STEP for m in promos)


def test_capture_promotions_record_the_captured_piece() -> None:
    gen = MoveGenerator()
    b = Board.from_fen("1r6/P7/8/8/8/8/8/k6K w - - 0 1")
    caps = [m for m in gen.generate_moves(b).moves if m.kind is MoveKind.CAPTURE]
    assert [m.to_uci() for m in caps] == ["a7b8q", "a7b8r", "a7b8b", "a7b8n"]
    assert all(m.captured is Piece.ROOK for m in caps)


def test_black_promotes_on_the_first_rank() -> None:
    gen = MoveGenerator()
    b = Board.from_fen("k6K/8/8/8/8/8/p7/8 b - - 0 1")
    promos = [m.to_uci() for m in gen.generate_moves(b).moves if m.promotion is not None]
    assert promos == ["a2a1q", "a2a1r", "a2a1b", "a2a1n"]


def test_get_move_first_match_and_explicit_promotion() -> None:
    gen = MoveGenerator()
    b = Board.from_fen("8/P7/8/8/8/8/8/k6K w - - 0 1")
    first = gen.get_move(b, _sq("a7"), _sq("a8"))
    assert first is not None and first.promotion is Piece.QUEEN
    knight = gen.get_move(b, _sq("a7"), _sq("a8"), Piece.KNIGHT)
    assert knight is not None and knight.promotion is Piece.KNIGHT


def test_promotion_replaces_the_pawn_and_undo_restores_it() -> None:
    gen = MoveGenerator()
    b = Board.from_fen("1r6/P7/8/8/8/8/8/k6K w - - 0 1")
    before = b.to_fen()
    mv = gen.get_move(b, _sq("a7"), _sq("b8"), Piece.KNIGHT)
    assert mv is not None
    b.apply_move_mut(mv)
    assert b.get_piece(_sq("b8")) == (Piece.KNIGHT, Color.WHITE)
    assert b.get_piece_mask(Piece.PAWN, Color.WHITE) == 0
    assert b.get_piece_mask(Piece.ROOK, Color.BLACK) == 0
    b.unapply_move_mut(mv)
    assert b.to_fen() == before
