from __future__ import annotations

from typing import List, TYPE_CHECKING

from .move import CastlingRights, Move, MoveKind, castling_rook_squares, en_passant_victim_square
from .position import Color, Piece, iter_bits, piece_index

if TYPE_CHECKING:  # pragma: no cover
    from .board import Board


MASK64 = 0xFFFFFFFFFFFFFFFF
ZOBRIST_SEED = 123456


class _SplitMix64:
    def __init__(self, seed: int) -> None:
        self.state = seed & MASK64

    def next(self) -> int:
        # Deterministic 64-bit SplitMix64
        self.state = (self.state + 0x9E3779B97F4A7C15) & MASK64
        z = self.state
        z = (z ^ (z >> 30)) * 0xBF58476D1CE4E5B9 & MASK64
        z = (z ^ (z >> 27)) * 0x94D049BB133111EB & MASK64
        z = z ^ (z >> 31)
        return z & MASK64


class Zobrist:
    """Zobrist hashing keys.

    Table layout:
    - piece_square[12][64]: indices follow Board piece order (WP..BK)
    - en_passant[64]: keyed by the square of the pawn that double-stepped
    - white_to_move: toggled in when White is to move
    - castling[4]: white king side, white queen side, black king side,
      black queen side
    """

    piece_square: List[List[int]]
    en_passant: List[int]
    white_to_move: int
    castling: List[int]

    def __init__(self, seed: int = ZOBRIST_SEED) -> None:
        prng = _SplitMix64(seed)
        self.piece_square = [[prng.next() for _ in range(64)] for _ in range(12)]
        self.en_passant = [prng.next() for _ in range(64)]
        self.castling = [prng.next() for _ in range(4)]
        self.white_to_move = prng.next()


# Global deterministic table
ZOBRIST = Zobrist()


def compute_hash_from_scratch(board: "Board") -> int:
    """Compute the 64-bit Zobrist hash of ``board`` from its features."""
    h = 0
    for p in range(12):
        for sq in iter_bits(board.bb[p]):
            h ^= ZOBRIST.piece_square[p][sq]
    if board.en_passant is not None:
        h ^= ZOBRIST.en_passant[board.en_passant.index]
    if board.side_to_move is Color.WHITE:
        h ^= ZOBRIST.white_to_move
    h = _castling_keys(h, board.castling)
    return h & MASK64


def apply_move(current_hash: int, castling_rights: CastlingRights, move: Move, to_move: Color) -> int:
    """Hash of the position reached when ``to_move`` plays ``move``.

    Args:
        current_hash (int): Hash of the position before the move.
        castling_rights (CastlingRights): Rights before the move.
        move (Move): Move being played.
        to_move (Color): Side playing the move.
    """
    h = _toggle_move(current_hash, move, to_move)
    h = _toggle_castling_changes(h, castling_rights, castling_rights.after_move(move, to_move))
    return h & MASK64


def unapply_move(current_hash: int, castling_rights: CastlingRights, move: Move, to_move: Color) -> int:
    """Hash of the position before ``move`` was played.

    Args:
        current_hash (int): Hash of the position after the move.
        castling_rights (CastlingRights): Rights after the move.
        move (Move): Move being taken back; its snapshot supplies the rights
            and en-passant target to restore.
        to_move (Color): Side to move after the move, i.e. the opponent of
            the player who made it.
    """
    h = _toggle_move(current_hash, move, to_move.opposite())
    h = _toggle_castling_changes(h, castling_rights, move.last_castling)
    return h & MASK64


def _toggle_move(h: int, move: Move, mover: Color) -> int:
    # Every term is an XOR, so the same toggles serve both directions.
    moving = piece_index(move.piece, mover)
    opponent = mover.opposite()
    to_idx = move.to_sq.index

    if move.kind is MoveKind.CAPTURE:
        h ^= ZOBRIST.piece_square[piece_index(move.captured, opponent)][to_idx]
    elif move.kind is MoveKind.EN_PASSANT:
        victim = en_passant_victim_square(move, mover)
        h ^= ZOBRIST.piece_square[piece_index(Piece.PAWN, opponent)][victim.index]
    elif move.kind is MoveKind.CASTLING:
        rook_from, rook_to = castling_rook_squares(move)
        rook = piece_index(Piece.ROOK, mover)
        h ^= ZOBRIST.piece_square[rook][rook_from.index]
        h ^= ZOBRIST.piece_square[rook][rook_to.index]

    h ^= ZOBRIST.piece_square[moving][move.from_sq.index]
    if move.promotion is None:
        h ^= ZOBRIST.piece_square[moving][to_idx]
    else:
        h ^= ZOBRIST.piece_square[piece_index(move.promotion, mover)][to_idx]

    if move.last_en_passant is not None:
        h ^= ZOBRIST.en_passant[move.last_en_passant.index]
    if move.is_double_step():
        h ^= ZOBRIST.en_passant[to_idx]

    h ^= ZOBRIST.white_to_move
    return h


def _toggle_castling_changes(h: int, before: CastlingRights, after: CastlingRights) -> int:
    if before is after:
        return h
    for key, was, now in zip(ZOBRIST.castling, before.as_tuple(), after.as_tuple()):
        if was != now:
            h ^= key
    return h


def _castling_keys(h: int, rights: CastlingRights) -> int:
    for key, held in zip(ZOBRIST.castling, rights.as_tuple()):
        if held:
            h ^= key
    return h
