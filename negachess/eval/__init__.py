"""Static evaluation: material plus piece-square bonuses.

Pure, deterministic, and side-effect free.
"""

from __future__ import annotations

from typing import Dict, Final, List

from negachess.engine.board import Board
from negachess.engine.position import Color, Piece, iter_bits, piece_index


# Material values (pawn = 1000)
P_VAL: Final = 1000
N_VAL: Final = 3000
B_VAL: Final = 3000
R_VAL: Final = 5000
Q_VAL: Final = 9000
K_VAL: Final = 1_000_000

# Piece-square tables from White's perspective, a1..h1 first, h8 last.
# Black looks squares up mirrored across the ranks.
PSQT_P: Final[List[int]] = [
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    5, 10, 0, 10, 10, 0, 5, 5,
    10, 25, 5, 100, 100, 5, 25, 10,
    50, 75, 100, 150, 150, 100, 75, 50,
    100, 125, 150, 200, 200, 150, 125, 100,
    150, 175, 200, 250, 250, 200, 175, 150,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PSQT_N: Final[List[int]] = [
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 25, 25, 25, 25, 25, 25, 0,
    0, 25, 100, 50, 50, 100, 25, 0,
    0, 25, 75, 225, 225, 75, 25, 0,
    0, 25, 100, 250, 250, 100, 25, 0,
    0, 25, 150, 150, 150, 150, 25, 0,
    0, 25, 25, 25, 25, 25, 25, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PSQT_B: Final[List[int]] = [
    25, 0, 0, 0, 0, 0, 0, 25,
    0, 50, 0, 0, 0, 0, 50, 0,
    0, 25, 75, 25, 25, 75, 25, 0,
    0, 25, 100, 150, 150, 100, 25, 0,
    0, 75, 100, 150, 150, 100, 75, 0,
    0, 25, 25, 25, 25, 25, 25, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PSQT_R: Final[List[int]] = [
    0, 0, 25, 100, 100, 25, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    200, 200, 100, 200, 200, 200, 200, 200,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PSQT_Q: Final[List[int]] = [
    0, 0, 0, 25, 25, 0, 0, 0,
    0, 0, 40, 40, 25, 0, 0, 0,
    0, 25, 50, 50, 50, 50, 25, 0,
    0, 25, 75, 200, 200, 75, 25, 0,
    0, 25, 75, 200, 200, 75, 25, 0,
    0, 25, 75, 100, 100, 75, 25, 0,
    0, 100, 125, 125, 125, 125, 100, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PSQT_K: Final[List[int]] = [
    50, 100, 0, 0, 0, 75, 100, 50,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
    0, 0, 0, 0, 0, 0, 0, 0,
]

PIECE_VALUES: Final[Dict[Piece, int]] = {
    Piece.PAWN: P_VAL,
    Piece.KNIGHT: N_VAL,
    Piece.BISHOP: B_VAL,
    Piece.ROOK: R_VAL,
    Piece.QUEEN: Q_VAL,
    Piece.KING: K_VAL,
}

PSQT: Final[Dict[Piece, List[int]]] = {
    Piece.PAWN: PSQT_P,
    Piece.KNIGHT: PSQT_N,
    Piece.BISHOP: PSQT_B,
    Piece.ROOK: PSQT_R,
    Piece.QUEEN: PSQT_Q,
    Piece.KING: PSQT_K,
}


def _mirror_sq(sq: int) -> int:
    """Mirror a square across the ranks (a1 <-> a8)."""
    return sq ^ 56


def evaluate_piece(board: Board, piece: Piece) -> int:
    """White-minus-Black material and placement score for one piece type."""
    table = PSQT[piece]
    value = PIECE_VALUES[piece]
    score = 0
    for sq in iter_bits(board.bb[piece_index(piece, Color.WHITE)]):
        score += value + table[sq]
    for sq in iter_bits(board.bb[piece_index(piece, Color.BLACK)]):
        score -= value + table[_mirror_sq(sq)]
    return score


def evaluate(board: Board) -> int:
    """Return a material + PSQT evaluation.

    Positive means advantage for White. Side-to-move adjustment is done by
    the search (negamax) so this function is side-agnostic.
    """
    return sum(evaluate_piece(board, piece) for piece in Piece)


__all__ = ["evaluate", "evaluate_piece", "PIECE_VALUES", "PSQT"]
