"""Precomputed attack geometry.

Each trace is indexed by square and holds the rays leaving that square: a ray
is the ordered run of squares in one direction up to the board edge. Knight
and king traces hold one single-square ray per reachable target.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .position import Position, SQUARES


Ray = Tuple[Position, ...]
Trace = Tuple[Tuple[Ray, ...], ...]

ROOK_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))
BISHOP_DIRECTIONS = ((1, 1), (-1, -1), (-1, 1), (1, -1))
KNIGHT_OFFSETS = ((1, 2), (1, -2), (-1, 2), (-1, -2), (2, 1), (2, -1), (-2, 1), (-2, -1))
KING_OFFSETS = ((0, 1), (0, -1), (1, 0), (-1, 0), (1, 1), (-1, -1), (-1, 1), (1, -1))


def trace_with_delta(start: Position, delta_file: int, delta_rank: int) -> Ray:
    squares: List[Position] = []
    current = start.delta(delta_file, delta_rank)
    while current is not None:
        squares.append(current)
        current = current.delta(delta_file, delta_rank)
    return tuple(squares)


def _sliding_trace(directions: Iterable[Tuple[int, int]]) -> Trace:
    dirs = tuple(directions)
    return tuple(
        tuple(trace_with_delta(sq, df, dr) for df, dr in dirs) for sq in SQUARES
    )


def _jump_trace(offsets: Iterable[Tuple[int, int]]) -> Trace:
    offs = tuple(offsets)
    trace = []
    for sq in SQUARES:
        targets = (sq.delta(df, dr) for df, dr in offs)
        trace.append(tuple((t,) for t in targets if t is not None))
    return tuple(trace)


def attack_trace_for_rook() -> Trace:
    return _sliding_trace(ROOK_DIRECTIONS)


def attack_trace_for_bishop() -> Trace:
    return _sliding_trace(BISHOP_DIRECTIONS)


def attack_trace_for_queen() -> Trace:
    return _sliding_trace(ROOK_DIRECTIONS + BISHOP_DIRECTIONS)


def attack_trace_for_knight() -> Trace:
    return _jump_trace(KNIGHT_OFFSETS)


def attack_trace_for_king() -> Trace:
    return _jump_trace(KING_OFFSETS)


def trace_mask(rays: Iterable[Ray]) -> int:
    """Fold every square of ``rays`` into one bitboard."""
    mask = 0
    for ray in rays:
        for sq in ray:
            mask |= sq.to_bit_mask()
    return mask
