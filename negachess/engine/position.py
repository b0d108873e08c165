from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional


class InvariantError(AssertionError):
    """Raised when an internal board invariant is broken.

    Signals a corrupted board or a generator bug rather than bad user input,
    so the engine never catches it.
    """


class Color(Enum):
    WHITE = "w"
    BLACK = "b"

    def opposite(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE


class Piece(Enum):
    PAWN = 0
    KNIGHT = 1
    BISHOP = 2
    ROOK = 3
    QUEEN = 4
    KING = 5


@dataclass(frozen=True, order=True)
class Position:
    """Board square as a 0..63 index (a1=0 .. h8=63), rank-major.

    Files and ranks are 1-based: ``file = index % 8 + 1``,
    ``rank = index // 8 + 1``.
    """

    index: int

    def __post_init__(self) -> None:
        if not 0 <= self.index <= 63:
            raise InvariantError(f"square index must be between 0 and 63, got {self.index}")

    @classmethod
    def new(cls, file: int, rank: int) -> "Position":
        if file < 1 or file > 8:
            raise InvariantError(f"file must be between 1 and 8, got {file}")
        if rank < 1 or rank > 8:
            raise InvariantError(f"rank must be between 1 and 8, got {rank}")
        return SQUARES[(file - 1) + (rank - 1) * 8]

    @classmethod
    def from_index(cls, index: int) -> "Position":
        if not 0 <= index <= 63:
            raise InvariantError(f"square index must be between 0 and 63, got {index}")
        return SQUARES[index]

    @property
    def file(self) -> int:
        return self.index % 8 + 1

    @property
    def rank(self) -> int:
        return self.index // 8 + 1

    def delta(self, delta_file: int, delta_rank: int) -> Optional["Position"]:
        """Return the square offset by ``(delta_file, delta_rank)`` or None off-board."""
        new_file = self.file + delta_file
        new_rank = self.rank + delta_rank
        if new_file < 1 or new_file > 8 or new_rank < 1 or new_rank > 8:
            return None
        return SQUARES[(new_file - 1) + (new_rank - 1) * 8]

    def to_bit_mask(self) -> int:
        return 1 << self.index

    def mirror_rank(self) -> "Position":
        return SQUARES[(8 - self.rank) * 8 + self.file - 1]

    def __str__(self) -> str:
        return chr(ord("a") + self.file - 1) + str(self.rank)


SQUARES = tuple(Position(i) for i in range(64))


def iter_bits(mask: int) -> Iterator[int]:
    """Yield set bit indices of ``mask`` from least to most significant."""
    while mask:
        lsb = mask & -mask
        yield lsb.bit_length() - 1
        mask ^= lsb


def bit_mask_to_positions(mask: int) -> List[Position]:
    return [SQUARES[sq] for sq in iter_bits(mask)]


def piece_index(piece: Piece, color: Color) -> int:
    """Slot of ``(piece, color)`` in the 12-entry bitboard list (WP..WK, BP..BK)."""
    return piece.value if color is Color.WHITE else piece.value + 6
