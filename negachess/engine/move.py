from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from .position import Color, InvariantError, Piece, Position


PROMOTION_PIECES = {
    "q": Piece.QUEEN,
    "r": Piece.ROOK,
    "b": Piece.BISHOP,
    "n": Piece.KNIGHT,
}
PIECE_TO_PROMOTION = {v: k for k, v in PROMOTION_PIECES.items()}


class MoveKind(Enum):
    STEP = "step"
    CAPTURE = "capture"
    EN_PASSANT = "en_passant"
    CASTLING = "castling"


@dataclass(frozen=True)
class CastlingRights:
    """Four independent castling flags; they only ever turn from True to False."""

    white_king_side: bool = True
    white_queen_side: bool = True
    black_king_side: bool = True
    black_queen_side: bool = True

    @classmethod
    def initial(cls) -> "CastlingRights":
        return cls()

    @classmethod
    def none(cls) -> "CastlingRights":
        return cls(False, False, False, False)

    @classmethod
    def from_fen(cls, text: str) -> "CastlingRights":
        if text == "-":
            return cls.none()
        if not text or any(ch not in "KQkq" for ch in text):
            raise ValueError(f"invalid castling rights: {text!r}")
        return cls("K" in text, "Q" in text, "k" in text, "q" in text)

    def to_fen(self) -> str:
        flags = "".join(
            ch for ch, held in zip("KQkq", self.as_tuple()) if held
        )
        return flags or "-"

    def as_tuple(self) -> Tuple[bool, bool, bool, bool]:
        return (
            self.white_king_side,
            self.white_queen_side,
            self.black_king_side,
            self.black_queen_side,
        )

    def king_side(self, color: Color) -> bool:
        return self.white_king_side if color is Color.WHITE else self.black_king_side

    def queen_side(self, color: Color) -> bool:
        return self.white_queen_side if color is Color.WHITE else self.black_queen_side

    def without(
        self, color: Color, *, king_side: bool = False, queen_side: bool = False
    ) -> "CastlingRights":
        """Return rights with the named flags of ``color`` cleared."""
        if color is Color.WHITE:
            ks = self.white_king_side and not king_side
            qs = self.white_queen_side and not queen_side
            if (ks, qs) == (self.white_king_side, self.white_queen_side):
                return self
            return replace(self, white_king_side=ks, white_queen_side=qs)
        ks = self.black_king_side and not king_side
        qs = self.black_queen_side and not queen_side
        if (ks, qs) == (self.black_king_side, self.black_queen_side):
            return self
        return replace(self, black_king_side=ks, black_queen_side=qs)

    def after_move(self, move: "Move", mover: Color) -> "CastlingRights":
        """Rights left once ``mover`` has played ``move``.

        King moves drop both rights of the mover; a rook leaving its home
        corner drops that side; capturing a rook on its home corner drops the
        opponent's right for that side.
        """
        rights = self
        home_rank = 1 if mover is Color.WHITE else 8
        if move.piece is Piece.KING:
            rights = rights.without(mover, king_side=True, queen_side=True)
        elif move.piece is Piece.ROOK and move.from_sq.rank == home_rank:
            if move.from_sq.file == 1:
                rights = rights.without(mover, queen_side=True)
            elif move.from_sq.file == 8:
                rights = rights.without(mover, king_side=True)
        if move.captured is Piece.ROOK:
            opponent = mover.opposite()
            opponent_rank = 8 if mover is Color.WHITE else 1
            if move.to_sq.rank == opponent_rank:
                if move.to_sq.file == 1:
                    rights = rights.without(opponent, queen_side=True)
                elif move.to_sq.file == 8:
                    rights = rights.without(opponent, king_side=True)
        return rights


@dataclass(frozen=True)
class Move:
    """Self-contained move record produced by the move generator.

    Attributes:
        piece (Piece): Moving piece type.
        kind (MoveKind): Step, capture, en passant, or castling.
        from_sq (Position): Origin square.
        to_sq (Position): Destination square.
        captured (Optional[Piece]): Captured piece type for ``CAPTURE`` moves.
        promotion (Optional[Piece]): Promotion piece, if the pawn promotes.
        last_en_passant (Optional[Position]): En-passant target before the move.
        last_castling (CastlingRights): Castling rights before the move.

    The ``last_*`` snapshot is what lets ``Board.unapply_move_mut`` restore
    the prior state exactly without a history stack.
    """

    piece: Piece
    kind: MoveKind
    from_sq: Position
    to_sq: Position
    captured: Optional[Piece] = None
    promotion: Optional[Piece] = None
    last_en_passant: Optional[Position] = None
    last_castling: CastlingRights = field(default_factory=CastlingRights.initial)

    def is_capture(self) -> bool:
        return self.kind is MoveKind.CAPTURE or self.kind is MoveKind.EN_PASSANT

    def is_double_step(self) -> bool:
        return self.piece is Piece.PAWN and abs(self.to_sq.index - self.from_sq.index) == 16

    def to_uci(self) -> str:
        """Serialize the move into square-pair notation, e.g. ``"e7e8q"``."""
        return UciMove(self.from_sq, self.to_sq, self.promotion).to_uci()


def castling_rook_squares(move: Move) -> Tuple[Position, Position]:
    """Return the rook's (origin, destination) for a castling move."""
    rank = move.from_sq.rank
    if move.to_sq.file < 5:
        return Position.new(1, rank), Position.new(4, rank)
    return Position.new(8, rank), Position.new(6, rank)


def en_passant_victim_square(move: Move, mover: Color) -> Position:
    """Square of the pawn removed by an en-passant capture."""
    direction = 1 if mover is Color.WHITE else -1
    victim = move.to_sq.delta(0, -direction)
    if victim is None:
        raise InvariantError(f"en passant capture lands off the board: {move.to_sq}")
    return victim


class UciMove(NamedTuple):
    """Board-agnostic square pair with an optional promotion piece."""

    from_sq: Position
    to_sq: Position
    promotion: Optional[Piece] = None

    def to_uci(self) -> str:
        promo = ""
        if self.promotion is not None:
            if self.promotion not in PIECE_TO_PROMOTION:
                raise InvariantError(f"cannot promote to {self.promotion}")
            promo = PIECE_TO_PROMOTION[self.promotion]
        return position_to_str(self.from_sq) + position_to_str(self.to_sq) + promo


def parse_uci(uci: str) -> UciMove:
    """Parse a square-pair move token.

    Args:
        uci (str): Move such as ``"e2e4"`` or ``"e7e8q"``.

    Returns:
        UciMove: Parsed origin, destination, and optional promotion.

    Raises:
        ValueError: If the token has an invalid length, file, rank, or
            promotion letter.
    """
    if len(uci) not in (4, 5):
        raise ValueError(f"move must be 4 or 5 characters long: {uci!r}")
    errors = []
    from_sq = to_sq = None
    try:
        from_sq = str_to_position(uci[0:2])
    except ValueError as e:
        errors.append(str(e))
    try:
        to_sq = str_to_position(uci[2:4])
    except ValueError as e:
        errors.append(str(e))
    promotion: Optional[Piece] = None
    if len(uci) == 5:
        promotion = PROMOTION_PIECES.get(uci[4])
        if promotion is None:
            errors.append(f"cannot promote to piece: {uci[4]!r}")
    if errors or from_sq is None or to_sq is None:
        raise ValueError(", ".join(errors))
    return UciMove(from_sq, to_sq, promotion)


def str_to_position(s: str) -> Position:
    """Convert a square name such as ``"e4"`` into a Position.

    Raises:
        ValueError: If the file is not ``a``-``h`` or the rank is not a digit
            in ``1``-``8``.
    """
    if len(s) != 2:
        raise ValueError(f"invalid square: {s!r}")
    file_raw, rank_raw = s[0], s[1]
    problems = []
    if file_raw < "a" or file_raw > "h":
        problems.append(f"invalid file {file_raw!r}")
    if rank_raw not in "0123456789":
        problems.append(f"invalid rank {rank_raw!r}")
    elif not 1 <= int(rank_raw) <= 8:
        problems.append(f"rank out of range {rank_raw!r}")
    if problems:
        raise ValueError(" and ".join(problems))
    return Position.new(ord(file_raw) - ord("a") + 1, int(rank_raw))


def position_to_str(position: Position) -> str:
    return str(position)
