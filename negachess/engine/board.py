from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from . import zobrist
from .move import (
    CastlingRights,
    Move,
    MoveKind,
    castling_rook_squares,
    en_passant_victim_square,
    str_to_position,
)
from .position import (
    Color,
    InvariantError,
    Piece,
    Position,
    SQUARES,
    bit_mask_to_positions,
    piece_index,
)


STARTPOS_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

PIECE_TO_CHAR = {
    Piece.PAWN: "p",
    Piece.KNIGHT: "n",
    Piece.BISHOP: "b",
    Piece.ROOK: "r",
    Piece.QUEEN: "q",
    Piece.KING: "k",
}
CHAR_TO_PIECE = {v: k for k, v in PIECE_TO_CHAR.items()}

GLYPHS = {
    (Piece.PAWN, Color.WHITE): "♙",
    (Piece.KNIGHT, Color.WHITE): "♘",
    (Piece.BISHOP, Color.WHITE): "♗",
    (Piece.ROOK, Color.WHITE): "♖",
    (Piece.QUEEN, Color.WHITE): "♕",
    (Piece.KING, Color.WHITE): "♔",
    (Piece.PAWN, Color.BLACK): "♟",
    (Piece.KNIGHT, Color.BLACK): "♞",
    (Piece.BISHOP, Color.BLACK): "♝",
    (Piece.ROOK, Color.BLACK): "♜",
    (Piece.QUEEN, Color.BLACK): "♛",
    (Piece.KING, Color.BLACK): "♚",
}

# (piece, color) for each of the 12 bitboard slots, in slot order
SLOTS: Tuple[Tuple[Piece, Color], ...] = tuple(
    (piece, color) for color in (Color.WHITE, Color.BLACK) for piece in Piece
)


@dataclass
class Board:
    """Board state with bitboards, incremental hash, and FEN I/O.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63), rank-major from white's perspective.
    - ``en_passant`` holds the square of the pawn that just double-stepped,
      not the square behind it; FEN conversion translates between the two.
    - ``apply_move_mut``/``unapply_move_mut`` are exact inverses, relying on
      the pre-move snapshot stored in each Move.
    """

    # 12 piece bitboards, indexed by ``piece_index``
    bb: List[int] = field(default_factory=lambda: [0] * 12)
    side_to_move: Color = Color.WHITE
    castling: CastlingRights = field(default_factory=CastlingRights.initial)
    en_passant: Optional[Position] = None
    zobrist_hash: int = 0

    @classmethod
    def empty(cls) -> "Board":
        """Board with no pieces, White to move, no castling rights."""
        board = cls(castling=CastlingRights.none())
        board.refresh_hash()
        return board

    @classmethod
    def new(cls) -> "Board":
        """Create a board initialized to the standard chess starting position."""
        return cls.from_fen(STARTPOS_FEN)

    startpos = new

    @classmethod
    def from_fen(cls, fen: str) -> "Board":
        """Create a board from a Forsyth-Edwards Notation (FEN) string.

        Args:
            fen (str): FEN string describing the position to load.

        Returns:
            Board: Board instance initialized with state encoded in ``fen``.

        Raises:
            ValueError: If ``fen`` is empty, has the wrong number of fields, or
                contains invalid piece placement, castling rights, en passant
                square, or move counters.

        Notes:
            Move counters are validated but not tracked. The en-passant field
            must match a pawn that could just have double-stepped.
        """
        if not fen or not isinstance(fen, str):
            raise ValueError("FEN must be a non-empty string")
        parts = fen.strip().split()
        if len(parts) != 6:
            raise ValueError("FEN must have 6 fields")
        placement, stm, castling, ep, halfmove, fullmove = parts

        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError("FEN board must have 8 ranks")
        board = cls()
        for rank_idx, rank in enumerate(ranks[::-1]):  # start from rank 1 (bottom)
            file_idx = 0
            for ch in rank:
                if ch in "12345678":
                    file_idx += int(ch)
                    continue
                piece = CHAR_TO_PIECE.get(ch.lower())
                if piece is None:
                    raise ValueError(f"invalid piece in FEN: {ch!r}")
                if file_idx >= 8:
                    raise ValueError("too many squares in FEN rank")
                color = Color.WHITE if ch.isupper() else Color.BLACK
                board.bb[piece_index(piece, color)] |= 1 << (rank_idx * 8 + file_idx)
                file_idx += 1
            if file_idx != 8:
                raise ValueError("rank does not sum to 8 squares in FEN")

        for color in Color:
            if board.bb[piece_index(Piece.KING, color)].bit_count() != 1:
                raise ValueError(f"FEN must place exactly one {color.name.lower()} king")

        if stm not in ("w", "b"):
            raise ValueError("side to move must be 'w' or 'b'")
        board.side_to_move = Color(stm)
        board.castling = CastlingRights.from_fen(castling)

        if ep != "-":
            try:
                target = str_to_position(ep)
            except ValueError as e:
                raise ValueError("invalid en passant square") from e
            # The target sits behind the pawn that just moved
            expected_rank = 6 if board.side_to_move is Color.WHITE else 3
            if target.rank != expected_rank:
                raise ValueError("invalid en passant square rank")
            direction = -1 if board.side_to_move is Color.WHITE else 1
            pawn_sq = target.delta(0, direction)
            mover = board.side_to_move.opposite()
            if pawn_sq is None or board.get_piece(pawn_sq) != (Piece.PAWN, mover):
                raise ValueError("en passant square has no pawn behind it")
            board.en_passant = pawn_sq

        try:
            halfmove_clock = int(halfmove)
            fullmove_number = int(fullmove)
        except ValueError as e:
            raise ValueError("invalid move counters in FEN") from e
        if halfmove_clock < 0 or fullmove_number <= 0:
            raise ValueError("invalid move counters in FEN")

        board.refresh_hash()
        return board

    def to_fen(self) -> str:
        """Serialize the current position into a normalized FEN string.

        Move counters are not tracked and are always written as ``0 1``.
        """
        ranks_str: List[str] = []
        for rank in range(8, 0, -1):
            run = 0
            row = []
            for file in range(1, 9):
                found = self.get_piece(Position.new(file, rank))
                if found is None:
                    run += 1
                    continue
                if run > 0:
                    row.append(str(run))
                    run = 0
                piece, color = found
                ch = PIECE_TO_CHAR[piece]
                row.append(ch.upper() if color is Color.WHITE else ch)
            if run > 0:
                row.append(str(run))
            ranks_str.append("".join(row))
        placement = "/".join(ranks_str)

        ep = "-"
        if self.en_passant is not None:
            behind = -1 if self.side_to_move is Color.WHITE else 1
            target = self.en_passant.delta(0, -behind)
            if target is not None:
                ep = str(target)
        return f"{placement} {self.side_to_move.value} {self.castling.to_fen()} {ep} 0 1"

    def copy(self) -> "Board":
        return Board(
            bb=list(self.bb),
            side_to_move=self.side_to_move,
            castling=self.castling,
            en_passant=self.en_passant,
            zobrist_hash=self.zobrist_hash,
        )

    def refresh_hash(self) -> None:
        """Recompute ``zobrist_hash`` from scratch."""
        self.zobrist_hash = zobrist.compute_hash_from_scratch(self)

    def set_piece(self, piece: Piece, color: Color, position: Position) -> None:
        """Place a piece on an empty square, keeping the hash current.

        Raises:
            ValueError: If the square is already occupied.
        """
        if self.collide(position) is not None:
            raise ValueError(f"square {position} is already occupied")
        idx = piece_index(piece, color)
        self.bb[idx] |= position.to_bit_mask()
        self.zobrist_hash ^= zobrist.ZOBRIST.piece_square[idx][position.index]

    # --- queries ---
    def get_piece(self, position: Position) -> Optional[Tuple[Piece, Color]]:
        mask = position.to_bit_mask()
        for idx, slot in enumerate(SLOTS):
            if self.bb[idx] & mask:
                return slot
        return None

    def get_piece_type(self, position: Position, color: Color) -> Piece:
        """Return the piece of ``color`` on ``position``; faults if there is none."""
        mask = position.to_bit_mask()
        offset = 0 if color is Color.WHITE else 6
        for piece in Piece:
            if self.bb[offset + piece.value] & mask:
                return piece
        raise InvariantError(f"no {color.name.lower()} piece on {position}")

    def get_piece_mask(self, piece: Piece, color: Color) -> int:
        return self.bb[piece_index(piece, color)]

    def get_piece_positions(self, piece: Piece, color: Color) -> List[Position]:
        return bit_mask_to_positions(self.bb[piece_index(piece, color)])

    def king_position(self, color: Color) -> Position:
        kings = self.bb[piece_index(Piece.KING, color)]
        if kings == 0:
            raise InvariantError(f"{color.name.lower()} king is missing from the board")
        return SQUARES[(kings & -kings).bit_length() - 1]

    def color_mask(self, color: Color) -> int:
        offset = 0 if color is Color.WHITE else 6
        bb = self.bb
        return (
            bb[offset] | bb[offset + 1] | bb[offset + 2]
            | bb[offset + 3] | bb[offset + 4] | bb[offset + 5]
        )

    def occupancy(self) -> int:
        return self.color_mask(Color.WHITE) | self.color_mask(Color.BLACK)

    def collide(self, position: Position) -> Optional[Color]:
        """Color occupying ``position``, or None if the square is empty."""
        mask = position.to_bit_mask()
        if self.color_mask(Color.WHITE) & mask:
            return Color.WHITE
        if self.color_mask(Color.BLACK) & mask:
            return Color.BLACK
        return None

    def collide_mask(self, mask: int) -> int:
        """Subset of ``mask`` occupied by either color."""
        return self.occupancy() & mask

    def collide_mask_color(self, mask: int, color: Color) -> int:
        """Subset of ``mask`` occupied by ``color``."""
        return self.color_mask(color) & mask

    # --- mutation ---
    def apply_move(self, move: Move) -> "Board":
        """Return a new Board with ``move`` applied; this board is unchanged."""
        new_board = self.copy()
        new_board.apply_move_mut(move)
        return new_board

    def apply_move_mut(self, move: Move) -> None:
        """Apply ``move`` in place, updating the hash incrementally.

        The move must come from the generator for this exact position; its
        snapshot fields are trusted, not re-derived.
        """
        mover = self.side_to_move
        opponent = mover.opposite()
        bb = self.bb
        from_bit = move.from_sq.to_bit_mask()
        to_bit = move.to_sq.to_bit_mask()

        self.zobrist_hash = zobrist.apply_move(self.zobrist_hash, self.castling, move, mover)

        if move.kind is MoveKind.CAPTURE:
            victim = piece_index(move.captured, opponent)
            if not bb[victim] & to_bit:
                raise InvariantError(f"no {move.captured.name.lower()} to capture on {move.to_sq}")
            bb[victim] &= ~to_bit
        elif move.kind is MoveKind.EN_PASSANT:
            victim_sq = en_passant_victim_square(move, mover)
            bb[piece_index(Piece.PAWN, opponent)] &= ~victim_sq.to_bit_mask()
        elif move.kind is MoveKind.CASTLING:
            rook_from, rook_to = castling_rook_squares(move)
            rook = piece_index(Piece.ROOK, mover)
            bb[rook] = (bb[rook] & ~rook_from.to_bit_mask()) | rook_to.to_bit_mask()

        moving = piece_index(move.piece, mover)
        bb[moving] &= ~from_bit
        landing = moving if move.promotion is None else piece_index(move.promotion, mover)
        bb[landing] |= to_bit

        self.en_passant = move.to_sq if move.is_double_step() else None
        self.castling = self.castling.after_move(move, mover)
        self.side_to_move = opponent

    def unapply_move_mut(self, move: Move) -> None:
        """Exact inverse of ``apply_move_mut`` for the most recent ``move``."""
        to_move = self.side_to_move
        mover = to_move.opposite()
        bb = self.bb
        from_bit = move.from_sq.to_bit_mask()
        to_bit = move.to_sq.to_bit_mask()

        self.zobrist_hash = zobrist.unapply_move(self.zobrist_hash, self.castling, move, to_move)

        moving = piece_index(move.piece, mover)
        landing = moving if move.promotion is None else piece_index(move.promotion, mover)
        bb[landing] &= ~to_bit
        bb[moving] |= from_bit

        if move.kind is MoveKind.CAPTURE:
            bb[piece_index(move.captured, to_move)] |= to_bit
        elif move.kind is MoveKind.EN_PASSANT:
            victim_sq = en_passant_victim_square(move, mover)
            bb[piece_index(Piece.PAWN, to_move)] |= victim_sq.to_bit_mask()
        elif move.kind is MoveKind.CASTLING:
            rook_from, rook_to = castling_rook_squares(move)
            rook = piece_index(Piece.ROOK, mover)
            bb[rook] = (bb[rook] & ~rook_to.to_bit_mask()) | rook_from.to_bit_mask()

        self.en_passant = move.last_en_passant
        self.castling = move.last_castling
        self.side_to_move = mover

    # --- rendering ---
    def to_string(self) -> str:
        """Render the board as 8 rows of glyphs, rank 8 first, files a..h."""
        rows = []
        for rank in range(8, 0, -1):
            row = []
            for file in range(1, 9):
                found = self.get_piece(Position.new(file, rank))
                row.append(" " if found is None else GLYPHS[found])
            rows.append("".join(row))
        return "\n".join(rows)

    def __str__(self) -> str:
        return self.to_string()
