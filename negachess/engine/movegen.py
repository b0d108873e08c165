from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Optional, Tuple

from . import attack_trace
from .board import Board
from .move import Move, MoveKind
from .position import Color, Piece, Position, SQUARES, iter_bits, piece_index


MASK64 = 0xFFFFFFFFFFFFFFFF
MASK_FILE1 = 0x0101010101010101
MASK_FILE8 = MASK_FILE1 << 7
MASK_RANK3 = 0xFF << 16
MASK_RANK6 = 0xFF << 40
MASK_RANK1 = 0xFF
MASK_RANK8 = 0xFF << 56

PROMOTION_ORDER = (Piece.QUEEN, Piece.ROOK, Piece.BISHOP, Piece.KNIGHT)

# Rays as square indices, one tuple of rays per origin square
IndexRays = Tuple[Tuple[Tuple[int, ...], ...], ...]


def _index_rays(trace: attack_trace.Trace) -> IndexRays:
    return tuple(tuple(tuple(sq.index for sq in ray) for ray in rays) for rays in trace)


@dataclass
class GeneratedMoves:
    """Legal moves for the side to move plus its check status."""

    moves: List[Move]
    is_check: bool

    def is_checkmate(self) -> bool:
        return self.is_check and not self.moves

    def is_stalemate(self) -> bool:
        return not self.is_check and not self.moves

    def __iter__(self) -> Iterator[Move]:
        return iter(self.moves)

    def __len__(self) -> int:
        return len(self.moves)


class MoveGenerator:
    """Legal move generation over precomputed attack traces.

    Legality is a two-pass scheme: pseudo-legal moves are generated per piece
    type, then each one is made on the board, the opponent's threat mask is
    checked against the mover's king, and the move is unmade.
    """

    def __init__(self) -> None:
        self.rook_rays = _index_rays(attack_trace.attack_trace_for_rook())
        self.bishop_rays = _index_rays(attack_trace.attack_trace_for_bishop())
        self.queen_rays = _index_rays(attack_trace.attack_trace_for_queen())
        knight = attack_trace.attack_trace_for_knight()
        king = attack_trace.attack_trace_for_king()
        self.knight_targets = tuple(attack_trace.trace_mask(rays) for rays in knight)
        self.king_targets = tuple(attack_trace.trace_mask(rays) for rays in king)

    # --- public API ---
    def generate_moves(self, board: Board) -> GeneratedMoves:
        """Return all legal moves for the side to move.

        The board is mutated while filtering but is restored before returning.

        Raises:
            InvariantError: If the side to move has no king.
        """
        mover = board.side_to_move
        opponent = mover.opposite()
        is_check = self.is_check(board, mover)
        legal: List[Move] = []
        for move in self.generate_moves_unchecked(board):
            board.apply_move_mut(move)
            king = board.king_position(mover).to_bit_mask()
            if not king & self.generate_threats(board, opponent):
                legal.append(move)
            board.unapply_move_mut(move)
        return GeneratedMoves(legal, is_check)

    def get_move(
        self,
        board: Board,
        from_sq: Position,
        to_sq: Position,
        promotion: Optional[Piece] = None,
    ) -> Optional[Move]:
        """Find the legal move between two squares.

        With ``promotion`` left as None the first matching move is returned,
        which for a promoting pawn is the queen promotion.
        """
        for move in self.generate_moves(board):
            if move.from_sq != from_sq or move.to_sq != to_sq:
                continue
            if promotion is None or move.promotion is promotion:
                return move
        return None

    def is_check(self, board: Board, color: Color) -> bool:
        """True if ``color``'s king is attacked; faults if it has no king."""
        king = board.king_position(color).to_bit_mask()
        return bool(king & self.generate_threats(board, color.opposite()))

    def is_attacked(self, board: Board, mask: int, by: Color) -> bool:
        """True if any square of ``mask`` is attacked by ``by``."""
        return bool(mask & self.generate_threats(board, by))

    def generate_threats(self, board: Board, color: Color) -> int:
        """Bitmask of squares attacked by ``color``.

        Pawns contribute their diagonal attack squares whether or not they
        are occupied; pawn pushes and castling never attack.
        """
        bb = board.bb
        own = board.color_mask(color)
        occupied = own | board.color_mask(color.opposite())
        offset = 0 if color is Color.WHITE else 6
        threats = 0

        threats |= self._slider_reach(bb[offset + Piece.QUEEN.value], self.queen_rays, occupied)
        threats |= self._slider_reach(bb[offset + Piece.ROOK.value], self.rook_rays, occupied)
        threats |= self._slider_reach(bb[offset + Piece.BISHOP.value], self.bishop_rays, occupied)
        for sq in iter_bits(bb[offset + Piece.KNIGHT.value]):
            threats |= self.knight_targets[sq]
        for sq in iter_bits(bb[offset + Piece.KING.value]):
            threats |= self.king_targets[sq]
        threats &= ~own

        threats |= _pawn_attacks(bb[offset + Piece.PAWN.value], color)
        return threats

    def generate_moves_unchecked(self, board: Board) -> List[Move]:
        """Pseudo-legal moves for the side to move; may leave the king in check."""
        mover = board.side_to_move
        opponent = mover.opposite()
        own = board.color_mask(mover)
        enemy = board.color_mask(opponent)
        moves: List[Move] = []
        for piece, rays in (
            (Piece.QUEEN, self.queen_rays),
            (Piece.ROOK, self.rook_rays),
            (Piece.BISHOP, self.bishop_rays),
        ):
            self._slider_moves(board, piece, rays, own, enemy, moves)
        self._jump_moves(board, Piece.KNIGHT, self.knight_targets, own, enemy, moves)
        self._pawn_moves(board, own | enemy, enemy, moves)
        self._jump_moves(board, Piece.KING, self.king_targets, own, enemy, moves)
        self._castling_moves(board, own | enemy, moves)
        return moves

    # --- piece generators ---
    def _make(
        self,
        board: Board,
        piece: Piece,
        kind: MoveKind,
        from_idx: int,
        to_idx: int,
        captured: Optional[Piece] = None,
        promotion: Optional[Piece] = None,
    ) -> Move:
        return Move(
            piece=piece,
            kind=kind,
            from_sq=SQUARES[from_idx],
            to_sq=SQUARES[to_idx],
            captured=captured,
            promotion=promotion,
            last_en_passant=board.en_passant,
            last_castling=board.castling,
        )

    def _capture_or_step(
        self, board: Board, piece: Piece, from_idx: int, to_idx: int, enemy: int
    ) -> Move:
        if enemy & (1 << to_idx):
            captured = board.get_piece_type(SQUARES[to_idx], board.side_to_move.opposite())
            return self._make(board, piece, MoveKind.CAPTURE, from_idx, to_idx, captured)
        return self._make(board, piece, MoveKind.STEP, from_idx, to_idx)

    def _slider_moves(
        self,
        board: Board,
        piece: Piece,
        rays: IndexRays,
        own: int,
        enemy: int,
        moves: List[Move],
    ) -> None:
        for from_idx in iter_bits(board.bb[piece_index(piece, board.side_to_move)]):
            for ray in rays[from_idx]:
                for to_idx in ray:
                    bit = 1 << to_idx
                    if own & bit:
                        break
                    moves.append(self._capture_or_step(board, piece, from_idx, to_idx, enemy))
                    if enemy & bit:
                        break

    def _jump_moves(
        self,
        board: Board,
        piece: Piece,
        targets: Tuple[int, ...],
        own: int,
        enemy: int,
        moves: List[Move],
    ) -> None:
        for from_idx in iter_bits(board.bb[piece_index(piece, board.side_to_move)]):
            for to_idx in iter_bits(targets[from_idx] & ~own):
                moves.append(self._capture_or_step(board, piece, from_idx, to_idx, enemy))

    def _pawn_moves(self, board: Board, occupied: int, enemy: int, moves: List[Move]) -> None:
        mover = board.side_to_move
        pawns = board.bb[piece_index(Piece.PAWN, mover)]
        empty = ~occupied & MASK64
        if mover is Color.WHITE:
            single = (pawns << 8) & empty
            double = ((single & MASK_RANK3) << 8) & empty
            step, last_rank = 8, MASK_RANK8
            captures = (
                (((pawns << 7) & ~MASK_FILE8) & enemy, 7),
                (((pawns << 9) & ~MASK_FILE1) & enemy, 9),
            )
        else:
            single = (pawns >> 8) & empty
            double = ((single & MASK_RANK6) >> 8) & empty
            step, last_rank = -8, MASK_RANK1
            captures = (
                (((pawns >> 9) & ~MASK_FILE8) & enemy, -9),
                (((pawns >> 7) & ~MASK_FILE1) & enemy, -7),
            )

        for to_idx in iter_bits(single):
            from_idx = to_idx - step
            if last_rank & (1 << to_idx):
                for promo in PROMOTION_ORDER:
                    moves.append(
                        self._make(board, Piece.PAWN, MoveKind.STEP, from_idx, to_idx, promotion=promo)
                    )
            else:
                moves.append(self._make(board, Piece.PAWN, MoveKind.STEP, from_idx, to_idx))
        for to_idx in iter_bits(double):
            moves.append(self._make(board, Piece.PAWN, MoveKind.STEP, to_idx - 2 * step, to_idx))

        opponent = mover.opposite()
        for targets, shift in captures:
            for to_idx in iter_bits(targets):
                from_idx = to_idx - shift
                captured = board.get_piece_type(SQUARES[to_idx], opponent)
                if last_rank & (1 << to_idx):
                    for promo in PROMOTION_ORDER:
                        moves.append(
                            self._make(
                                board, Piece.PAWN, MoveKind.CAPTURE, from_idx, to_idx, captured, promo
                            )
                        )
                else:
                    moves.append(
                        self._make(board, Piece.PAWN, MoveKind.CAPTURE, from_idx, to_idx, captured)
                    )

        ep = board.en_passant
        if ep is None:
            return
        target = ep.delta(0, 1 if mover is Color.WHITE else -1)
        if target is None or occupied & target.to_bit_mask():
            return
        for df in (-1, 1):
            attacker = ep.delta(df, 0)
            if attacker is not None and pawns & attacker.to_bit_mask():
                moves.append(
                    self._make(board, Piece.PAWN, MoveKind.EN_PASSANT, attacker.index, target.index)
                )

    def _castling_moves(self, board: Board, occupied: int, moves: List[Move]) -> None:
        mover = board.side_to_move
        rights = board.castling
        king_side = rights.king_side(mover)
        queen_side = rights.queen_side(mover)
        if not (king_side or queen_side):
            return
        base = 0 if mover is Color.WHITE else 56
        king_home = base + 4
        if not board.bb[piece_index(Piece.KING, mover)] & (1 << king_home):
            return
        rooks = board.bb[piece_index(Piece.ROOK, mover)]
        threats: Optional[int] = None

        if king_side and rooks & (1 << (base + 7)):
            between = (1 << (base + 5)) | (1 << (base + 6))
            transit = (1 << king_home) | between
            if not occupied & between:
                threats = self.generate_threats(board, mover.opposite())
                if not threats & transit:
                    moves.append(
                        self._make(board, Piece.KING, MoveKind.CASTLING, king_home, base + 6)
                    )
        if queen_side and rooks & (1 << base):
            between = (1 << (base + 1)) | (1 << (base + 2)) | (1 << (base + 3))
            transit = (1 << king_home) | (1 << (base + 3)) | (1 << (base + 2))
            if not occupied & between:
                if threats is None:
                    threats = self.generate_threats(board, mover.opposite())
                if not threats & transit:
                    moves.append(
                        self._make(board, Piece.KING, MoveKind.CASTLING, king_home, base + 2)
                    )

    @staticmethod
    def _slider_reach(pieces: int, rays: IndexRays, occupied: int) -> int:
        reach = 0
        for from_idx in iter_bits(pieces):
            for ray in rays[from_idx]:
                for to_idx in ray:
                    bit = 1 << to_idx
                    reach |= bit
                    if occupied & bit:
                        break
        return reach


def _pawn_attacks(pawns: int, color: Color) -> int:
    if color is Color.WHITE:
        return (((pawns << 7) & ~MASK_FILE8) | ((pawns << 9) & ~MASK_FILE1)) & MASK64
    return ((pawns >> 9) & ~MASK_FILE8) | ((pawns >> 7) & ~MASK_FILE1)


@lru_cache(maxsize=1)
def default_generator() -> MoveGenerator:
    """Process-wide generator; its traces are read-only once built."""
    return MoveGenerator()
