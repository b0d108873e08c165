from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .board import Board
from .move import Move, parse_uci
from .movegen import GeneratedMoves, MoveGenerator, default_generator


@dataclass
class Game:
    """Game wrapper around a board with helper operations.

    Responsibility: track board state, expose legal moves, apply and undo
    moves. Moves are only ever applied through the generator's legal list.
    """

    board: Board
    generator: MoveGenerator = field(default_factory=default_generator, repr=False)
    move_stack: List[Move] = field(default_factory=list)

    @classmethod
    def new(cls) -> "Game":
        return cls(board=Board.new())

    @classmethod
    def from_fen(cls, fen: str) -> "Game":
        return cls(board=Board.from_fen(fen))

    def to_fen(self) -> str:
        return self.board.to_fen()

    def status(self) -> GeneratedMoves:
        return self.generator.generate_moves(self.board)

    def legal_moves(self) -> List[Move]:
        return self.status().moves

    def apply_move(self, move: Move) -> None:
        """Apply ``move`` after checking it against the legal move list.

        Raises:
            ValueError: If ``move`` is not legal in the current position.
        """
        if move not in self.legal_moves():
            raise ValueError(f"illegal move: {move.to_uci()}")
        self.board.apply_move_mut(move)
        self.move_stack.append(move)

    def apply_uci(self, text: str) -> Move:
        """Parse a square-pair token, then apply the matching legal move.

        Raises:
            ValueError: If the token is malformed or names no legal move.
        """
        uci = parse_uci(text.strip())
        move = self.generator.get_move(self.board, uci.from_sq, uci.to_sq, uci.promotion)
        if move is None:
            raise ValueError(f"illegal move: {text.strip()}")
        self.board.apply_move_mut(move)
        self.move_stack.append(move)
        return move

    def undo_move(self) -> Move:
        if not self.move_stack:
            raise ValueError("no moves to undo")
        last = self.move_stack.pop()
        self.board.unapply_move_mut(last)
        return last

    # --- State flags for protocol ---
    def in_check(self) -> bool:
        return self.generator.is_check(self.board, self.board.side_to_move)

    def checkmate(self) -> bool:
        return self.status().is_checkmate()

    def stalemate(self) -> bool:
        return self.status().is_stalemate()

    def move_history_uci(self) -> List[str]:
        return [m.to_uci() for m in self.move_stack]
