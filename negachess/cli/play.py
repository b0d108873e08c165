from __future__ import annotations

from typing import Callable, Optional

from ..engine.game import Game
from ..engine.move import Move, parse_uci
from ..engine.position import Color
from ..search.service import SearchService


def parse_player_move(line: str) -> str:
    """Normalize ``"e2 e4"`` or ``"e2e4"`` style input to one token.

    Raises:
        ValueError: If the line does not hold one or two words.
    """
    words = line.split()
    if len(words) == 2:
        return words[0] + words[1]
    if len(words) == 1:
        return words[0]
    raise ValueError("enter a move such as 'e2 e4' or 'e7e8q'")


class CommandLineGame:
    """Human versus engine game on a terminal.

    ``read`` and ``write`` default to ``input`` and ``print`` so the loop can
    be driven from tests.
    """

    def __init__(
        self,
        engine_color: Color = Color.BLACK,
        search: Optional[SearchService] = None,
        depth: Optional[int] = None,
        movetime_ms: Optional[int] = None,
        game: Optional[Game] = None,
        read: Callable[[str], str] = input,
        write: Callable[[str], None] = print,
    ) -> None:
        self.engine_color = engine_color
        self.search = search or SearchService()
        self.depth = depth
        self.movetime_ms = movetime_ms
        self.game = game or Game.new()
        self._read = read
        self._write = write

    def run(self) -> None:
        while self.proceed():
            pass

    def proceed(self) -> bool:
        """Play one ply; False once the game has ended."""
        self._write(self.game.board.to_string())
        status = self.game.status()
        if status.is_checkmate():
            winner = self.game.board.side_to_move.opposite()
            self._write(f"Checkmate, {winner.name.lower()} wins")
            return False
        if status.is_stalemate():
            self._write("Stalemate")
            return False
        if status.is_check:
            self._write("Check")

        if self.game.board.side_to_move is self.engine_color:
            result = self.search.search(
                self.game.board, depth=self.depth, movetime_ms=self.movetime_ms
            )
            if result.best_move is None:
                self._write("Game over")
                return False
            self.game.apply_move(result.best_move)
            self._write(f"Engine plays {result.best_move.to_uci()}")
        else:
            self.game.apply_move(self.read_player_move())
        return True

    def read_player_move(self) -> Move:
        while True:
            line = self._read("Your move: ")
            try:
                uci = parse_uci(parse_player_move(line))
            except ValueError as e:
                self._write(f"Bad coordinates: {e}")
                continue
            move = self.game.generator.get_move(
                self.game.board, uci.from_sq, uci.to_sq, uci.promotion
            )
            if move is None:
                self._write("Move is not valid")
                continue
            return move
