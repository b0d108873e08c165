from __future__ import annotations

from typing import Iterator, List

import pytest

from negachess.cli.play import CommandLineGame, parse_player_move
from negachess.config import SearchConfig
from negachess.engine.game import Game
from negachess.engine.position import Color
from negachess.search.service import SearchService


def _scripted(lines: List[str]):
    it: Iterator[str] = iter(lines)

    def read(prompt: str) -> str:
        return next(it)

    return read


def _game(lines: List[str], out: List[str], game: Game | None = None) -> CommandLineGame:
    return CommandLineGame(
        engine_color=Color.BLACK,
        search=SearchService(SearchConfig(tt_capacity=1_000)),
        depth=1,
        game=game,
        read=_scripted(lines),
        write=out.append,
    )


@pytest.mark.parametrize(
    "line,expected",
    [("e2 e4", "e2e4"), ("e2e4", "e2e4"), ("  a7a8q \n", "a7a8q")],
)
def test_parse_player_move(line: str, expected: str) -> None:
    assert parse_player_move(line) == expected


@pytest.mark.parametrize("line", ["", "   ", "e2 e4 e5"])
def test_parse_player_move_rejects_wrong_word_count(line: str) -> None:
    with pytest.raises(ValueError):
        parse_player_move(line)


def test_player_retries_until_a_legal_move() -> None:
    out: List[str] = []
    cli = _game(["xx", "e2e5", "e2 e4"], out)
    assert cli.proceed() is True
    assert any(line.startswith("Bad coordinates") for line in out)
    assert "Move is not valid" in out
    assert cli.game.move_history_uci() == ["e2e4"]


def test_engine_replies_on_its_turn() -> None:
    out: List[str] = []
    cli = _game(["e2e4"], out)
    cli.proceed()
    assert cli.proceed() is True
    replies = [line for line in out if line.startswith("Engine plays ")]
    assert len(replies) == 1
    assert cli.game.move_history_uci()[1] == replies[0].split()[-1]
    assert cli.game.board.side_to_move is Color.WHITE


def test_checkmate_ends_the_game() -> None:
    out: List[str] = []
    game = Game.from_fen("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 0 1")
    cli = _game([], out, game=game)
    cli.run()
    assert out[-1] == "Checkmate, black wins"


def test_stalemate_ends_the_game() -> None:
    out: List[str] = []
    game = Game.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    cli = _game([], out, game=game)
    assert cli.proceed() is False
    assert out[-1] == "Stalemate"
