from __future__ import annotations

import pytest

from negachess.engine.move import parse_uci, position_to_str, str_to_position
from negachess.engine.position import Piece, Position


def test_parse_plain_and_promotion_moves() -> None:
    mv = parse_uci("e2e4")
    assert mv.from_sq == Position.new(5, 2)
    assert mv.to_sq == Position.new(5, 4)
    assert mv.promotion is None
    assert mv.to_uci() == "e2e4"

    promo = parse_uci("e7e8q")
    assert promo.promotion is Piece.QUEEN
    assert promo.to_uci() == "e7e8q"
    assert parse_uci("a2a1n").promotion is Piece.KNIGHT


@pytest.mark.parametrize("text", ["", "e2", "e2e", "e2e4qq"])
def test_wrong_length_is_rejected(text: str) -> None:
    with pytest.raises(ValueError, match="4 or 5"):
        parse_uci(text)


def test_bad_file_rank_and_promotion_are_described() -> None:
    with pytest.raises(ValueError, match="invalid file"):
        parse_uci("i2e4")
    with pytest.raises(ValueError, match="rank out of range"):
        parse_uci("e9e4")
    with pytest.raises(ValueError, match="invalid rank"):
        parse_uci("e2ex")
    with pytest.raises(ValueError, match="cannot promote"):
        parse_uci("e7e8k")


def test_combined_file_and_rank_error() -> None:
    with pytest.raises(ValueError) as exc:
        str_to_position("zz")
    assert "invalid file" in str(exc.value)
    assert "invalid rank" in str(exc.value)


def test_position_round_trip_names() -> None:
    for name in ("a1", "h8", "d5"):
        assert position_to_str(str_to_position(name)) == name
