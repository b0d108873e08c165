from __future__ import annotations

import pytest

from negachess.engine.position import (
    InvariantError,
    Position,
    SQUARES,
    bit_mask_to_positions,
    iter_bits,
)


def test_index_and_coordinates_agree() -> None:
    e4 = Position.new(5, 4)
    assert e4.index == 28
    assert (e4.file, e4.rank) == (5, 4)
    assert str(e4) == "e4"
    assert Position.from_index(28) is e4
    assert SQUARES[0] == Position.new(1, 1)
    assert str(SQUARES[63]) == "h8"


@pytest.mark.parametrize("file,rank", [(0, 1), (9, 1), (1, 0), (1, 9)])
def test_out_of_range_construction_is_fatal(file: int, rank: int) -> None:
    with pytest.raises(InvariantError):
        Position.new(file, rank)


def test_invariant_error_is_an_assertion() -> None:
    with pytest.raises(AssertionError):
        Position(64)


def test_delta_stays_on_board_or_returns_none() -> None:
    a1 = Position.new(1, 1)
    h8 = Position.new(8, 8)
    assert a1.delta(1, 1) == Position.new(2, 2)
    assert a1.delta(-1, 0) is None
    assert a1.delta(0, -1) is None
    assert h8.delta(0, 1) is None
    assert h8.delta(1, 0) is None
    # Wrapping across the h/a edge must not happen
    assert Position.new(8, 3).delta(1, 0) is None


def test_mirror_rank() -> None:
    assert Position.new(5, 2).mirror_rank() == Position.new(5, 7)
    assert Position.new(1, 1).mirror_rank() == Position.new(1, 8)


def test_bit_helpers() -> None:
    assert list(iter_bits(0b1010)) == [1, 3]
    assert bit_mask_to_positions(0b101) == [Position.new(1, 1), Position.new(3, 1)]
    assert Position.new(8, 8).to_bit_mask() == 1 << 63
