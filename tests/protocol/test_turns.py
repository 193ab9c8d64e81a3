"""Unit tests for src/protocol/turns.py"""

import pytest

from src.core.exceptions import NotAPlayerError
from src.core.shared_types import PlayerRole
from src.protocol.turns import (
    is_slot_to_move,
    is_turn_of,
    other_slot,
    role_of,
    slot_of,
    slot_to_move,
)
from tests.fakes import game_account, make_address

CREATOR = make_address(1)
ACCEPTOR = make_address(2)


@pytest.mark.parametrize("turns, slot", [(t, t % 2) for t in range(10)])
def test_parity_decides_who_moves(turns: int, slot: int) -> None:
    assert slot_to_move(turns) == slot
    assert is_slot_to_move(turns, slot)
    assert not is_slot_to_move(turns, other_slot(slot))


def test_slots_and_roles() -> None:
    account = game_account(CREATOR, ACCEPTOR)
    assert slot_of(account, CREATOR) == 0
    assert slot_of(account, ACCEPTOR) == 1
    assert role_of(account, CREATOR) == PlayerRole.CREATOR
    assert role_of(account, ACCEPTOR) == PlayerRole.ACCEPTOR
    with pytest.raises(NotAPlayerError):
        slot_of(account, make_address(3))


def test_is_turn_of() -> None:
    """Creator moves on even turn counters, acceptor on odd ones."""
    assert is_turn_of(game_account(CREATOR, ACCEPTOR, turns=0), CREATOR)
    assert not is_turn_of(game_account(CREATOR, ACCEPTOR, turns=0), ACCEPTOR)
    assert is_turn_of(game_account(CREATOR, ACCEPTOR, turns=3), ACCEPTOR)
