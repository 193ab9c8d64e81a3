"""
Whose turn is it?

The account stores no "current player" field: the turn counter's parity decides. Even -> creator (slot 0),
odd -> acceptor (slot 1). Keep every parity decision in this module.
"""

from src.core.exceptions import NotAPlayerError
from src.core.shared_types import PlayerRole
from src.protocol.account import GameAccount
from src.protocol.address import Address

SLOT_ROLES: tuple[PlayerRole, PlayerRole] = (PlayerRole.CREATOR, PlayerRole.ACCEPTOR)


def slot_to_move(turns: int) -> int:
    return turns % 2


def slot_of(account: GameAccount, identity: Address) -> int:
    """Index of the local identity in the players pair"""
    if identity == account.creator:
        return 0
    if identity == account.acceptor:
        return 1
    raise NotAPlayerError(f"{identity} is not a player in this game.")


def role_of(account: GameAccount, identity: Address) -> PlayerRole:
    return SLOT_ROLES[slot_of(account, identity)]


def is_slot_to_move(turns: int, slot: int) -> bool:
    return slot_to_move(turns) == slot


def is_turn_of(account: GameAccount, identity: Address) -> bool:
    return is_slot_to_move(account.turns, slot_of(account, identity))


def other_slot(slot: int) -> int:
    return 1 - slot
