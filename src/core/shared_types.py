"""
Type definitions used across layers
"""

from enum import Enum, IntEnum, StrEnum


class Tile(IntEnum):
    """A single cell on the board. Values are the tag bytes used in the account layout."""

    EMPTY = 0
    MARK_A = 1
    MARK_B = 2


class StateTag(IntEnum):
    """Discriminant byte of the game state in the account layout."""

    UNACCEPTED = 0
    ONGOING = 1
    OVER = 2
    DRAW = 3


class InstructionVariant(IntEnum):
    """First byte of every instruction sent to the game program."""

    CREATE = 0
    ACCEPT = 1
    PLAY = 2
    CANCEL = 3
    CLOSE = 4


class SessionPhase(Enum):
    AWAITING_ACCEPTANCE = "awaiting acceptance"
    LOCAL_MOVE = "local move"
    REMOTE_MOVE = "remote move"
    TERMINAL = "terminal"


class Outcome(StrEnum):
    WON = "won"
    LOST = "lost"
    DRAW = "draw"


class PlayerRole(StrEnum):
    """Slot a player occupies. The creator always sits in slot 0."""

    CREATOR = "creator"
    ACCEPTOR = "acceptor"


class SettlementKind(StrEnum):
    WINNER_TAKES_STAKE = "winner takes stake"
    SPLIT_REFUND = "split refund"
    CANCEL_REFUND = "cancel refund"
