"""
Binary layout of the Game account owned by the game program.

Layout (byte order matters, the program reads/writes exactly this):
* players[0] (creator)               32 bytes
* players[1] (acceptor)              32 bytes
* board, row-major                   9 x 1 byte tile tag (0 empty, 1 mark A, 2 mark B)
* state discriminant                 1 byte (0 unaccepted, 1 ongoing, 2 over, 3 draw)
* winner                             32 bytes, ONLY present when the state is "over"
* turns                              1 byte
* stake mint                         32 bytes
* stake amount                       8 bytes, little-endian unsigned
* is_initialized                     1 byte bool

The program allocates GAME_ACCOUNT_SPACE bytes (room for the winner), so layouts without a winner are zero padded.
"""

import struct
from dataclasses import dataclass, field
from typing import Optional, Self

from src.core.exceptions import DecodeError, NotAPlayerError
from src.core.shared_types import StateTag, Tile
from src.protocol.address import ADDRESS_LENGTH, Address
from src.protocol.board import BOARD_SIZE, Board

MAX_TURNS = BOARD_SIZE * BOARD_SIZE

CREATOR_OFFSET = 0
ACCEPTOR_OFFSET = CREATOR_OFFSET + ADDRESS_LENGTH
BOARD_OFFSET = ACCEPTOR_OFFSET + ADDRESS_LENGTH
STATE_OFFSET = BOARD_OFFSET + MAX_TURNS
# everything after the state has a fixed size
TAIL_SIZE = 1 + ADDRESS_LENGTH + 8 + 1
BASE_ACCOUNT_SIZE = STATE_OFFSET + 1 + TAIL_SIZE
GAME_ACCOUNT_SPACE = BASE_ACCOUNT_SIZE + ADDRESS_LENGTH
# position of the is_initialized flag when no winner is stored (unaccepted / ongoing games)
UNSETTLED_INITIALIZED_OFFSET = BASE_ACCOUNT_SIZE - 1

U64 = struct.Struct("<Q")
U64_MAX = 2**64 - 1


# --- Game state: one class per arm of the tagged union ---
@dataclass(frozen=True)
class Unaccepted:
    tag: StateTag = field(default=StateTag.UNACCEPTED, init=False)


@dataclass(frozen=True)
class Ongoing:
    tag: StateTag = field(default=StateTag.ONGOING, init=False)


@dataclass(frozen=True)
class Over:
    winner: Address
    tag: StateTag = field(default=StateTag.OVER, init=False)


@dataclass(frozen=True)
class Draw:
    tag: StateTag = field(default=StateTag.DRAW, init=False)


GameState = Unaccepted | Ongoing | Over | Draw


@dataclass(frozen=True)
class GameAccount:
    players: tuple[Address, Address]
    board: Board
    state: GameState
    turns: int
    stake_mint: Address
    stake_amount: int
    is_initialized: bool

    @property
    def creator(self) -> Address:
        return self.players[0]

    @property
    def acceptor(self) -> Address:
        return self.players[1]

    @property
    def turns_remaining(self) -> int:
        return MAX_TURNS - self.turns

    def is_ongoing_or_pending(self) -> bool:
        return self.is_initialized and isinstance(self.state, (Unaccepted, Ongoing))

    def is_finished(self) -> bool:
        return self.is_initialized and isinstance(self.state, (Over, Draw))

    def opponent_of(self, identity: Address) -> Address:
        """Whichever of the two player slots is not the local identity."""
        if identity == self.creator:
            return self.acceptor
        if identity == self.acceptor:
            return self.creator
        raise NotAPlayerError(f"{identity} is not a player in this game.")

    @classmethod
    def new(
        cls, creator: Address, acceptor: Address, stake_mint: Address, stake_amount: int
    ) -> Self:
        """Account as written by a create instruction"""
        return cls(
            players=(creator, acceptor),
            board=Board.empty(),
            state=Unaccepted(),
            turns=0,
            stake_mint=stake_mint,
            stake_amount=stake_amount,
            is_initialized=True,
        )


class _Reader:
    """Cursor over a buffer. Every failure is a DecodeError."""

    def __init__(self, buffer: bytes) -> None:
        self.buffer = bytes(buffer)
        self.offset = 0

    def take(self, size: int) -> bytes:
        end = self.offset + size
        if end > len(self.buffer):
            raise DecodeError(
                f"Buffer too short: need {end} bytes, have {len(self.buffer)}"
            )
        chunk = self.buffer[self.offset : end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u64(self) -> int:
        return U64.unpack(self.take(U64.size))[0]

    def address(self) -> Address:
        return Address(self.take(ADDRESS_LENGTH))

    def boolean(self) -> bool:
        value = self.u8()
        if value not in (0, 1):
            raise DecodeError(f"Invalid boolean byte: {value}")
        return value == 1

    def remaining(self) -> bytes:
        return self.buffer[self.offset :]


def _decode_tile(tag: int) -> Tile:
    try:
        return Tile(tag)
    except ValueError:
        raise DecodeError(f"Invalid tile tag: {tag}") from None


def _decode_state(reader: _Reader) -> GameState:
    tag = reader.u8()
    match tag:
        case StateTag.UNACCEPTED:
            return Unaccepted()
        case StateTag.ONGOING:
            return Ongoing()
        case StateTag.OVER:
            return Over(winner=reader.address())
        case StateTag.DRAW:
            return Draw()
    raise DecodeError(f"Invalid state discriminant: {tag}")


def decode_game_account(buffer: Optional[bytes]) -> GameAccount:
    """Decode a game account. Raises DecodeError (and nothing else) when the buffer does not follow the layout."""
    if buffer is None:
        raise DecodeError("No account data")

    reader = _Reader(buffer)
    players = (reader.address(), reader.address())
    tiles = [_decode_tile(tag) for tag in reader.take(MAX_TURNS)]
    board = Board.from_rows(
        [tiles[row * BOARD_SIZE : (row + 1) * BOARD_SIZE] for row in range(BOARD_SIZE)]
    )
    state = _decode_state(reader)
    turns = reader.u8()
    if turns > MAX_TURNS:
        raise DecodeError(f"Turn counter out of range: {turns}")
    stake_mint = reader.address()
    stake_amount = reader.u64()
    is_initialized = reader.boolean()

    # Only allowed leftovers: the zero padding of an account allocated at full size
    leftover = reader.remaining()
    if leftover and (len(buffer) != GAME_ACCOUNT_SPACE or any(leftover)):
        raise DecodeError(
            f"Unexpected trailing data: {len(leftover)} bytes after the game account"
        )

    return GameAccount(
        players=players,
        board=board,
        state=state,
        turns=turns,
        stake_mint=stake_mint,
        stake_amount=stake_amount,
        is_initialized=is_initialized,
    )


def try_decode_game_account(buffer: Optional[bytes]) -> Optional[GameAccount]:
    """Convenience for callers where a broken buffer simply means "not a game"."""
    try:
        return decode_game_account(buffer)
    except DecodeError:
        return None


def is_valid_ongoing_game(buffer: Optional[bytes]) -> bool:
    """
    Lightweight probe: initialized AND state is unaccepted or ongoing.

    Only reads the state discriminant and the initialized flag (which sits at a fixed offset for exactly these
    two states), so any buffer returned by a broad filter query can be handed in. Never raises.
    """
    if not buffer:
        return False
    try:
        if len(buffer) < BASE_ACCOUNT_SIZE:
            return False
        if buffer[STATE_OFFSET] not in (StateTag.UNACCEPTED, StateTag.ONGOING):
            return False
        return buffer[UNSETTLED_INITIALIZED_OFFSET] == 1
    except (IndexError, TypeError):
        return False


def encode_game_account(account: GameAccount, padded: bool = True) -> bytes:
    """Write an account the way the program does. Mostly used to seed local stores."""
    if not 0 <= account.stake_amount <= U64_MAX:
        raise ValueError(f"Stake amount does not fit in 8 bytes: {account.stake_amount}")

    parts = [account.creator.raw, account.acceptor.raw]
    parts.append(bytes(tile for row in account.board.tiles for tile in row))
    parts.append(bytes([account.state.tag]))
    if isinstance(account.state, Over):
        parts.append(account.state.winner.raw)
    parts.append(bytes([account.turns]))
    parts.append(account.stake_mint.raw)
    parts.append(U64.pack(account.stake_amount))
    parts.append(bytes([int(account.is_initialized)]))

    data = b"".join(parts)
    if padded:
        data = data.ljust(GAME_ACCOUNT_SPACE, b"\x00")
    return data
