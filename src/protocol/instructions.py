"""
Instructions understood by the game program.

Data layout: 1 byte variant, followed by the payload of that variant (if any).
* create: opponent address (32) + stake amount (u64, little-endian)
* accept: -
* play:   row (u8) + col (u8)
* cancel: -
* close:  -

Addresses the program needs (game, escrow, token accounts, ...) are passed as account references, never as payload.
"""

from dataclasses import dataclass
from typing import Self

from src.core.exceptions import DecodeError
from src.core.shared_types import InstructionVariant
from src.protocol.account import U64, U64_MAX
from src.protocol.address import (
    ADDRESS_LENGTH,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    Address,
)

ESCROW_SEED = b"escrow"
AUTHORITY_SEED = b"authority"


# --- PAYLOADS ---
@dataclass(frozen=True)
class CreateGame:
    opponent: Address
    stake_amount: int

    def encode(self) -> bytes:
        if not 0 <= self.stake_amount <= U64_MAX:
            raise ValueError(f"Stake amount does not fit in 8 bytes: {self.stake_amount}")
        return (
            bytes([InstructionVariant.CREATE])
            + self.opponent.raw
            + U64.pack(self.stake_amount)
        )

    @classmethod
    def decode_payload(cls, payload: bytes) -> Self:
        _expect_length(payload, ADDRESS_LENGTH + U64.size, InstructionVariant.CREATE)
        opponent = Address(payload[:ADDRESS_LENGTH])
        (stake_amount,) = U64.unpack(payload[ADDRESS_LENGTH:])
        return cls(opponent, stake_amount)


@dataclass(frozen=True)
class PlayMove:
    row: int
    col: int

    def encode(self) -> bytes:
        return bytes([InstructionVariant.PLAY, self.row, self.col])

    @classmethod
    def decode_payload(cls, payload: bytes) -> Self:
        _expect_length(payload, 2, InstructionVariant.PLAY)
        return cls(payload[0], payload[1])


@dataclass(frozen=True)
class AcceptGame:
    def encode(self) -> bytes:
        return bytes([InstructionVariant.ACCEPT])


@dataclass(frozen=True)
class CancelGame:
    def encode(self) -> bytes:
        return bytes([InstructionVariant.CANCEL])


@dataclass(frozen=True)
class CloseGame:
    def encode(self) -> bytes:
        return bytes([InstructionVariant.CLOSE])


InstructionData = CreateGame | AcceptGame | PlayMove | CancelGame | CloseGame

_NO_PAYLOAD: dict[InstructionVariant, InstructionData] = {
    InstructionVariant.ACCEPT: AcceptGame(),
    InstructionVariant.CANCEL: CancelGame(),
    InstructionVariant.CLOSE: CloseGame(),
}


def _expect_length(payload: bytes, size: int, variant: InstructionVariant) -> None:
    if len(payload) != size:
        raise DecodeError(
            f"{variant.name.lower()} payload must be {size} bytes, got {len(payload)}"
        )


def encode_create_instruction(opponent: Address, stake_amount: int) -> bytes:
    return CreateGame(opponent, stake_amount).encode()


def encode_play_instruction(row: int, col: int) -> bytes:
    return PlayMove(row, col).encode()


def decode_instruction(data: bytes) -> InstructionData:
    if not data:
        raise DecodeError("Empty instruction data")
    try:
        variant = InstructionVariant(data[0])
    except ValueError:
        raise DecodeError(f"Unknown instruction variant: {data[0]}") from None

    payload = data[1:]
    match variant:
        case InstructionVariant.CREATE:
            return CreateGame.decode_payload(payload)
        case InstructionVariant.PLAY:
            return PlayMove.decode_payload(payload)
    _expect_length(payload, 0, variant)
    return _NO_PAYLOAD[variant]


# --- INSTRUCTIONS READY FOR SUBMISSION ---
@dataclass(frozen=True)
class AccountMeta:
    address: Address
    is_signer: bool
    is_writable: bool


@dataclass(frozen=True)
class Instruction:
    program_id: Address
    accounts: tuple[AccountMeta, ...]
    data: bytes

    def decoded(self) -> InstructionData:
        return decode_instruction(self.data)


def signer(address: Address) -> AccountMeta:
    return AccountMeta(address, is_signer=True, is_writable=True)


def writable(address: Address) -> AccountMeta:
    return AccountMeta(address, is_signer=False, is_writable=True)


def readonly(address: Address) -> AccountMeta:
    return AccountMeta(address, is_signer=False, is_writable=False)


def create_game_instruction(
    program_id: Address,
    creator: Address,
    game: Address,
    stake_mint: Address,
    escrow: Address,
    creator_token_account: Address,
    opponent: Address,
    stake_amount: int,
) -> Instruction:
    """The game account is a fresh keypair, so it signs the transaction too."""
    return Instruction(
        program_id,
        (
            signer(creator),
            signer(game),
            readonly(stake_mint),
            writable(escrow),
            writable(creator_token_account),
            readonly(TOKEN_PROGRAM_ID),
            readonly(SYSTEM_PROGRAM_ID),
        ),
        encode_create_instruction(opponent, stake_amount),
    )


def accept_game_instruction(
    program_id: Address,
    acceptor: Address,
    game: Address,
    stake_mint: Address,
    escrow: Address,
    acceptor_token_account: Address,
) -> Instruction:
    return Instruction(
        program_id,
        (
            signer(acceptor),
            writable(game),
            readonly(stake_mint),
            writable(escrow),
            writable(acceptor_token_account),
            readonly(TOKEN_PROGRAM_ID),
        ),
        AcceptGame().encode(),
    )


def play_instruction(
    program_id: Address, player: Address, game: Address, row: int, col: int
) -> Instruction:
    """Only the player and the game are referenced. The coordinates travel in the payload."""
    return Instruction(
        program_id,
        (AccountMeta(player, is_signer=True, is_writable=False), writable(game)),
        encode_play_instruction(row, col),
    )


def refund_instruction(
    program_id: Address,
    data: CancelGame | CloseGame,
    creator: Address,
    game: Address,
    escrow: Address,
    escrow_authority: Address,
    destinations: tuple[Address, ...],
) -> Instruction:
    """Cancel and close share their accounts. Only the token destinations differ."""
    return Instruction(
        program_id,
        (
            signer(creator),
            writable(game),
            writable(escrow),
            readonly(escrow_authority),
            *(writable(destination) for destination in destinations),
            readonly(TOKEN_PROGRAM_ID),
        ),
        data.encode(),
    )
