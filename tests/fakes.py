"""Test doubles for the external ledger services, shared by the service tests."""

import hashlib
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from src.core.exceptions import RemoteFaultError
from src.core.shared_types import Tile
from src.ledger.models import KeyedAccount, MemcmpFilter, TokenAccount
from src.protocol.account import (
    GameAccount,
    GameState,
    Ongoing,
    encode_game_account,
)
from src.protocol.address import Address
from src.protocol.board import Board
from src.protocol.instructions import Instruction

PROGRAM_ID = Address(bytes([200]) * 32)
MINT = Address(bytes([100]) * 32)


def make_address(seed: int) -> Address:
    return Address(bytes([seed]) * 32)


def _hash_address(*parts: bytes) -> Address:
    return Address(hashlib.sha256(b"".join(parts)).digest())


@dataclass(frozen=True)
class FakeSigner:
    address: Address


def game_account(
    creator: Address,
    acceptor: Address,
    state: GameState = Ongoing(),
    turns: int = 0,
    marks: Optional[dict[tuple[int, int], Tile]] = None,
    stake_amount: int = 1_000_000,
    is_initialized: bool = True,
) -> GameAccount:
    board = Board.empty()
    for (row, col), tile in (marks or {}).items():
        board = board.with_mark(row, col, tile)
    return GameAccount(
        players=(creator, acceptor),
        board=board,
        state=state,
        turns=turns,
        stake_mint=MINT,
        stake_amount=stake_amount,
        is_initialized=is_initialized,
    )


def game_bytes(*args, **kwargs) -> bytes:
    return encode_game_account(game_account(*args, **kwargs))


class FakeAccountStore:
    """Dictionary of accounts, all owned by PROGRAM_ID unless told otherwise."""

    def __init__(self) -> None:
        self.accounts: dict[Address, tuple[Address, bytes]] = {}
        self.fetches = 0
        self.fail_queries = False

    def put(self, address: Address, data: bytes, owner: Address = PROGRAM_ID) -> None:
        self.accounts[address] = (owner, data)

    def remove(self, address: Address) -> None:
        self.accounts.pop(address, None)

    def get_account_bytes(self, address: Address) -> bytes | None:
        self.fetches += 1
        entry = self.accounts.get(address)
        return entry[1] if entry else None

    def query_accounts(
        self, program_id: Address, filters: Sequence[MemcmpFilter]
    ) -> list[KeyedAccount]:
        if self.fail_queries:
            raise RemoteFaultError("connection refused", operation="query_accounts")
        return [
            KeyedAccount(address, data)
            for address, (owner, data) in self.accounts.items()
            if owner == program_id and all(f.matches(data) for f in filters)
        ]


@dataclass
class RecordingSubmitter:
    """Keeps every submitted transaction. `on_submit` plays the role of the program."""

    on_submit: Optional[Callable[[Instruction], None]] = None
    fail: bool = False
    submitted: list[tuple[list[Instruction], list]] = field(default_factory=list)

    def submit(self, instructions: Sequence[Instruction], signers: Sequence) -> str:
        if self.fail:
            raise RemoteFaultError("blockhash not found", operation="submit")
        self.submitted.append((list(instructions), list(signers)))
        if self.on_submit is not None:
            for instruction in instructions:
                self.on_submit(instruction)
        return f"tx-{len(self.submitted)}"

    @property
    def instructions(self) -> list[Instruction]:
        return [ix for batch, _ in self.submitted for ix in batch]


class FakeTokenService:
    def __init__(self, decimals: int = 6, balance: int = 10_000_000) -> None:
        self.decimals = decimals
        self.balance = balance
        self.decimals_lookups = 0

    def get_mint_decimals(self, mint: Address) -> int:
        self.decimals_lookups += 1
        return self.decimals

    def get_associated_account(self, mint: Address, owner: Address) -> TokenAccount:
        return TokenAccount(self.associated_address(mint, owner), self.balance)

    @staticmethod
    def associated_address(mint: Address, owner: Address) -> Address:
        return _hash_address(b"ata", mint.raw, owner.raw)


class FakeDeriver:
    def derive(self, seeds: Sequence[bytes], program_id: Address) -> Address:
        return _hash_address(*seeds, program_id.raw)


class FakeKeypairFactory:
    def __init__(self, first_seed: int = 150) -> None:
        self.next_seed = first_seed

    def __call__(self) -> FakeSigner:
        signer = FakeSigner(make_address(self.next_seed))
        self.next_seed += 1
        return signer
