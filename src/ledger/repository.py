"""Protocols of the external ledger services (RPC adapter, local SQL store, test doubles all fit these)"""

from typing import Protocol, Sequence

from src.ledger.models import KeyedAccount, MemcmpFilter, TokenAccount
from src.protocol.address import Address
from src.protocol.instructions import Instruction


class Signer(Protocol):
    """Key material able to sign a transaction. The client only ever needs its address."""

    @property
    def address(self) -> Address: ...


class AccountStore(Protocol):
    """Read side of the ledger. Failures are raised as RemoteFaultError."""

    def get_account_bytes(self, address: Address) -> bytes | None:
        """Data of the account, None if it does not exist (e.g. closed)."""
        ...

    def query_accounts(
        self, program_id: Address, filters: Sequence[MemcmpFilter]
    ) -> list[KeyedAccount]:
        """All accounts owned by the program that satisfy every filter."""
        ...


class TransactionSubmitter(Protocol):
    def submit(
        self, instructions: Sequence[Instruction], signers: Sequence[Signer]
    ) -> str:
        """Send + wait for confirmation. Returns the transaction id, raises RemoteFaultError."""
        ...


class TokenService(Protocol):
    def get_mint_decimals(self, mint: Address) -> int: ...

    def get_associated_account(self, mint: Address, owner: Address) -> TokenAccount:
        """Associated token account of `owner` for `mint` (address + raw balance)."""
        ...


class AddressDeriver(Protocol):
    def derive(self, seeds: Sequence[bytes], program_id: Address) -> Address:
        """Deterministic (program derived) address for the seeds."""
        ...


class KeypairFactory(Protocol):
    def __call__(self) -> Signer:
        """Fresh keypair, used for the account of a new game."""
        ...
