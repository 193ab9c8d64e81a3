"""
Data exchanged with the external ledger services.

(Decouples the shapes the ledger adapters return from the decoded game account used by the services)
"""

from dataclasses import dataclass

from src.protocol.account import ACCEPTOR_OFFSET, BOARD_OFFSET, CREATOR_OFFSET
from src.protocol.address import Address

# Unaccepted games have an untouched board, so the first 8 tile tags are zero
UNACCEPTED_PROBE_OFFSET = BOARD_OFFSET
UNACCEPTED_PROBE_LENGTH = 8


@dataclass(frozen=True)
class MemcmpFilter:
    """Byte-exact equality of `expected` with the account data starting at `offset`"""

    offset: int
    expected: bytes

    def matches(self, data: bytes) -> bool:
        end = self.offset + len(self.expected)
        return len(data) >= end and data[self.offset : end] == self.expected


@dataclass(frozen=True)
class KeyedAccount:
    address: Address
    data: bytes


@dataclass(frozen=True)
class TokenAccount:
    address: Address
    balance: int


def creator_filter(identity: Address) -> MemcmpFilter:
    return MemcmpFilter(CREATOR_OFFSET, identity.raw)


def acceptor_filter(identity: Address) -> MemcmpFilter:
    return MemcmpFilter(ACCEPTOR_OFFSET, identity.raw)


def unaccepted_filter() -> MemcmpFilter:
    return MemcmpFilter(UNACCEPTED_PROBE_OFFSET, bytes(UNACCEPTED_PROBE_LENGTH))
