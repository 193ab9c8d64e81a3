"""
An address on the ledger (public key of an account, a program or a player)

(placed in its own module as multiple other modules need to import it)
"""

from __future__ import annotations

from dataclasses import dataclass

import base58

ADDRESS_LENGTH = 32


@dataclass(frozen=True)
class Address:
    raw: bytes

    def __post_init__(self) -> None:
        if len(self.raw) != ADDRESS_LENGTH:
            raise ValueError(
                f"Address must be {ADDRESS_LENGTH} bytes, got {len(self.raw)}"
            )

    @classmethod
    def from_base58(cls, text: str) -> Address:
        """Text form used everywhere a human sees or types an address."""
        return cls(base58.b58decode(text.strip()))

    def to_base58(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    @classmethod
    def zero(cls) -> Address:
        """Unset slot (e.g. no winner written yet)"""
        return cls(bytes(ADDRESS_LENGTH))

    def __str__(self) -> str:
        return self.to_base58()


def is_valid_address(text: str) -> bool:
    try:
        Address.from_base58(text)
    except ValueError:
        return False
    return True


# Well-known programs the game program talks to
SYSTEM_PROGRAM_ID = Address.zero()
TOKEN_PROGRAM_ID = Address.from_base58("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
