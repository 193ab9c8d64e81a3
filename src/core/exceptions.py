"""
Custom exceptions shared by all layers.

Hierarchy:
- GameError (base, catch this to handle anything raised by the client)
  - DecodeError: bytes that do not follow the game account / instruction layout. Always recoverable.
  - MoveValidationError: a local move that must not be submitted. Recoverable, ask again.
  - ProtocolInconsistencyError: the ledger shows something the protocol does not allow. Fatal for the session.
  - RemoteFaultError: a query or submission against the ledger failed.
  - ...
"""

from typing import Optional


class GameError(Exception):
    """Base exception for the client."""


class DecodeError(GameError):
    """Buffer is short, too long, or contains an unknown discriminant."""


class MoveValidationError(GameError):
    """Base for moves rejected before anything is sent to the ledger."""


class OutOfBoundsError(MoveValidationError):
    pass


class TileOccupiedError(MoveValidationError):
    pass


class MalformedInputError(MoveValidationError):
    pass


class ProtocolInconsistencyError(GameError):
    """
    The observed account (or a requested settlement) breaks the protocol rules.

    NOTE: this points at a codec/program version mismatch rather than bad input, so keep it apart from DecodeError.
    """


class RemoteFaultError(GameError):
    """Failure while talking to the ledger. Submissions are never retried automatically."""

    def __init__(
        self, message: str, operation: str = "", address: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.address = address

    def __str__(self) -> str:
        details = [f"operation={self.operation}"] if self.operation else []
        if self.address:
            details.append(f"address={self.address}")
        base = super().__str__()
        return f"{base} ({', '.join(details)})" if details else base


class InvalidRequestError(GameError):
    pass


class NotAPlayerError(GameError):
    """Local identity occupies neither player slot of the game."""


class SessionTimeoutError(GameError):
    pass


class SessionCancelledError(GameError):
    pass


class GameNotFoundError(GameError):
    """No readable game account at the given address."""
