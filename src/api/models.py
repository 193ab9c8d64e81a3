"""Requests and Response models (the data each prompt produces and each listing shows)"""

from decimal import Decimal

from pydantic import BaseModel, field_validator

from src.core.exceptions import InvalidRequestError
from src.protocol.address import is_valid_address

Base58Address = str


def _validate_address(value: str) -> str:
    value = value.strip()
    if not is_valid_address(value):
        raise InvalidRequestError(f"{value!r} does not correspond to a valid address.")
    return value


# --- REQUEST MODELS ---
class CreateGameRequest(BaseModel):
    opponent: Base58Address
    stake_mint: Base58Address
    # human amount, converted to raw units once the mint's decimals are known
    stake_amount: str

    @field_validator("opponent", "stake_mint")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return _validate_address(value)


class GameAddressRequest(BaseModel):
    """Accept / cancel / resume a specific game"""

    game_address: Base58Address

    @field_validator("game_address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        return _validate_address(value)


class SelectGameRequest(BaseModel):
    """
    Answer to the resume prompt.

    With a single candidate the answer is y/n, with several it is the 1-based game number.
    """

    answer: str

    @field_validator("answer")
    @classmethod
    def normalize_answer(cls, value: str) -> str:
        return value.strip().lower()


# --- RESPONSE MODELS ---
class PlayableGame(BaseModel):
    """Local, never persisted summary of a game the user can play (or is waiting on)."""

    address: Base58Address
    opponent: Base58Address
    stake_mint: Base58Address
    stake_amount: Decimal
    board: list[list[str]]
    turns_remaining: int
    accepted: bool
    your_turn: bool


class SessionSummary(BaseModel):
    game_address: Base58Address
    outcome: str
    turns: int
    settlement_transaction: str | None = None
