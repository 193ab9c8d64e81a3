"""Conversions between raw token units (what the ledger stores) and human amounts (what players type/see)"""

from decimal import Decimal, InvalidOperation

from src.core.exceptions import InvalidRequestError
from src.protocol.account import U64_MAX


def to_human_amount(raw_amount: int, decimals: int) -> Decimal:
    return Decimal(raw_amount).scaleb(-decimals)


def parse_stake_amount(text: str, decimals: int, balance: int) -> int:
    """
    Human amount typed by the player -> raw amount.

    Rules (as enforced when creating a game):
    * must be a positive number
    * no more decimal places than the mint supports, counted as typed ("1.000" has three)
    * not more than the player's balance
    """
    try:
        amount = Decimal(text.strip())
    except InvalidOperation:
        raise InvalidRequestError(f"{text!r} is not a valid number") from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidRequestError(f"Stake must be a positive number, got {text!r}")

    exponent = amount.as_tuple().exponent
    if isinstance(exponent, int) and -exponent > decimals:
        raise InvalidRequestError(
            f"Stake has more than the {decimals} decimal places allowed for this token"
        )

    raw_amount = int(amount.scaleb(decimals))
    if raw_amount > U64_MAX:
        raise InvalidRequestError("Stake amount is too large")
    if raw_amount > balance:
        raise InvalidRequestError("Stake amount exceeds the token balance")
    return raw_amount
