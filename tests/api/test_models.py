import pytest

from src.api.models import CreateGameRequest, GameAddressRequest, SelectGameRequest
from src.core.exceptions import InvalidRequestError

VALID_ADDRESS = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


# -- Validation - CreateGameRequest --
def test_valid_create_request() -> None:
    """Addresses are stripped, amount stays as typed until the mint's decimals are known."""
    request = CreateGameRequest(
        opponent=f" {VALID_ADDRESS} ", stake_mint=VALID_ADDRESS, stake_amount="0.25"
    )
    assert request.opponent == VALID_ADDRESS
    assert request.stake_amount == "0.25"


@pytest.mark.parametrize(
    "opponent, stake_mint",
    [
        ("not an address", VALID_ADDRESS),
        (VALID_ADDRESS, "0000"),
        ("", VALID_ADDRESS),
    ],
)
def test_invalid_addresses(opponent: str, stake_mint: str) -> None:
    with pytest.raises(InvalidRequestError):
        _ = CreateGameRequest(opponent=opponent, stake_mint=stake_mint, stake_amount="1")


# -- Validation - GameAddressRequest --
def test_game_address_request() -> None:
    assert GameAddressRequest(game_address=VALID_ADDRESS).game_address == VALID_ADDRESS
    with pytest.raises(InvalidRequestError):
        _ = GameAddressRequest(game_address="abc")


# -- Validation - SelectGameRequest --
@pytest.mark.parametrize("answer, normalized", [("Y", "y"), (" n ", "n"), (" 2", "2")])
def test_select_answer_normalized(answer: str, normalized: str) -> None:
    assert SelectGameRequest(answer=answer).answer == normalized
