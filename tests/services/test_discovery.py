"""Unit tests for src/services/discovery.py"""

from decimal import Decimal

import pytest

from src.api.models import PlayableGame
from src.core.exceptions import DecodeError, RemoteFaultError
from src.core.shared_types import PlayerRole, Tile
from src.protocol.account import Draw, Ongoing, Over, Unaccepted
from src.services.discovery import GameDiscovery
from tests.fakes import (
    PROGRAM_ID,
    FakeAccountStore,
    FakeTokenService,
    game_bytes,
    make_address,
)

ME = make_address(1)
OPPONENT = make_address(2)
STRANGER = make_address(3)


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def tokens() -> FakeTokenService:
    return FakeTokenService(decimals=6)


@pytest.fixture
def discovery(store: FakeAccountStore, tokens: FakeTokenService) -> GameDiscovery:
    return GameDiscovery(store, tokens, PROGRAM_ID)


def test_no_games_is_an_empty_list(discovery: GameDiscovery) -> None:
    assert discovery.list_playable_games(ME) == []


def test_created_and_accepted_games_are_listed(
    store: FakeAccountStore, discovery: GameDiscovery
) -> None:
    """Creator-side results come first, then acceptor-side results."""
    store.put(make_address(50), game_bytes(OPPONENT, ME, turns=1, marks={(0, 0): Tile.MARK_A}))
    store.put(make_address(51), game_bytes(ME, OPPONENT, stake_amount=2_500_000))

    games = discovery.list_playable_games(ME)
    assert [game.address for game in games] == [
        make_address(51).to_base58(),
        make_address(50).to_base58(),
    ]

    created, accepted = games
    assert isinstance(created, PlayableGame)
    assert created.opponent == OPPONENT.to_base58()
    assert created.stake_amount == Decimal("2.5")
    assert created.turns_remaining == 9
    assert created.your_turn

    assert accepted.opponent == OPPONENT.to_base58()
    assert accepted.board[0] == ["x", " ", " "]
    assert accepted.turns_remaining == 8
    # turn 1 is odd: acceptor (me) to move
    assert accepted.your_turn


def test_finished_broken_and_foreign_accounts_are_dropped(
    store: FakeAccountStore, discovery: GameDiscovery
) -> None:
    store.put(make_address(50), game_bytes(ME, OPPONENT, state=Over(winner=ME), turns=5))
    store.put(make_address(51), game_bytes(ME, OPPONENT, state=Draw(), turns=9))
    store.put(make_address(52), game_bytes(ME, OPPONENT, is_initialized=False))
    store.put(make_address(53), ME.raw + bytes(10))  # some other layout starting with my key
    store.put(make_address(54), game_bytes(STRANGER, OPPONENT))  # not mine
    store.put(make_address(55), game_bytes(ME, OPPONENT), owner=make_address(99))  # other program
    store.put(make_address(56), game_bytes(ME, OPPONENT, state=Unaccepted()))

    games = discovery.list_playable_games(ME)
    assert [game.address for game in games] == [make_address(56).to_base58()]
    assert not games[0].accepted


def test_decimals_fetched_once_per_mint(
    store: FakeAccountStore, tokens: FakeTokenService, discovery: GameDiscovery
) -> None:
    for seed in (50, 51, 52):
        store.put(make_address(seed), game_bytes(ME, OPPONENT))
    assert len(discovery.list_playable_games(ME)) == 3
    assert tokens.decimals_lookups == 1


def test_game_against_self_listed_once(
    store: FakeAccountStore, discovery: GameDiscovery
) -> None:
    """Both slots hold my key: the game matches both queries but is one game."""
    store.put(make_address(50), game_bytes(ME, ME))
    store.put(make_address(51), game_bytes(OPPONENT, ME))

    games = discovery.list_playable_games(ME)
    assert [game.address for game in games] == [
        make_address(50).to_base58(),
        make_address(51).to_base58(),
    ]


def test_query_failure_is_not_an_empty_result(
    store: FakeAccountStore, discovery: GameDiscovery
) -> None:
    store.fail_queries = True
    with pytest.raises(RemoteFaultError):
        discovery.list_playable_games(ME)


def test_unaccepted_games_by_role(store: FakeAccountStore, discovery: GameDiscovery) -> None:
    store.put(make_address(50), game_bytes(ME, OPPONENT, state=Unaccepted()))
    store.put(make_address(51), game_bytes(OPPONENT, ME, state=Unaccepted()))
    store.put(make_address(52), game_bytes(ME, OPPONENT, state=Ongoing()))
    # passes the zero filter (nothing on the first 8 tiles) but already ongoing
    store.put(make_address(53), game_bytes(ME, OPPONENT, turns=1, marks={(2, 2): Tile.MARK_A}))

    created = discovery.list_unaccepted_games(ME, PlayerRole.CREATOR)
    invited = discovery.list_unaccepted_games(ME, PlayerRole.ACCEPTOR)

    assert [address for address, _ in created] == [make_address(50)]
    assert [address for address, _ in invited] == [make_address(51)]
    assert invited[0][1].creator == OPPONENT


def test_fetch_game(store: FakeAccountStore, discovery: GameDiscovery) -> None:
    store.put(make_address(50), game_bytes(ME, OPPONENT, turns=2))
    assert discovery.fetch_game(make_address(50)).turns == 2
    with pytest.raises(DecodeError):
        discovery.fetch_game(make_address(51))
