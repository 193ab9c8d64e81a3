"""Find the games a player takes part in and classify them."""

import logging

from src.api.models import PlayableGame
from src.core.shared_types import PlayerRole
from src.ledger.models import (
    KeyedAccount,
    acceptor_filter,
    creator_filter,
    unaccepted_filter,
)
from src.ledger.repository import AccountStore, TokenService
from src.protocol.account import (
    GameAccount,
    Unaccepted,
    decode_game_account,
    is_valid_ongoing_game,
    try_decode_game_account,
)
from src.protocol.address import Address
from src.protocol.stake import to_human_amount
from src.protocol.turns import is_turn_of

logger = logging.getLogger(__name__)

ROLE_FILTERS = {
    PlayerRole.CREATOR: creator_filter,
    PlayerRole.ACCEPTOR: acceptor_filter,
}


class GameDiscovery:
    """Queries the account store (never writes to it)."""

    def __init__(
        self, store: AccountStore, tokens: TokenService, program_id: Address
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.program_id = program_id

    def list_playable_games(self, identity: Address) -> list[PlayableGame]:
        """
        Games created by or offered to `identity` that are not finished yet.

        Order is the store's order for the creator query followed by the acceptor query.
        An empty list simply means there are no games (not an error). Transport failures propagate.
        """
        candidates = self._query_role(identity, PlayerRole.CREATOR) + self._query_role(
            identity, PlayerRole.ACCEPTOR
        )
        decimals_by_mint: dict[Address, int] = {}
        games: list[PlayableGame] = []
        seen: set[Address] = set()
        for candidate in candidates:
            # same identity in both slots matches both queries
            if candidate.address in seen:
                continue
            seen.add(candidate.address)
            if not is_valid_ongoing_game(candidate.data):
                logger.debug("Skipping %s: not an ongoing game", candidate.address)
                continue
            account = try_decode_game_account(candidate.data)
            if account is None:
                # passes the probe but the full layout is broken (e.g. mid-write)
                logger.debug("Skipping %s: undecodable game account", candidate.address)
                continue
            if account.stake_mint not in decimals_by_mint:
                decimals_by_mint[account.stake_mint] = self.tokens.get_mint_decimals(
                    account.stake_mint
                )
            games.append(
                self.to_playable_game(
                    candidate.address,
                    account,
                    identity,
                    decimals_by_mint[account.stake_mint],
                )
            )
        logger.info("Found %d playable game(s) for %s", len(games), identity)
        return games

    def list_unaccepted_games(
        self, identity: Address, role: PlayerRole
    ) -> list[tuple[Address, GameAccount]]:
        """
        Games still waiting for the acceptor.

        role=CREATOR: games `identity` created (cancel flow)
        role=ACCEPTOR: games `identity` is invited to (accept flow)
        """
        filters = [ROLE_FILTERS[role](identity), unaccepted_filter()]
        pending: list[tuple[Address, GameAccount]] = []
        for candidate in self.store.query_accounts(self.program_id, filters):
            account = try_decode_game_account(candidate.data)
            if account is None or not account.is_initialized:
                continue
            if isinstance(account.state, Unaccepted):
                pending.append((candidate.address, account))
        return pending

    def fetch_game(self, address: Address) -> GameAccount:
        """Full decode of a single game. Raises DecodeError when the account is missing or broken."""
        return decode_game_account(self.store.get_account_bytes(address))

    def to_playable_game(
        self, address: Address, account: GameAccount, identity: Address, decimals: int
    ) -> PlayableGame:
        return PlayableGame(
            address=address.to_base58(),
            opponent=account.opponent_of(identity).to_base58(),
            stake_mint=account.stake_mint.to_base58(),
            stake_amount=to_human_amount(account.stake_amount, decimals),
            board=account.board.symbols(),
            turns_remaining=account.turns_remaining,
            accepted=not isinstance(account.state, Unaccepted),
            your_turn=is_turn_of(account, identity),
        )

    def _query_role(self, identity: Address, role: PlayerRole) -> list[KeyedAccount]:
        return self.store.query_accounts(self.program_id, [ROLE_FILTERS[role](identity)])
