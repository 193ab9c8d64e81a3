"""Orchestration of the player's flows (create, resume, accept, cancel) over the protocol and ledger layers."""

import logging
import threading
from typing import Optional

from src.api.models import (
    CreateGameRequest,
    GameAddressRequest,
    PlayableGame,
    SelectGameRequest,
    SessionSummary,
)
from src.core.config import ClientSettings
from src.core.exceptions import DecodeError, GameNotFoundError, InvalidRequestError
from src.core.shared_types import PlayerRole
from src.ledger.repository import (
    AccountStore,
    AddressDeriver,
    KeypairFactory,
    Signer,
    TokenService,
    TransactionSubmitter,
)
from src.protocol.account import GameAccount, Unaccepted
from src.protocol.address import Address
from src.protocol.instructions import (
    ESCROW_SEED,
    accept_game_instruction,
    create_game_instruction,
)
from src.protocol.stake import parse_stake_amount
from src.services.discovery import GameDiscovery
from src.services.session import GameSession, MoveRejected, MoveSource
from src.services.settlement import SettlementResolver

logger = logging.getLogger(__name__)


class GameService:
    """One instruction per transaction for every flow."""

    def __init__(
        self,
        settings: ClientSettings,
        store: AccountStore,
        submitter: TransactionSubmitter,
        tokens: TokenService,
        deriver: AddressDeriver,
        new_keypair: KeypairFactory,
    ) -> None:
        self.settings = settings
        self.program_id = Address.from_base58(settings.program_id)
        self.store = store
        self.submitter = submitter
        self.tokens = tokens
        self.deriver = deriver
        self.new_keypair = new_keypair
        self.discovery = GameDiscovery(store, tokens, self.program_id)
        self.settlement = SettlementResolver(self.program_id, tokens, deriver, submitter)

    # -- Create --
    def create_game(self, player: Signer, request: CreateGameRequest) -> Address:
        """Stake tokens and offer a game to the opponent. Returns the address of the new game account."""
        opponent = Address.from_base58(request.opponent)
        mint = Address.from_base58(request.stake_mint)
        if opponent == player.address:
            raise InvalidRequestError("Cannot create a game against yourself.")

        decimals = self.tokens.get_mint_decimals(mint)
        token_account = self.tokens.get_associated_account(mint, player.address)
        if token_account.balance == 0:
            raise InvalidRequestError("Your token balance for the given mint is zero.")
        stake_amount = parse_stake_amount(
            request.stake_amount, decimals, token_account.balance
        )

        game = self.new_keypair()
        instruction = create_game_instruction(
            self.program_id,
            creator=player.address,
            game=game.address,
            stake_mint=mint,
            escrow=self._escrow(mint),
            creator_token_account=token_account.address,
            opponent=opponent,
            stake_amount=stake_amount,
        )
        transaction_id = self.submitter.submit([instruction], [player, game])
        logger.info(
            "Created game %s against %s (stake %d of %s) in transaction %s",
            game.address,
            opponent,
            stake_amount,
            mint,
            transaction_id,
        )
        return game.address

    # -- Resume --
    def playable_games(self, player: Signer) -> list[PlayableGame]:
        return self.discovery.list_playable_games(player.address)

    @staticmethod
    def select_game(
        games: list[PlayableGame], request: SelectGameRequest
    ) -> Optional[PlayableGame]:
        """
        Interpret the answer to the resume prompt.

        One game: 'y' resumes it, 'n' returns None. Several games: 1-based game number.
        """
        if not games:
            return None
        if len(games) == 1:
            match request.answer:
                case "y":
                    return games[0]
                case "n":
                    return None
            raise InvalidRequestError(f"Expected 'y' or 'n', got {request.answer!r}")

        if not request.answer.isdecimal() or not 1 <= int(request.answer) <= len(games):
            raise InvalidRequestError(
                f"Enter a game number between 1 and {len(games)}, got {request.answer!r}"
            )
        return games[int(request.answer) - 1]

    # -- Accept --
    def pending_invitations(self, player: Signer) -> list[tuple[Address, GameAccount]]:
        return self.discovery.list_unaccepted_games(player.address, PlayerRole.ACCEPTOR)

    def accept_game(self, player: Signer, request: GameAddressRequest) -> str:
        """Stake the same amount as the creator and start the game."""
        game = Address.from_base58(request.game_address)
        account = self._fetch_game(game)
        if not isinstance(account.state, Unaccepted):
            raise InvalidRequestError(f"Game {game} is not waiting to be accepted.")
        if account.acceptor != player.address:
            raise InvalidRequestError(f"Game {game} was not offered to you.")

        token_account = self.tokens.get_associated_account(
            account.stake_mint, player.address
        )
        if token_account.balance < account.stake_amount:
            raise InvalidRequestError("Your token balance does not cover the stake.")

        instruction = accept_game_instruction(
            self.program_id,
            acceptor=player.address,
            game=game,
            stake_mint=account.stake_mint,
            escrow=self._escrow(account.stake_mint),
            acceptor_token_account=token_account.address,
        )
        transaction_id = self.submitter.submit([instruction], [player])
        logger.info("Accepted game %s in transaction %s", game, transaction_id)
        return transaction_id

    # -- Cancel --
    def cancellable_games(self, player: Signer) -> list[tuple[Address, GameAccount]]:
        return self.discovery.list_unaccepted_games(player.address, PlayerRole.CREATOR)

    def cancel_game(self, player: Signer, request: GameAddressRequest) -> str:
        """Creator withdraws a game nobody accepted yet and gets the stake back."""
        game = Address.from_base58(request.game_address)
        account = self._fetch_game(game)
        if account.creator != player.address:
            raise InvalidRequestError(f"Only the creator can cancel game {game}.")
        if not isinstance(account.state, Unaccepted):
            raise InvalidRequestError(f"Game {game} was already accepted.")
        return self.settlement.cancel(game, account, player)

    # -- Play --
    def open_session(
        self,
        player: Signer,
        game_address: Address,
        move_source: MoveSource,
        cancel_event: Optional[threading.Event] = None,
        on_move_rejected: Optional[MoveRejected] = None,
    ) -> GameSession:
        return GameSession(
            game_address,
            player,
            self.store,
            self.submitter,
            move_source,
            self.program_id,
            settlement=self.settlement,
            poll_interval=self.settings.poll_interval,
            timeout=self.settings.poll_timeout,
            cancel_event=cancel_event,
            on_move_rejected=on_move_rejected,
        )

    def play_game(
        self, player: Signer, game_address: Address, move_source: MoveSource
    ) -> SessionSummary:
        """Play until the end. Blocks (polling) while the opponent is thinking."""
        result = self.open_session(player, game_address, move_source).run()
        return SessionSummary(
            game_address=result.game_address.to_base58(),
            outcome=result.outcome.value,
            turns=result.final_account.turns,
            settlement_transaction=result.settlement_transaction,
        )

    # -- Internal helpers --
    def _escrow(self, mint: Address) -> Address:
        return self.deriver.derive([ESCROW_SEED, mint.raw], self.program_id)

    def _fetch_game(self, game: Address) -> GameAccount:
        """Attempt to read the game and raise error if it fails."""
        try:
            return self.discovery.fetch_game(game)
        except DecodeError as e:
            raise GameNotFoundError(f"No game account at {game}: {e}") from e
