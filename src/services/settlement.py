"""
How the escrowed stake leaves the escrow once a game is finished (or cancelled).

* Over   -> the winner takes both stakes (one token destination)
* Draw   -> each player gets their stake back (two token destinations, creator first)
* Cancel -> game never accepted, the creator gets their stake back (one token destination)

NOTE: only the creator submits the settlement/cancel transaction. The acceptor just watches the account
disappear. This is part of the protocol, not a missing feature.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from src.core.exceptions import ProtocolInconsistencyError
from src.core.shared_types import SettlementKind
from src.ledger.repository import (
    AddressDeriver,
    Signer,
    TokenService,
    TransactionSubmitter,
)
from src.protocol.account import Draw, GameAccount, Over, Unaccepted
from src.protocol.address import Address
from src.protocol.instructions import (
    AUTHORITY_SEED,
    ESCROW_SEED,
    CancelGame,
    CloseGame,
    Instruction,
    refund_instruction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementPlan:
    kind: SettlementKind
    # owners of the token accounts that receive the stake, NOT the token accounts themselves
    recipients: tuple[Address, ...]


def resolve_settlement(account: GameAccount) -> SettlementPlan:
    """Disbursement for a finished game."""
    match account.state:
        case Over(winner=winner):
            if winner not in account.players:
                raise ProtocolInconsistencyError(
                    f"Winner {winner} is not one of the players"
                )
            return SettlementPlan(SettlementKind.WINNER_TAKES_STAKE, (winner,))
        case Draw():
            return SettlementPlan(SettlementKind.SPLIT_REFUND, account.players)
    raise ProtocolInconsistencyError(
        f"Cannot settle a game in state {type(account.state).__name__}"
    )


def resolve_cancellation(account: GameAccount) -> SettlementPlan:
    """Disbursement for a game that was never accepted."""
    if not isinstance(account.state, Unaccepted):
        raise ProtocolInconsistencyError("Only unaccepted games can be cancelled")
    return SettlementPlan(SettlementKind.CANCEL_REFUND, (account.creator,))


def check_destinations(
    winner: Optional[Address], players: Optional[tuple[Address, Address]]
) -> tuple[Address, ...]:
    """Exactly one of winner / players must be given."""
    if winner is not None and players is not None:
        raise ProtocolInconsistencyError(
            "Settlement got both a winner and a refund to both players"
        )
    if winner is None and players is None:
        raise ProtocolInconsistencyError(
            "Settlement got neither a winner nor a refund to both players"
        )
    return (winner,) if winner is not None else tuple(players)


class SettlementResolver:
    """Turns a plan into the close/cancel instruction and submits it."""

    def __init__(
        self,
        program_id: Address,
        tokens: TokenService,
        deriver: AddressDeriver,
        submitter: TransactionSubmitter,
    ) -> None:
        self.program_id = program_id
        self.tokens = tokens
        self.deriver = deriver
        self.submitter = submitter

    def escrow_addresses(self, stake_mint: Address) -> tuple[Address, Address]:
        """(escrow, escrow authority) for the mint"""
        escrow = self.deriver.derive([ESCROW_SEED, stake_mint.raw], self.program_id)
        authority = self.deriver.derive([AUTHORITY_SEED, stake_mint.raw], self.program_id)
        return escrow, authority

    def build_settlement_instruction(
        self,
        game: Address,
        account: GameAccount,
        winner: Optional[Address] = None,
        players: Optional[tuple[Address, Address]] = None,
    ) -> Instruction:
        recipients = check_destinations(winner, players)
        return self._refund(CloseGame(), game, account, recipients)

    def build_cancel_instruction(self, game: Address, account: GameAccount) -> Instruction:
        plan = resolve_cancellation(account)
        return self._refund(CancelGame(), game, account, plan.recipients)

    def instruction_for(self, game: Address, account: GameAccount) -> Instruction:
        plan = resolve_settlement(account)
        if plan.kind == SettlementKind.WINNER_TAKES_STAKE:
            return self.build_settlement_instruction(game, account, winner=plan.recipients[0])
        return self.build_settlement_instruction(game, account, players=account.players)

    def settle(self, game: Address, account: GameAccount, creator: Signer) -> str:
        """Submit the settlement of a finished game. Returns the transaction id."""
        self._assert_creator(account, creator)
        instruction = self.instruction_for(game, account)
        transaction_id = self.submitter.submit([instruction], [creator])
        logger.info("Settled game %s in transaction %s", game, transaction_id)
        return transaction_id

    def cancel(self, game: Address, account: GameAccount, creator: Signer) -> str:
        """Submit the cancellation of an unaccepted game. Returns the transaction id."""
        self._assert_creator(account, creator)
        instruction = self.build_cancel_instruction(game, account)
        transaction_id = self.submitter.submit([instruction], [creator])
        logger.info("Cancelled game %s in transaction %s", game, transaction_id)
        return transaction_id

    def _refund(
        self,
        data: CancelGame | CloseGame,
        game: Address,
        account: GameAccount,
        recipients: tuple[Address, ...],
    ) -> Instruction:
        escrow, authority = self.escrow_addresses(account.stake_mint)
        destinations = tuple(
            self.tokens.get_associated_account(account.stake_mint, owner).address
            for owner in recipients
        )
        return refund_instruction(
            self.program_id,
            data,
            account.creator,
            game,
            escrow,
            authority,
            destinations,
        )

    def _assert_creator(self, account: GameAccount, creator: Signer) -> None:
        if creator.address != account.creator:
            raise ProtocolInconsistencyError(
                "Only the creator of a game submits its settlement"
            )
