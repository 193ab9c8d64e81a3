"""
Drive one game to its end by polling the game account.

There are no notifications from the ledger: the session re-fetches the account every `poll_interval` seconds
while it waits, and decides from the decoded bytes alone what happens next.

Phases:
* AWAITING_ACCEPTANCE: game created, opponent has not accepted yet
* LOCAL_MOVE: our turn (turn counter parity == our slot)
* REMOTE_MOVE: opponent's turn
* TERMINAL: account no longer holds an ongoing game -> won / lost / draw
  (from the final state, or from the last board seen when the creator's settlement already closed the account)

The session blocks in exactly three places: asking for a move, sleeping between polls, and submitting a move.
Each of them checks the cancellation event and the timeout first.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.core.exceptions import (
    DecodeError,
    MoveValidationError,
    ProtocolInconsistencyError,
    SessionCancelledError,
    SessionTimeoutError,
)
from src.core.shared_types import Outcome, SessionPhase
from src.ledger.repository import AccountStore, Signer, TransactionSubmitter
from src.protocol.account import (
    Draw,
    GameAccount,
    Ongoing,
    Over,
    Unaccepted,
    decode_game_account,
    is_valid_ongoing_game,
)
from src.protocol.address import Address
from src.protocol.board import SLOT_MARKS, Board
from src.protocol.instructions import play_instruction
from src.protocol.moves import read_move
from src.protocol.turns import is_slot_to_move, other_slot, role_of, slot_of
from src.services.settlement import SettlementResolver

logger = logging.getLogger(__name__)

# Returns the raw "<row> <col>" line typed by the player for the given board
MoveSource = Callable[[Board], str]
MoveRejected = Callable[[MoveValidationError], None]

DEFAULT_POLL_INTERVAL = 2.0


@dataclass(frozen=True)
class SessionResult:
    game_address: Address
    outcome: Outcome
    final_account: GameAccount
    settlement_transaction: Optional[str] = None
    # account already closed by the settlement when the end was noticed
    closed: bool = False


class GameSession:
    """State machine for a single game. One session per game, sessions share nothing."""

    def __init__(
        self,
        game_address: Address,
        player: Signer,
        store: AccountStore,
        submitter: TransactionSubmitter,
        move_source: MoveSource,
        program_id: Address,
        settlement: Optional[SettlementResolver] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
        on_move_rejected: Optional[MoveRejected] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.game_address = game_address
        self.player = player
        self.store = store
        self.submitter = submitter
        self.move_source = move_source
        self.program_id = program_id
        self.settlement = settlement
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.cancel_event = cancel_event
        self.on_move_rejected = on_move_rejected
        self.sleep = sleep
        self.clock = clock

        self.phase: Optional[SessionPhase] = None
        self.account: Optional[GameAccount] = None
        self.slot: Optional[int] = None
        self.outcome: Optional[Outcome] = None
        self.settlement_transaction: Optional[str] = None
        # lowest turn counter at which it can be our turn again (guards against stale reads after our move)
        self._min_local_turns = 0
        self._last_local_move: Optional[tuple[int, int]] = None
        self._closed = False
        self._waiting_since: Optional[float] = None

    @property
    def identity(self) -> Address:
        return self.player.address

    # --- PUBLIC API ---
    def start(self) -> SessionPhase:
        """Fetch the account once and pick the initial phase."""
        buffer = self.store.get_account_bytes(self.game_address)
        try:
            account = decode_game_account(buffer)
        except DecodeError as e:
            raise ProtocolInconsistencyError(
                f"Game account {self.game_address} cannot be read: {e}"
            ) from e
        self.account = account
        self.slot = slot_of(account, self.identity)
        logger.info(
            "Game %s: playing as %s", self.game_address, role_of(account, self.identity).value
        )

        if not account.is_ongoing_or_pending():
            self._finish(buffer)
        elif isinstance(account.state, Unaccepted):
            self._enter(SessionPhase.AWAITING_ACCEPTANCE)
        else:
            self._enter(self._phase_for_turn(account))
        return self.phase

    def step(self) -> SessionPhase:
        """Single poll-and-transition."""
        match self.phase:
            case None:
                return self.start()
            case SessionPhase.AWAITING_ACCEPTANCE:
                self._wait()
                buffer = self._poll()
                if not is_valid_ongoing_game(buffer):
                    self._finish(buffer)
                elif isinstance(self.account.state, Ongoing):
                    logger.info("Game %s accepted", self.game_address)
                    self._enter(self._phase_for_turn(self.account))
            case SessionPhase.LOCAL_MOVE:
                self._play_local_move()
                buffer = self._poll()
                if not is_valid_ongoing_game(buffer):
                    self._finish(buffer)
                else:
                    # optimistic: the opponent moves next, no need to see the new counter first
                    self._enter(SessionPhase.REMOTE_MOVE)
            case SessionPhase.REMOTE_MOVE:
                self._wait()
                buffer = self._poll()
                if not is_valid_ongoing_game(buffer):
                    self._finish(buffer)
                elif self._is_our_turn(self.account):
                    self._enter(SessionPhase.LOCAL_MOVE)
        return self.phase

    def run(self) -> SessionResult:
        """Step until the game is over (or the session is cancelled / times out)."""
        if self.phase is None:
            self.start()
        while self.phase != SessionPhase.TERMINAL:
            self.step()
        return self.result()

    def result(self) -> SessionResult:
        if self.phase != SessionPhase.TERMINAL:
            raise ProtocolInconsistencyError("Game has not finished yet")
        return SessionResult(
            game_address=self.game_address,
            outcome=self.outcome,
            final_account=self.account,
            settlement_transaction=self.settlement_transaction,
            closed=self._closed,
        )

    # --- TRANSITIONS ---
    def _enter(self, phase: SessionPhase) -> None:
        if phase != self.phase:
            logger.info(
                "Game %s: %s -> %s",
                self.game_address,
                self.phase.value if self.phase else "start",
                phase.value,
            )
        if phase in (SessionPhase.AWAITING_ACCEPTANCE, SessionPhase.REMOTE_MOVE):
            if self.phase != phase:
                self._waiting_since = self.clock()
        else:
            self._waiting_since = None
        self.phase = phase

    def _phase_for_turn(self, account: GameAccount) -> SessionPhase:
        return (
            SessionPhase.LOCAL_MOVE
            if is_slot_to_move(account.turns, self.slot)
            else SessionPhase.REMOTE_MOVE
        )

    def _is_our_turn(self, account: GameAccount) -> bool:
        return (
            is_slot_to_move(account.turns, self.slot)
            and account.turns >= self._min_local_turns
        )

    def _finish(self, buffer: Optional[bytes]) -> None:
        """Account is no longer an ongoing game: work out how it ended."""
        if buffer is None and self._was_seen_ongoing():
            self._finish_closed()
            return
        try:
            account = decode_game_account(buffer)
        except DecodeError as e:
            raise ProtocolInconsistencyError(
                f"Game {self.game_address} ended but its final state cannot be read: {e}"
            ) from e
        if not account.is_finished():
            raise ProtocolInconsistencyError(
                f"Game {self.game_address} left play in state {type(account.state).__name__}"
            )

        match account.state:
            case Over(winner=winner):
                self.outcome = Outcome.WON if winner == self.identity else Outcome.LOST
            case Draw():
                self.outcome = Outcome.DRAW
        self.account = account
        self._enter(SessionPhase.TERMINAL)
        logger.info("Game %s finished: %s", self.game_address, self.outcome.value)

        # the creator settles, the acceptor only observes
        if self.slot == 0 and self.settlement is not None:
            self.settlement_transaction = self.settlement.settle(
                self.game_address, account, self.player
            )

    def _was_seen_ongoing(self) -> bool:
        return (
            self.account is not None
            and self.account.is_initialized
            and isinstance(self.account.state, Ongoing)
        )

    def _finish_closed(self) -> None:
        """
        The account is gone: the creator settled (and closed) the game before we read its final state.

        Only one move can have happened since the last read, plus ours if it was not visible yet,
        so the outcome follows from the last board we saw.
        """
        self._closed = True
        self.outcome = self._outcome_from_last_board()
        self._enter(SessionPhase.TERMINAL)
        logger.info(
            "Game %s closed by its settlement, finished: %s", self.game_address, self.outcome.value
        )

    def _outcome_from_last_board(self) -> Outcome:
        ours = SLOT_MARKS[self.slot]
        theirs = SLOT_MARKS[other_slot(self.slot)]
        board = self.account.board
        if self._last_local_move is not None and self.account.turns < self._min_local_turns - 1:
            board = board.with_mark(*self._last_local_move, ours)

        if board.has_line(ours):
            return Outcome.WON
        empty = board.empty_tiles()
        if not empty:
            return Outcome.DRAW
        # the opponent made the last move: on the last free tile it may be a draw, otherwise it won
        if len(empty) == 1 and not board.with_mark(*empty[0], theirs).has_line(theirs):
            return Outcome.DRAW
        return Outcome.LOST

    # --- REMOTE STATE ---
    def _poll(self) -> Optional[bytes]:
        """Re-fetch the account. Keeps the decoded account when it still holds an ongoing game."""
        buffer = self.store.get_account_bytes(self.game_address)
        if is_valid_ongoing_game(buffer):
            try:
                account = decode_game_account(buffer)
            except DecodeError:
                logger.debug("Game %s: unreadable account, polling again", self.game_address)
                return buffer
            if account.turns < self.account.turns:
                raise ProtocolInconsistencyError(
                    f"Turn counter went back from {self.account.turns} to {account.turns}"
                )
            self.account = account
        return buffer

    def _wait(self) -> None:
        """Sleep between two polls (the only place where time passes while waiting on the opponent)."""
        self._check_cancelled()
        if (
            self.timeout is not None
            and self._waiting_since is not None
            and self.clock() - self._waiting_since >= self.timeout
        ):
            raise SessionTimeoutError(
                f"No progress on game {self.game_address} after {self.timeout} seconds"
            )
        if self.cancel_event is not None:
            if self.cancel_event.wait(self.poll_interval):
                raise SessionCancelledError(f"Session for {self.game_address} cancelled")
        else:
            self.sleep(self.poll_interval)

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SessionCancelledError(f"Session for {self.game_address} cancelled")

    # --- LOCAL MOVE ---
    def _play_local_move(self) -> None:
        board = self.account.board
        while True:
            self._check_cancelled()
            line = self.move_source(board)
            try:
                row, col = read_move(board, line)
                break
            except MoveValidationError as e:
                # turn not consumed, ask again
                logger.info("Move rejected: %s", e)
                if self.on_move_rejected is not None:
                    self.on_move_rejected(e)

        self._check_cancelled()
        instruction = play_instruction(
            self.program_id, self.identity, self.game_address, row, col
        )
        # never retried: a second submission could play a second move
        transaction_id = self.submitter.submit([instruction], [self.player])
        self._min_local_turns = self.account.turns + 2
        self._last_local_move = (row, col)
        logger.info(
            "Played (%d, %d) on game %s in transaction %s",
            row,
            col,
            self.game_address,
            transaction_id,
        )
