"""
Spin lifecycle controller.

Drives each wager through pending -> submitting -> waiting -> claiming ->
completed/failed on a worker thread, keeps the balance in sync with the
ledger, and verifies the claim in the background once the outcome is known.

Every controller owns its state: its own arena, event bus and threads. Nothing
is shared at module level, so several controllers can run side by side.
"""
import dataclasses
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Optional

from fairspin_be.exceptions import (
    AppException, ChainQueryException, ClaimVerificationFailedException, ConfigNotLoadedException,
    InsufficientBalanceException, InvalidBetException, NotInitializedException,
    SpinCancelledException, SubmissionFailedException
)
from fairspin_be.game_types import GameMode, QueuedSpin, SpinStatus
from fairspin_be.services.event_bus import EventBus, GameEventType
from fairspin_be.services.spin_arena import DEFAULT_TERMINAL_RETENTION, SpinArena
from fairspin_be.utils.outcome import total_bet_for

logger = logging.getLogger(__name__)


@dataclass
class ControllerSettings:
    """Timing knobs, in seconds."""
    block_poll_interval: float = 1.0
    claim_grace_delay: float = 0.5
    # None waits for the claim block indefinitely
    claim_max_wait: Optional[float] = None
    balance_refresh_delay: float = 5.0
    balance_poll_interval: float = 30.0
    terminal_spin_retention: int = DEFAULT_TERMINAL_RETENTION

    @classmethod
    def from_config(cls, config):
        get = config.get if hasattr(config, 'get') else lambda key, default=None: getattr(config, key, default)
        defaults = cls()
        return cls(
            block_poll_interval=get('BLOCK_POLL_INTERVAL', defaults.block_poll_interval),
            claim_grace_delay=get('CLAIM_GRACE_DELAY', defaults.claim_grace_delay),
            claim_max_wait=get('CLAIM_MAX_WAIT', defaults.claim_max_wait),
            balance_refresh_delay=get('BALANCE_REFRESH_DELAY', defaults.balance_refresh_delay),
            balance_poll_interval=get('BALANCE_POLL_INTERVAL', defaults.balance_poll_interval),
            terminal_spin_retention=get('TERMINAL_SPIN_RETENTION', defaults.terminal_spin_retention),
        )


class SpinLifecycleController:
    def __init__(self, adapter, party, event_bus=None, settings=None):
        self.adapter = adapter
        self.party = party
        self.event_bus = event_bus or EventBus()
        self.settings = settings or ControllerSettings()
        self.arena = SpinArena(terminal_retention=self.settings.terminal_spin_retention)

        self._config = None
        self._initialized = False
        self._balance = 0
        self._is_spinning = False
        self._current_spin_id = None
        self._visible_grid = None
        self._last_error = None

        self._lock = threading.RLock()
        self._processing = set()
        self._cancel_events = {}
        self._done_events = {}
        self._shutdown = threading.Event()
        self._balance_thread = None
        self._threads = []

    # --- setup ---

    def initialize(self):
        """Connects the adapter, loads the machine config and the starting balance."""
        try:
            self.adapter.initialize()
            config = self.adapter.get_contract_config()
            balance = self.adapter.get_balance(self.party)
        except Exception as e:
            logger.error(f"Controller initialization failed: {e}", exc_info=True)
            error = NotInitializedException(f"Failed to initialize game engine: {e}")
            self._report_error(error)
            raise error from e

        if config is None:
            error = ConfigNotLoadedException()
            self._report_error(error)
            raise error

        with self._lock:
            self._config = config
            self._balance = balance
            self._initialized = True

        logger.info(f"Controller for {self.party} initialized on '{config.short_name}' with balance {balance}")
        self.event_bus.emit(GameEventType.GAME_INITIALIZED, {
            'config': config.to_public_dict(),
            'balance': balance,
        })
        self._start_balance_polling()

    def _ensure_ready(self):
        if not self._initialized:
            raise NotInitializedException()
        if self._config is None:
            raise ConfigNotLoadedException()
        return self._config

    # --- validation ---

    def validate_bet(self, bet_per_line, paylines):
        """Raises InvalidBetException unless the bet fits the machine's limits. Returns the total bet."""
        config = self._ensure_ready()
        errors = []

        if not isinstance(bet_per_line, int) or isinstance(bet_per_line, bool) or bet_per_line <= 0:
            raise InvalidBetException("Bet amount must be greater than zero", details={'errors': ["bet_per_line must be a positive integer"]})
        if not isinstance(paylines, int) or isinstance(paylines, bool):
            raise InvalidBetException("Paylines must be an integer", details={'errors': ["paylines must be an integer"]})

        if bet_per_line < config.min_bet:
            errors.append(f"Minimum bet is {config.min_bet}")
        if bet_per_line > config.max_bet:
            errors.append(f"Maximum bet is {config.max_bet}")
        if paylines < 1:
            errors.append("Must select at least 1 payline")
        if paylines > config.max_paylines:
            errors.append(f"Maximum paylines is {config.max_paylines}")

        total_bet = total_bet_for(config, bet_per_line, paylines)
        max_total = config.max_bet * config.max_paylines
        if total_bet > max_total:
            errors.append(f"Total bet cannot exceed {max_total}")

        if errors:
            raise InvalidBetException(errors[0], details={'errors': errors})
        return total_bet

    def validate_balance(self, total_bet):
        """Checks the unreserved balance covers the bet plus fees."""
        config = self._ensure_ready()
        with self._lock:
            reserved = self.arena.reserved_balance()
            available = self._balance - reserved
        required = total_bet + config.required_fees
        if available < required:
            raise InsufficientBalanceException(
                f"Insufficient balance. Need {required}, have {available} available",
                details={
                    'required': required,
                    'available': available,
                    'reserved': reserved,
                    'shortfall': required - available,
                }
            )

    # --- spinning ---

    def spin(self, bet_per_line, paylines):
        """
        Queues a spin and starts processing it on a worker thread.

        Returns the new spin id. Validation failures raise before anything is
        queued and are also published as ``error:occurred``.
        """
        try:
            config = self._ensure_ready()
            if config.mode == GameMode.WAYS:
                paylines = 1
            total_bet = self.validate_bet(bet_per_line, paylines)
            self.validate_balance(total_bet)
        except AppException as e:
            self._report_error(e)
            raise

        spin = QueuedSpin(
            id=uuid.uuid4().hex,
            status=SpinStatus.PENDING,
            bet_per_line=bet_per_line,
            paylines=paylines,
            total_bet=total_bet,
            spin_fee=config.spin_fee,
        )
        with self._lock:
            self.arena.add(spin)
            self._cancel_events[spin.id] = threading.Event()
            self._done_events[spin.id] = threading.Event()
            self._is_spinning = True
            self._current_spin_id = spin.id
            self._last_error = None

        logger.info(f"Spin {spin.id} queued: {bet_per_line} x {paylines} = {total_bet}")
        self.event_bus.emit(GameEventType.SPIN_QUEUED, {'spin_id': spin.id, 'spin': spin.to_dict()})

        worker = threading.Thread(target=self.process_spin, args=(spin.id,), daemon=True,
                                  name=f"spin-{spin.id[:8]}")
        self._track(worker)
        worker.start()
        return spin.id

    def place_bet(self, bet_per_line, paylines):
        return self.spin(bet_per_line, paylines)

    def process_spin(self, spin_id):
        """
        Runs one spin through its lifecycle. Safe to call repeatedly: a spin that
        is already being processed, or already finished, is left alone.

        Returns True when this call did the processing.
        """
        with self._lock:
            if spin_id in self._processing:
                logger.debug(f"Spin {spin_id} is already being processed")
                return False
            spin = self.arena.get(spin_id)
            if spin is None or spin.is_terminal:
                return False
            self._processing.add(spin_id)
            cancel_event = self._cancel_events.setdefault(spin_id, threading.Event())

        try:
            self._run_spin(spin, cancel_event)
        finally:
            with self._lock:
                self._processing.discard(spin_id)
        return True

    def _run_spin(self, spin, cancel_event):
        try:
            self._check_cancelled(cancel_event)
            self.arena.update(spin.id, status=SpinStatus.SUBMITTING, updated_at=time.time())
            submitted = self._submit(spin)

            self.arena.update(
                spin.id,
                status=SpinStatus.WAITING,
                bet_key=submitted.bet_key,
                tx_id=submitted.tx_id,
                submit_block=submitted.submit_block,
                claim_block=submitted.claim_block,
                updated_at=time.time(),
            )
            self.event_bus.emit(GameEventType.SPIN_SUBMITTED, {
                'spin_id': spin.id,
                'tx_id': submitted.tx_id,
                'bet_key': submitted.bet_key,
                'submit_block': submitted.submit_block,
                'claim_block': submitted.claim_block,
            })
            self.event_bus.emit(GameEventType.SPIN_WAITING, {
                'spin_id': spin.id,
                'claim_block': submitted.claim_block,
            })

            self.wait_for_block(submitted.claim_block, cancel_event)
            self._check_cancelled(cancel_event)

            self.arena.update(spin.id, status=SpinStatus.CLAIMING, updated_at=time.time())
            outcome = self.adapter.calculate_outcome_from_seed(
                submitted.bet_key, submitted.claim_block, spin.bet_per_line, spin.paylines
            )
        except SpinCancelledException as e:
            self._fail_spin(spin, e, retryable=False)
            return
        except AppException as e:
            self._fail_spin(spin, e, retryable=True)
            return
        except Exception as e:
            logger.error(f"Unexpected error processing spin {spin.id}: {e}", exc_info=True)
            self._fail_spin(spin, ChainQueryException(f"Spin processing failed: {e}"), retryable=True)
            return

        self._complete_spin(spin, outcome)

    def _submit(self, spin):
        try:
            return self.adapter.submit_spin(spin.bet_per_line, spin.paylines, self.party)
        except SubmissionFailedException:
            raise
        except AppException as e:
            raise SubmissionFailedException(
                f"Transaction submission failed: {e.status_message}",
                details={'cause': e.error_code, **e.details}
            ) from e
        except Exception as e:
            raise SubmissionFailedException(f"Transaction submission failed: {e}") from e

    def _complete_spin(self, spin, outcome):
        self.arena.update(spin.id, status=SpinStatus.COMPLETED, outcome=outcome, updated_at=time.time())
        with self._lock:
            self._visible_grid = outcome.grid
            if self._current_spin_id == spin.id:
                self._is_spinning = False

        logger.info(f"Spin {spin.id} completed: payout {outcome.total_payout} ({outcome.win_level})")
        self.event_bus.emit(GameEventType.SPIN_COMPLETED, {
            'spin_id': spin.id,
            'outcome': outcome,
            'result': {
                'id': spin.id,
                'bet_per_line': spin.bet_per_line,
                'paylines': spin.paylines,
                'total_bet': spin.total_bet,
                'winnings': outcome.total_payout,
                'net_profit': outcome.total_payout - spin.total_bet,
                'win_level': outcome.win_level,
                'is_win': outcome.is_win,
                'spin_tx_id': spin.tx_id,
                'outcome': outcome.to_dict(),
            },
        })
        if outcome.is_win:
            self.event_bus.emit(GameEventType.WIN_EVENTS[outcome.win_level], {
                'spin_id': spin.id,
                'win_amount': outcome.total_payout,
                'total_bet': spin.total_bet,
                'win_level': outcome.win_level,
            })

        self._mark_done(spin.id)
        self.refresh_balance()
        self._start_background_claim(spin)

    def _fail_spin(self, spin, error, retryable):
        self.arena.update(
            spin.id,
            status=SpinStatus.FAILED,
            error=error.status_message,
            error_code=error.error_code,
            updated_at=time.time(),
        )
        with self._lock:
            if self._current_spin_id == spin.id:
                self._is_spinning = False
            self._cancel_events.pop(spin.id, None)

        logger.warning(f"Spin {spin.id} failed: {error.status_message}")
        self.event_bus.emit(GameEventType.SPIN_FAILED, {
            'spin_id': spin.id,
            'error': error.status_message,
            'code': error.error_code,
            'retryable': retryable,
        })
        self._report_error(error)
        self._mark_done(spin.id)

    def _mark_done(self, spin_id):
        with self._lock:
            done = self._done_events.pop(spin_id, None)
        if done is not None:
            done.set()

    def _check_cancelled(self, cancel_event):
        if cancel_event.is_set() or self._shutdown.is_set():
            raise SpinCancelledException()

    def wait_for_block(self, target_block, cancel_event=None):
        """
        Polls the ledger height until it reaches ``target_block``. Returns the
        height seen. Raises SpinCancelledException if cancelled while waiting.
        """
        waiter = cancel_event or self._shutdown
        while True:
            if waiter.is_set() or self._shutdown.is_set():
                raise SpinCancelledException(details={'target_block': target_block})
            current = self.adapter.get_current_block()
            if current >= target_block:
                return current
            logger.debug(f"Waiting for block {target_block}, current {current}")
            if waiter.wait(self.settings.block_poll_interval):
                raise SpinCancelledException(details={'target_block': target_block})

    # --- background claim ---

    def _start_background_claim(self, spin):
        # the record itself is handed over: it may already be evicted from the arena
        worker = threading.Thread(target=self._background_claim, args=(spin,), daemon=True,
                                  name=f"claim-{spin.id[:8]}")
        self._track(worker)
        worker.start()

    def _background_claim(self, spin):
        spin_id = spin.id
        if spin.claim_block is None or spin.bet_key is None:
            return
        with self._lock:
            cancel_event = self._cancel_events.get(spin_id) or self._shutdown

        deadline = None
        if self.settings.claim_max_wait is not None:
            deadline = time.monotonic() + self.settings.claim_max_wait

        try:
            while True:
                if cancel_event.is_set() or self._shutdown.is_set():
                    logger.info(f"Background claim for spin {spin_id} cancelled")
                    return
                if self.adapter.get_current_block() > spin.claim_block:
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    raise ClaimVerificationFailedException(
                        f"Gave up waiting for block {spin.claim_block + 1}",
                        details={'claim_block': spin.claim_block}
                    )
                cancel_event.wait(self.settings.block_poll_interval)

            if cancel_event.wait(self.settings.claim_grace_delay):
                logger.info(f"Background claim for spin {spin_id} cancelled")
                return

            confirmation = self.adapter.claim_spin(spin.bet_key, spin.claim_block, spin.bet_per_line, spin.paylines)
            if self.arena.update(spin_id, claim_confirmed=True, claim_tx=confirmation.tx_id) is None:
                spin.claim_confirmed = True
                spin.claim_tx = confirmation.tx_id
            logger.info(f"Claim for spin {spin_id} confirmed in {confirmation.tx_id}")
            self.event_bus.emit(GameEventType.SPIN_CLAIMED, {
                'spin_id': spin_id,
                'claim_tx': confirmation.tx_id,
                'payout': confirmation.payout,
            })
        except Exception as e:
            # the outcome already stands; claim problems are only logged
            error = e if isinstance(e, ClaimVerificationFailedException) else ClaimVerificationFailedException(
                f"Claim verification failed: {e}"
            )
            logger.warning(f"Background claim for spin {spin_id} failed: {error.status_message}")
        finally:
            with self._lock:
                self._cancel_events.pop(spin_id, None)

        if spin.outcome is not None and spin.outcome.is_win:
            if not self._shutdown.wait(self.settings.balance_refresh_delay):
                self.refresh_balance()

    # --- balance ---

    def _start_balance_polling(self):
        if self.settings.balance_poll_interval <= 0 or self._balance_thread is not None:
            return
        self._balance_thread = threading.Thread(target=self._poll_balance, daemon=True, name="balance-poll")
        self._balance_thread.start()

    def _poll_balance(self):
        while not self._shutdown.wait(self.settings.balance_poll_interval):
            self.refresh_balance()

    def refresh_balance(self):
        """Re-reads the balance from the ledger. Returns the new balance, or None if the read failed."""
        try:
            balance = self.adapter.get_balance(self.party)
        except Exception as e:
            logger.warning(f"Balance refresh for {self.party} failed: {e}")
            return None

        with self._lock:
            previous = self._balance
            self._balance = balance
            reserved = self.arena.reserved_balance()

        if balance != previous:
            logger.debug(f"Balance for {self.party}: {previous} -> {balance}")
        self.event_bus.emit(GameEventType.BALANCE_UPDATED, {
            'balance': balance,
            'previous': previous,
            'reserved': reserved,
            'available': balance - reserved,
        })
        return balance

    def get_balance(self):
        self._ensure_ready()
        self.refresh_balance()
        with self._lock:
            return self._balance

    # --- cancellation ---

    def cancel_spin(self, spin_id):
        """
        Stops waiting on a spin. An unfinished spin fails with a non-retryable
        error; a finished one just drops its background claim. Returns False for
        unknown ids and spins with nothing left to cancel.
        """
        with self._lock:
            spin = self.arena.get(spin_id)
            if spin is None:
                return False
            event = self._cancel_events.get(spin_id)
            if event is None:
                return False
            event.set()
        logger.info(f"Spin {spin_id} cancellation requested")
        return True

    def cancel_all(self):
        with self._lock:
            events = list(self._cancel_events.values())
        for event in events:
            event.set()
        return len(events)

    def wait_for_spin(self, spin_id, timeout=None):
        """Blocks until the spin completes or fails. Returns the record, or None on timeout or unknown id."""
        with self._lock:
            done = self._done_events.get(spin_id)
            spin = self.arena.get(spin_id)
        if spin is None:
            return None
        if done is not None and not done.wait(timeout):
            return None
        return dataclasses.replace(spin)

    # --- state ---

    def get_state(self):
        with self._lock:
            reserved = self.arena.reserved_balance()
            return {
                'initialized': self._initialized,
                'is_spinning': self._is_spinning,
                'current_spin_id': self._current_spin_id,
                'balance': self._balance,
                'reserved_balance': reserved,
                'available_balance': self._balance - reserved,
                'visible_grid': self._visible_grid.to_lists() if self._visible_grid else None,
                'last_error': self._last_error,
                'spin_queue': [spin.to_dict() for spin in self.arena.all()],
                'pending_count': len(self.arena.pending()),
            }

    def get_pending_spins(self):
        return [dataclasses.replace(spin) for spin in self.arena.pending()]

    def get_spin(self, spin_id):
        spin = self.arena.get(spin_id)
        return dataclasses.replace(spin) if spin is not None else None

    def get_config(self):
        return self._ensure_ready()

    # --- subscriptions ---

    def on_outcome(self, listener):
        """``listener(outcome, spin_id)`` after each completed spin."""
        return self.event_bus.on(
            GameEventType.SPIN_COMPLETED,
            lambda event: listener(event.payload['outcome'], event.payload['spin_id'])
        )

    def on_balance_update(self, listener):
        """``listener(balance, previous)``"""
        return self.event_bus.on(
            GameEventType.BALANCE_UPDATED,
            lambda event: listener(event.payload['balance'], event.payload['previous'])
        )

    def on_spin_start(self, listener):
        return self.event_bus.on(GameEventType.SPIN_QUEUED, lambda event: listener(event.payload['spin']))

    def on_spin_submitted(self, listener):
        return self.event_bus.on(GameEventType.SPIN_SUBMITTED, lambda event: listener(event.payload))

    def on_spin_failed(self, listener):
        return self.event_bus.on(GameEventType.SPIN_FAILED, lambda event: listener(event.payload))

    def on_error(self, listener):
        return self.event_bus.on(GameEventType.ERROR_OCCURRED, lambda event: listener(event.payload))

    def _report_error(self, error):
        payload = error.to_event_payload()
        with self._lock:
            self._last_error = payload
        self.event_bus.emit(GameEventType.ERROR_OCCURRED, payload)

    # --- teardown ---

    def _track(self, thread):
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)

    def reset(self):
        """Cancels outstanding work and forgets every spin. The controller stays initialized."""
        self.cancel_all()
        with self._lock:
            self.arena.clear()
            self._done_events.clear()
            self._is_spinning = False
            self._current_spin_id = None
            self._visible_grid = None
            self._last_error = None

    def destroy(self, timeout=2.0):
        """Stops polling, cancels every spin and claim, and drops all listeners."""
        self._shutdown.set()
        self.cancel_all()
        with self._lock:
            threads = list(self._threads)
            if self._balance_thread is not None:
                threads.append(self._balance_thread)
        current = threading.current_thread()
        for thread in threads:
            if thread is not current:
                thread.join(timeout)
        with self._lock:
            self._initialized = False
            self._balance_thread = None
            self._threads = []
        self.event_bus.clear()
        logger.info(f"Controller for {self.party} destroyed")
