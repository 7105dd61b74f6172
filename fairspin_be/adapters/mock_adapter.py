"""
In-memory sandbox ledger.

Block seeds are a hash of the round number, so every outcome is reproducible.
Transactions are stored in the same shape the indexer returns, which lets the
replay path run against this adapter unchanged.
"""
import base64
import hashlib
import logging
import threading

from fairspin_be.adapters.base import ChainAdapter
from fairspin_be.exceptions import (
    ChainQueryException, InsufficientBalanceException, MalformedKeyException, SubmissionFailedException
)
from fairspin_be.game_types import ClaimConfirmation, GameMode, SubmittedSpin
from fairspin_be.utils.bet_key import (
    address_from_identifier, bet_key_from_hex, encode_bet_key,
    party_identifier_from_address
)
from fairspin_be.utils.outcome import compute_outcome, total_bet_for
from fairspin_be.utils.tx_logs import ARC4_RETURN_PREFIX

logger = logging.getLogger(__name__)

DEFAULT_STARTING_BALANCE = 10_000_000_000
DEFAULT_START_BLOCK = 1000
MOCK_SEED_DOMAIN = b'fairspin-mock-seed'


def mock_block_seed(round_number):
    return hashlib.sha256(MOCK_SEED_DOMAIN + int(round_number).to_bytes(8, 'big')).digest()


class MockChainAdapter(ChainAdapter):
    def __init__(self, game_config, starting_balance=DEFAULT_STARTING_BALANCE,
                 start_block=DEFAULT_START_BLOCK, auto_advance=True, emit_logs=True):
        self.game_config = game_config
        self.balance = starting_balance
        self.current_block = start_block
        # advance one round per height query so waiting loops make progress
        self.auto_advance = auto_advance
        # False simulates pruned logs, leaving only the event store for replay
        self.emit_logs = emit_logs
        self.initialized = False
        self.fail_submissions = False
        self.fail_claims = False
        self.transactions = {}
        self.pending_bets = {}
        self.claimed = {}
        self._seed_overrides = {}
        self._index_counter = 0
        self._lock = threading.RLock()

    def initialize(self):
        self.initialized = True
        logger.info("Mock chain adapter initialized (sandbox mode)")

    # --- ChainReader ---

    def get_current_block(self):
        with self._lock:
            current = self.current_block
            if self.auto_advance:
                self.current_block += 1
            return current

    def advance_blocks(self, count=1):
        with self._lock:
            self.current_block += count
            return self.current_block

    def set_block_seed(self, round_number, seed):
        with self._lock:
            self._seed_overrides[round_number] = bytes(seed)

    def get_block_seed(self, round_number):
        with self._lock:
            return self._seed_overrides.get(round_number) or mock_block_seed(round_number)

    def lookup_transaction(self, tx_id):
        with self._lock:
            return self.transactions.get(tx_id)

    # --- ChainAdapter ---

    def submit_spin(self, bet_per_line, paylines, party):
        with self._lock:
            if self.fail_submissions:
                raise SubmissionFailedException("Mock submission rejected")

            total_bet = total_bet_for(self.game_config, bet_per_line, paylines)
            cost = total_bet + self.game_config.spin_fee
            if self.balance < cost:
                raise InsufficientBalanceException(
                    "Insufficient balance", details={'required': cost, 'balance': self.balance}
                )
            self.balance -= cost

            max_payline_index = 0 if self.game_config.mode == GameMode.WAYS else paylines - 1
            index_value = self._index_counter
            self._index_counter += 1
            bet_key = encode_bet_key(
                self._identifier_for(party), bet_per_line, max_payline_index, index_value
            )

            submit_block = self.current_block
            claim_block = submit_block + 1
            tx_id = base64.b32encode(
                hashlib.sha256(bet_key + submit_block.to_bytes(8, 'big')).digest()
            ).decode('ascii').rstrip('=')

            logs = []
            if self.emit_logs:
                logs.append(base64.b64encode(ARC4_RETURN_PREFIX + bet_key).decode('ascii'))
            self.transactions[tx_id] = {
                'id': tx_id,
                'tx-type': 'appl',
                'sender': address_from_identifier(bet_key[:32]),
                'confirmed-round': submit_block,
                'logs': logs,
                'application-transaction': {},
                'inner-txns': [],
            }
            self.pending_bets[bet_key.hex()] = {
                'bet_per_line': bet_per_line,
                'paylines': paylines,
                'claim_block': claim_block,
                'tx_id': tx_id,
            }
            logger.debug(f"Mock spin submitted: {bet_key.hex()[:16]}... tx {tx_id}")
            return SubmittedSpin(
                bet_key=bet_key.hex(), tx_id=tx_id, submit_block=submit_block, claim_block=claim_block
            )

    def _identifier_for(self, party):
        try:
            return party_identifier_from_address(party)
        except MalformedKeyException:
            return hashlib.sha256(str(party).encode('utf-8')).digest()

    def calculate_outcome_from_seed(self, bet_key, claim_block, bet_per_line, paylines):
        seed = self.get_block_seed(claim_block)
        return compute_outcome(
            bet_key_from_hex(bet_key), seed, self.game_config, bet_per_line, paylines,
            block_number=claim_block,
        )

    def claim_spin(self, bet_key, claim_block, bet_per_line, paylines):
        with self._lock:
            if self.fail_claims:
                raise ChainQueryException("Mock claim rejected")
            pending = self.pending_bets.pop(bet_key, None)
            if pending is None:
                raise ChainQueryException("Bet not found", details={'bet_key': bet_key})
            outcome = self.calculate_outcome_from_seed(bet_key, claim_block, bet_per_line, paylines)
            self.balance += outcome.total_payout
            claim_tx = f"claim_{pending['tx_id']}"
            self.claimed[bet_key] = outcome.total_payout
            return ClaimConfirmation(tx_id=claim_tx, payout=outcome.total_payout, round=self.current_block)

    def get_balance(self, party):
        with self._lock:
            return self.balance

    def get_contract_config(self):
        return self.game_config
