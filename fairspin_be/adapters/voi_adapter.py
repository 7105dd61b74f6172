"""
Voi ledger adapter.

Reads go straight to the algod and indexer REST APIs with ``requests``. Writes
(spin and claim calls) are delegated to an injected TransactionSubmitter since
signing happens in the wallet.
"""
import base64
import binascii
import logging
import secrets

import requests

from fairspin_be.adapters.base import ChainAdapter
from fairspin_be.exceptions import ChainQueryException, SubmissionFailedException
from fairspin_be.game_types import ClaimConfirmation, GameMode, SubmittedSpin
from fairspin_be.utils.bet_key import bet_key_from_hex
from fairspin_be.utils.grid_generation import SEED_LENGTH
from fairspin_be.utils.outcome import compute_outcome, total_bet_for
from fairspin_be.utils.tx_ids import ensure_base32_tx_id
from fairspin_be.utils.tx_logs import confirmed_round, find_bet_key_in_transaction

logger = logging.getLogger(__name__)

DEFAULT_NODE_URL = 'https://mainnet-api.voi.nodely.dev'
DEFAULT_INDEXER_URL = 'https://mainnet-idx.voi.nodely.dev'
DEFAULT_TIMEOUT = 10
# upper bound for the player-chosen index value
PLAYER_INDEX_RANGE = 1000


class VoiChainAdapter(ChainAdapter):
    def __init__(self, game_config, node_url=DEFAULT_NODE_URL, indexer_url=DEFAULT_INDEXER_URL,
                 api_token=None, transaction_submitter=None, timeout=DEFAULT_TIMEOUT, session=None):
        self.game_config = game_config
        self.node_url = node_url.rstrip('/')
        self.indexer_url = indexer_url.rstrip('/')
        self.transaction_submitter = transaction_submitter
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_token:
            self.session.headers.update({'X-Algo-API-Token': api_token})
        self.initialized = False

    def _get_json(self, base_url, path, params=None, allow_missing=False):
        url = f"{base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise ChainQueryException(f"Request to {path} failed", details={'error': str(e)})

        if response.status_code == 200:
            return response.json()
        if response.status_code == 404 and allow_missing:
            return None
        logger.warning(f"Unexpected status {response.status_code} from {url}")
        raise ChainQueryException(
            f"Ledger returned {response.status_code} for {path}",
            details={'status_code': response.status_code}
        )

    def initialize(self):
        status = self._get_json(self.node_url, '/v2/status')
        self.initialized = True
        logger.info(f"Voi adapter initialized at round {status.get('last-round')}")

    # --- ChainReader ---

    def get_current_block(self):
        status = self._get_json(self.node_url, '/v2/status')
        return int(status['last-round'])

    def get_block_seed(self, round_number):
        data = self._get_json(self.node_url, f'/v2/blocks/{round_number}', params={'format': 'json'})
        seed = (data.get('block') or {}).get('seed')
        if not seed:
            raise ChainQueryException(f"Block {round_number} has no seed", details={'round': round_number})
        try:
            seed_bytes = base64.b64decode(seed)
        except (binascii.Error, ValueError):
            raise ChainQueryException(f"Block {round_number} seed is not base64", details={'round': round_number})
        if len(seed_bytes) < SEED_LENGTH:
            raise ChainQueryException(f"Block {round_number} seed is too short", details={'round': round_number})
        return seed_bytes[-SEED_LENGTH:]

    def lookup_transaction(self, tx_id):
        data = self._get_json(
            self.indexer_url, f'/v2/transactions/{ensure_base32_tx_id(tx_id)}', allow_missing=True
        )
        if data is None:
            return None
        return data.get('transaction')

    # --- ChainAdapter ---

    def _require_submitter(self):
        if self.transaction_submitter is None:
            raise SubmissionFailedException("No transaction submitter configured for this adapter")
        return self.transaction_submitter

    def submit_spin(self, bet_per_line, paylines, party):
        submitter = self._require_submitter()
        max_payline_index = 0 if self.game_config.mode == GameMode.WAYS else paylines - 1
        payment = total_bet_for(self.game_config, bet_per_line, paylines) + self.game_config.spin_fee
        player_index = secrets.randbelow(PLAYER_INDEX_RANGE)

        try:
            confirmed = submitter.submit_spin(bet_per_line, max_payline_index, player_index, payment, party)
        except SubmissionFailedException:
            raise
        except Exception as e:
            logger.error(f"Spin submission failed: {e}", exc_info=True)
            raise SubmissionFailedException(f"Spin submission failed: {e}")

        bet_key = find_bet_key_in_transaction(confirmed)
        submit_block = confirmed_round(confirmed)
        if bet_key is None or submit_block is None:
            raise SubmissionFailedException(
                "Bet key not found in confirmed spin transaction", details={'tx_id': confirmed.get('id')}
            )
        return SubmittedSpin(
            bet_key=bet_key.hex(),
            tx_id=confirmed.get('id'),
            submit_block=submit_block,
            claim_block=submit_block + 1,
        )

    def calculate_outcome_from_seed(self, bet_key, claim_block, bet_per_line, paylines):
        seed = self.get_block_seed(claim_block)
        return compute_outcome(
            bet_key_from_hex(bet_key), seed, self.game_config, bet_per_line, paylines,
            block_number=claim_block,
        )

    def claim_spin(self, bet_key, claim_block, bet_per_line, paylines):
        submitter = self._require_submitter()
        party = getattr(submitter, 'address', None)
        result = submitter.submit_claim(bet_key_from_hex(bet_key), party)
        return ClaimConfirmation(
            tx_id=result.get('id'),
            payout=int(result.get('payout') or 0),
            round=confirmed_round(result),
        )

    def get_balance(self, party):
        data = self._get_json(self.node_url, f'/v2/accounts/{party}')
        return int(data.get('amount', 0))

    def get_contract_config(self):
        return self.game_config
