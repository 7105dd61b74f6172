"""
Rebuilds the outcome of a past spin from its transaction id.

The bet key is taken from the spin transaction itself when the ledger still has
its logs. Otherwise it is reassembled from the indexed spin event, recovering
the identifier from the sender address. Either way the grid is derived from the
seed of the round after the spin confirmed, exactly as the live spin did.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fairspin_be.exceptions import ChainQueryException, MalformedKeyException
from fairspin_be.game_types import GameMode, SpinOutcome
from fairspin_be.utils.bet_key import decode_bet_key, encode_bet_key, party_identifier_from_address
from fairspin_be.utils.outcome import compute_outcome
from fairspin_be.utils.tx_ids import ensure_base32_tx_id
from fairspin_be.utils.tx_logs import confirmed_round, find_bet_key_in_transaction

logger = logging.getLogger(__name__)

U64_LIMIT = 2 ** 64


class BetKeySource:
    LOG = 'log'
    EVENT_STORE = 'event_store'


@dataclass(frozen=True)
class BetKeyLookup:
    bet_key: bytes
    round: int
    source: str
    tx_id: str


@dataclass(frozen=True)
class ReplayResult:
    tx_id: str
    bet_key: str
    submit_round: int
    claim_round: int
    bet_per_line: int
    paylines: int
    source: str
    outcome: SpinOutcome

    def to_dict(self) -> dict:
        return {
            'tx_id': self.tx_id,
            'bet_key': self.bet_key,
            'submit_round': self.submit_round,
            'claim_round': self.claim_round,
            'bet_per_line': self.bet_per_line,
            'paylines': self.paylines,
            'source': self.source,
            'outcome': self.outcome.to_dict(),
        }


def _u64_field(event, name):
    try:
        value = int(event.get(name) or 0)
    except (TypeError, ValueError):
        return None
    if not 0 <= value < U64_LIMIT:
        return None
    return value


def rebuild_bet_key(event) -> Optional[bytes]:
    """Bet key from an indexed spin event, or None when the event cannot describe a wager."""
    amount = _u64_field(event, 'amount')
    max_payline_index = _u64_field(event, 'max_payline_index')
    index_value = _u64_field(event, 'index_value')
    if not amount or max_payline_index is None or index_value is None:
        logger.warning(f"Spin event {event.get('txid')} has unusable bet fields")
        return None
    try:
        identifier = party_identifier_from_address(event.get('sender'))
    except MalformedKeyException:
        logger.warning(f"Spin event {event.get('txid')} has an unusable sender address")
        return None
    return encode_bet_key(identifier, amount, max_payline_index, index_value)


class ReplayReconstructor:
    def __init__(self, chain_reader, event_store, game_config):
        self.chain_reader = chain_reader
        self.event_store = event_store
        self.game_config = game_config

    def _from_ledger(self, tx_ref):
        tx_id = ensure_base32_tx_id(tx_ref)
        tx = self.chain_reader.lookup_transaction(tx_id)
        if not tx:
            return None
        bet_key = find_bet_key_in_transaction(tx)
        round_number = confirmed_round(tx)
        if bet_key is None or round_number is None:
            logger.debug(f"Transaction {tx_id} carries no bet key")
            return None
        return BetKeyLookup(bet_key=bet_key, round=round_number, source=BetKeySource.LOG,
                            tx_id=tx.get('id') or tx_id)

    def _from_event_store(self, tx_ref):
        if self.event_store is None:
            return None
        event = self.event_store.find_spin_event(tx_ref)
        if not event:
            return None
        bet_key = rebuild_bet_key(event)
        if bet_key is None or event.get('round') is None:
            return None
        return BetKeyLookup(bet_key=bet_key, round=int(event['round']), source=BetKeySource.EVENT_STORE,
                            tx_id=ensure_base32_tx_id(event.get('txid') or tx_ref))

    def extract_bet_key(self, tx_ref) -> Optional[BetKeyLookup]:
        """
        Finds the bet key and confirmation round for a spin transaction.

        Ledger errors do not stop the event store fallback; they are re-raised
        only if the fallback finds nothing either.
        """
        ledger_error = None
        try:
            lookup = self._from_ledger(tx_ref)
        except ChainQueryException as e:
            logger.warning(f"Ledger lookup for {tx_ref} failed, trying event store: {e.status_message}")
            lookup, ledger_error = None, e
        if lookup is not None:
            return lookup

        lookup = self._from_event_store(tx_ref)
        if lookup is None and ledger_error is not None:
            raise ledger_error
        return lookup

    def default_paylines(self, commitment):
        if self.game_config.mode == GameMode.WAYS:
            return 1
        return commitment.max_payline_index + 1

    def reconstruct(self, tx_ref, bet_per_line=None, paylines=None) -> Optional[ReplayResult]:
        """
        Replays a spin. Bet size and payline count default to what the bet key
        committed to. Returns None when no bet key can be found for ``tx_ref``.
        """
        lookup = self.extract_bet_key(tx_ref)
        if lookup is None:
            logger.info(f"No bet key found for transaction {tx_ref}")
            return None

        commitment = decode_bet_key(lookup.bet_key)
        if bet_per_line is None:
            bet_per_line = commitment.amount
        if paylines is None:
            paylines = self.default_paylines(commitment)

        claim_round = lookup.round + 1
        seed = self.chain_reader.get_block_seed(claim_round)
        outcome = compute_outcome(
            lookup.bet_key, seed, self.game_config, bet_per_line, paylines, block_number=claim_round
        )
        logger.info(f"Replayed {lookup.tx_id} from {lookup.source}: payout {outcome.total_payout}")
        return ReplayResult(
            tx_id=lookup.tx_id,
            bet_key=lookup.bet_key.hex(),
            submit_round=lookup.round,
            claim_round=claim_round,
            bet_per_line=bet_per_line,
            paylines=paylines,
            source=lookup.source,
            outcome=outcome,
        )
