"""
Bet key extraction from indexer-shaped transaction dicts.

The spin method returns the bet key, so it shows up either as the ARC-4 return
value, as a log entry (bare 56 bytes, or 60 bytes with the ARC-4 return prefix),
or in the logs of an inner application call.
"""
import base64
import binascii
import logging

from fairspin_be.utils.bet_key import BET_KEY_LENGTH

logger = logging.getLogger(__name__)

ARC4_RETURN_PREFIX = bytes.fromhex('151f7c75')
PREFIXED_BET_KEY_LENGTH = len(ARC4_RETURN_PREFIX) + BET_KEY_LENGTH


def decode_log_entry(entry):
    """Base64 log string (or raw bytes) to bytes. Returns None when it cannot be decoded."""
    if isinstance(entry, (bytes, bytearray)):
        return bytes(entry)
    if not isinstance(entry, str):
        return None
    try:
        return base64.b64decode(entry, validate=True)
    except (binascii.Error, ValueError):
        return None


def bet_key_from_log_bytes(data):
    if data is None:
        return None
    if len(data) == BET_KEY_LENGTH:
        return data
    if len(data) == PREFIXED_BET_KEY_LENGTH and data.startswith(ARC4_RETURN_PREFIX):
        return data[len(ARC4_RETURN_PREFIX):]
    return None


def find_bet_key_in_logs(logs):
    for index, entry in enumerate(logs or []):
        data = decode_log_entry(entry)
        if data is None:
            logger.debug(f"Skipping undecodable log entry {index}")
            continue
        bet_key = bet_key_from_log_bytes(data)
        if bet_key is not None:
            return bet_key
    return None


def _tx_type(tx):
    return tx.get('tx-type') or tx.get('type')


def find_bet_key_in_transaction(tx):
    """
    Searches a transaction for the bet key. First match wins:

      1. application return value
      2. the transaction's own logs
      3. inner application calls, depth first
    """
    if not tx:
        return None

    app_call = tx.get('application-transaction') or {}
    return_value = app_call.get('return-value')
    if return_value:
        bet_key = bet_key_from_log_bytes(decode_log_entry(return_value))
        if bet_key is not None:
            return bet_key

    bet_key = find_bet_key_in_logs(tx.get('logs'))
    if bet_key is not None:
        return bet_key

    for inner in tx.get('inner-txns') or []:
        if _tx_type(inner) not in (None, 'appl'):
            continue
        bet_key = find_bet_key_in_transaction(inner)
        if bet_key is not None:
            return bet_key
    return None


def confirmed_round(tx):
    value = tx.get('confirmed-round', tx.get('confirmedRound'))
    return int(value) if value is not None else None
