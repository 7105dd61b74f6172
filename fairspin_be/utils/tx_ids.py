import base64
import logging
import re

logger = logging.getLogger(__name__)

_BASE32_TX_ID_RE = re.compile(r'^[A-Z2-7]{52}\Z')
_RAW_HEX_TX_ID_RE = re.compile(r'^[0-9a-fA-F]{64}\Z')
_HEX_RE = re.compile(r'^[0-9a-fA-F]+\Z')


def ensure_base32_tx_id(tx_id):
    """
    Normalises a transaction reference to the 52-character base32 form used by the indexer.

    Accepted inputs:
      - base32 ids, returned unchanged
      - 64 hex characters (the raw 32-byte id)
      - hex-encoded ASCII of a base32 id, which is how event-store rows keep them

    Anything else is returned unchanged so the caller can still try it verbatim.
    """
    if not isinstance(tx_id, str):
        return tx_id
    if _BASE32_TX_ID_RE.match(tx_id):
        return tx_id

    if _RAW_HEX_TX_ID_RE.match(tx_id):
        return base64.b32encode(bytes.fromhex(tx_id)).decode('ascii').rstrip('=')

    if len(tx_id) > 60 and len(tx_id) % 2 == 0 and _HEX_RE.match(tx_id):
        try:
            decoded = bytes.fromhex(tx_id).decode('ascii')
        except UnicodeDecodeError:
            logger.debug(f"Hex transaction reference {tx_id[:16]}... is not ASCII")
            return tx_id
        if _BASE32_TX_ID_RE.match(decoded):
            return decoded

    return tx_id


def tx_id_variants(tx_id):
    """
    Every form a stored reference to the same transaction may take: the
    reference as given, its base32 form, and the hex-encoded ASCII of that.
    """
    normalized = ensure_base32_tx_id(tx_id)
    variants = [tx_id]
    if isinstance(normalized, str) and _BASE32_TX_ID_RE.match(normalized):
        for candidate in (normalized, normalized.encode('ascii').hex()):
            if candidate not in variants:
                variants.append(candidate)
    return variants
