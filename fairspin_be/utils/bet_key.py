"""
Bet key codec.

A bet key is the 56-byte commitment written on-chain when a spin is submitted:

    identifier (32) | bet per line (u64 BE) | max payline index (u64 BE) | index value (u64 BE)

It fixes every wager parameter before the deciding block seed exists, so the
grid derived later can be audited by anyone holding the key and the seed.
"""
import base64
import hashlib
import re
import struct

from fairspin_be.exceptions import MalformedKeyException
from fairspin_be.game_types import BetCommitment

IDENTIFIER_LENGTH = 32
BET_KEY_LENGTH = 56
BET_KEY_HEX_LENGTH = BET_KEY_LENGTH * 2
ADDRESS_LENGTH = 58

_FIELDS = struct.Struct('>QQQ')
_HEX_RE = re.compile(r'^[0-9a-fA-F]{112}\Z')


def encode_bet_key(identifier, amount, max_payline_index, index_value):
    """Concatenates the four commitment fields. Inputs are validated by the caller."""
    return bytes(identifier) + _FIELDS.pack(amount, max_payline_index, index_value)


def decode_bet_key(data):
    if data is None or len(data) != BET_KEY_LENGTH:
        length = None if data is None else len(data)
        raise MalformedKeyException(
            f"Bet key must be {BET_KEY_LENGTH} bytes, got {length}",
            details={'expected': BET_KEY_LENGTH, 'actual': length}
        )
    data = bytes(data)
    amount, max_payline_index, index_value = _FIELDS.unpack(data[IDENTIFIER_LENGTH:])
    return BetCommitment(
        identifier=data[:IDENTIFIER_LENGTH],
        amount=amount,
        max_payline_index=max_payline_index,
        index_value=index_value,
    )


def bet_key_to_hex(data):
    if len(data) != BET_KEY_LENGTH:
        raise MalformedKeyException(
            f"Bet key must be {BET_KEY_LENGTH} bytes, got {len(data)}",
            details={'expected': BET_KEY_LENGTH, 'actual': len(data)}
        )
    return bytes(data).hex()


def bet_key_from_hex(text):
    if not isinstance(text, str) or not _HEX_RE.match(text):
        raise MalformedKeyException(
            f"Bet key hex must be exactly {BET_KEY_HEX_LENGTH} hex characters",
            details={'expected': BET_KEY_HEX_LENGTH, 'actual': len(text) if isinstance(text, str) else None}
        )
    return bytes.fromhex(text)


def is_valid_bet_key_hex(text):
    return isinstance(text, str) and bool(_HEX_RE.match(text))


def extract_identifier(bet_key_hex):
    return decode_bet_key(bet_key_from_hex(bet_key_hex)).identifier


def extract_amount(bet_key_hex):
    return decode_bet_key(bet_key_from_hex(bet_key_hex)).amount


def extract_max_payline_index(bet_key_hex):
    return decode_bet_key(bet_key_from_hex(bet_key_hex)).max_payline_index


def extract_index_value(bet_key_hex):
    return decode_bet_key(bet_key_from_hex(bet_key_hex)).index_value


def address_from_identifier(identifier):
    """Inverse of party_identifier_from_address: base32(public key || 4-byte checksum), unpadded."""
    if len(identifier) != IDENTIFIER_LENGTH:
        raise MalformedKeyException(f"Identifier must be {IDENTIFIER_LENGTH} bytes")
    checksum = hashlib.new('sha512_256', bytes(identifier)).digest()[-4:]
    return base64.b32encode(bytes(identifier) + checksum).decode('ascii').rstrip('=')


def party_identifier_from_address(address):
    """
    Decodes a 58-character base32 account address into its 32-byte public key.

    The trailing 4 checksum bytes are dropped without verification.
    """
    if not isinstance(address, str) or len(address) != ADDRESS_LENGTH:
        raise MalformedKeyException(
            f"Account address must be {ADDRESS_LENGTH} characters",
            details={'address': address}
        )
    try:
        raw = base64.b32decode(address.upper() + '=' * 6)
    except ValueError as e:
        raise MalformedKeyException(f"Account address is not valid base32: {e}", details={'address': address})
    return raw[:IDENTIFIER_LENGTH]
