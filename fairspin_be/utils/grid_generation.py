"""
Deterministic reel grid derivation.

The contract and every client must arrive at the same grid for a given bet key
and block seed, so this path uses only hashing, integer arithmetic and slicing.

    combined = sha256(seed || bet_key)
    reel i   : h = sha256(combined || ascii(i + 1))
               stop = u64_be(h[-8:]) % (reel_length - (window_length + 1))
               window = reel[(stop + k) % reel_length] for k in range(window_length)

The reel strip holds ``reel_count`` reels back to back, ``reel_length`` symbols each.
"""
import hashlib

from fairspin_be.exceptions import InvalidReelDataException
from fairspin_be.game_types import SymbolGrid
from fairspin_be.utils.bet_key import BET_KEY_LENGTH

SEED_LENGTH = 32
DEFAULT_REEL_COUNT = 5
# Reel ids are the ASCII digits '1', '2', ... appended to the combined hash
REEL_ID_BASE = 0x31


def _validate_inputs(bet_key, seed, reel_strip, reel_length, window_length, reel_count):
    if bet_key is None or len(bet_key) != BET_KEY_LENGTH:
        raise InvalidReelDataException(
            f"Bet key must be {BET_KEY_LENGTH} bytes",
            details={'actual': None if bet_key is None else len(bet_key)}
        )
    if seed is None or len(seed) != SEED_LENGTH:
        raise InvalidReelDataException(
            f"Block seed must be {SEED_LENGTH} bytes",
            details={'actual': None if seed is None else len(seed)}
        )
    if not isinstance(reel_length, int) or not isinstance(window_length, int) or window_length <= 0:
        raise InvalidReelDataException("Reel length and window length must be positive integers")
    if reel_length <= window_length + 1:
        raise InvalidReelDataException(
            f"Reel length {reel_length} leaves no stop range for a window of {window_length}"
        )
    if reel_count <= 0:
        raise InvalidReelDataException("Reel count must be positive")
    if reel_strip is None or len(reel_strip) < reel_length:
        raise InvalidReelDataException(
            f"Reel strip shorter than one reel ({reel_length} symbols)",
            details={'actual': 0 if reel_strip is None else len(reel_strip)}
        )
    if len(reel_strip) < reel_length * reel_count:
        raise InvalidReelDataException(
            f"Reel strip must hold {reel_count} reels of {reel_length} symbols, got {len(reel_strip)}",
            details={'expected': reel_length * reel_count, 'actual': len(reel_strip)}
        )


def reel_stops_from_seed(bet_key, seed, reel_length, window_length, reel_count=DEFAULT_REEL_COUNT):
    """Returns the top stop position of every reel."""
    combined = hashlib.sha256(bytes(seed) + bytes(bet_key)).digest()
    stop_range = reel_length - (window_length + 1)
    stops = []
    for reel_index in range(reel_count):
        reel_hash = hashlib.sha256(combined + bytes([REEL_ID_BASE + reel_index])).digest()
        value = int.from_bytes(reel_hash[-8:], 'big')
        stops.append(value % stop_range)
    return stops


def reel_window(reel_strip, reel_index, stop, reel_length, window_length):
    reel = reel_strip[reel_index * reel_length:(reel_index + 1) * reel_length]
    return tuple(reel[(stop + offset) % reel_length] for offset in range(window_length))


def derive_grid(bet_key, seed, reel_strip, reel_length, window_length, reel_count=DEFAULT_REEL_COUNT):
    _validate_inputs(bet_key, seed, reel_strip, reel_length, window_length, reel_count)
    stops = reel_stops_from_seed(bet_key, seed, reel_length, window_length, reel_count)
    return SymbolGrid(reels=tuple(
        reel_window(reel_strip, reel_index, stop, reel_length, window_length)
        for reel_index, stop in enumerate(stops)
    ))


def grid_to_string(grid):
    """Column-major concatenation, e.g. the 15-character form of a 5x3 grid."""
    return ''.join(''.join(reel) for reel in grid.reels)


def grid_from_string(text, reel_count=DEFAULT_REEL_COUNT, window_length=3):
    if len(text) != reel_count * window_length:
        raise InvalidReelDataException(
            f"Grid string must be {reel_count * window_length} symbols, got {len(text)}"
        )
    return SymbolGrid(reels=tuple(
        tuple(text[reel * window_length:(reel + 1) * window_length]) for reel in range(reel_count)
    ))


def format_grid(grid):
    """Row-by-row rendering for logs and the CLI."""
    return '\n'.join(
        ' '.join(grid.reels[reel][row] for reel in range(grid.reel_count))
        for row in range(grid.window_length)
    )
