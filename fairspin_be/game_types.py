"""
Value types shared by the spin engine.

Grids, commitments and outcomes are immutable once built. QueuedSpin is the only
mutable record and is owned by the lifecycle controller's arena.
"""
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


class SpinStatus:
    PENDING = 'pending'
    SUBMITTING = 'submitting'
    WAITING = 'waiting'
    CLAIMING = 'claiming'
    COMPLETED = 'completed'
    FAILED = 'failed'

    TERMINAL = (COMPLETED, FAILED)
    IN_FLIGHT = (SUBMITTING, WAITING, CLAIMING)


class WinLevel:
    NONE = 'none'
    SMALL = 'small'
    MEDIUM = 'medium'
    LARGE = 'large'
    JACKPOT = 'jackpot'

    # Ascending order, used for monotonicity checks
    ORDER = (NONE, SMALL, MEDIUM, LARGE, JACKPOT)


class GameMode:
    PAYLINE = 'payline'
    WAYS = 'ways'


@dataclass(frozen=True)
class BetCommitment:
    """Decoded fields of a 56-byte bet key."""
    identifier: bytes
    amount: int
    max_payline_index: int
    index_value: int

    def to_bytes(self) -> bytes:
        from fairspin_be.utils.bet_key import encode_bet_key
        return encode_bet_key(self.identifier, self.amount, self.max_payline_index, self.index_value)

    def hex(self) -> str:
        return self.to_bytes().hex()


@dataclass(frozen=True)
class SymbolGrid:
    """Column-major symbol window: ``reels[reel][row]``."""
    reels: Tuple[Tuple[str, ...], ...]

    @property
    def reel_count(self) -> int:
        return len(self.reels)

    @property
    def window_length(self) -> int:
        return len(self.reels[0]) if self.reels else 0

    def symbol_at(self, reel: int, row: int) -> str:
        return self.reels[reel][row]

    def to_lists(self) -> List[List[str]]:
        return [list(reel) for reel in self.reels]


@dataclass(frozen=True)
class WinningLine:
    line_id: int
    symbol: str
    match_count: int
    payout: int
    pattern: Optional[Tuple[int, ...]] = None
    ways: Optional[int] = None
    wild_multiplier: Optional[int] = None
    is_jackpot: bool = False

    def to_dict(self) -> dict:
        data = {
            'line_id': self.line_id,
            'symbol': self.symbol,
            'match_count': self.match_count,
            'payout': self.payout,
        }
        if self.pattern is not None:
            data['pattern'] = list(self.pattern)
        if self.ways is not None:
            data['ways'] = self.ways
            data['wild_multiplier'] = self.wild_multiplier
        if self.is_jackpot:
            data['is_jackpot'] = True
        return data


@dataclass(frozen=True)
class SpinOutcome:
    grid: SymbolGrid
    winning_lines: Tuple[WinningLine, ...]
    total_payout: int
    win_level: str
    total_bet: int = 0
    bonus_spins_awarded: int = 0
    jackpot_hit: bool = False
    block_number: Optional[int] = None
    block_seed: Optional[str] = None
    bet_key: Optional[str] = None

    @property
    def is_win(self) -> bool:
        return self.total_payout > 0

    def to_dict(self) -> dict:
        return {
            'grid': self.grid.to_lists(),
            'winning_lines': [line.to_dict() for line in self.winning_lines],
            'total_payout': self.total_payout,
            'total_bet': self.total_bet,
            'win_level': self.win_level,
            'bonus_spins_awarded': self.bonus_spins_awarded,
            'jackpot_hit': self.jackpot_hit,
            'block_number': self.block_number,
            'block_seed': self.block_seed,
            'bet_key': self.bet_key,
        }


@dataclass(frozen=True)
class SubmittedSpin:
    """What a chain adapter returns once a spin transaction is accepted."""
    bet_key: str
    tx_id: str
    submit_block: int
    claim_block: int


@dataclass(frozen=True)
class ClaimConfirmation:
    tx_id: Optional[str]
    payout: int
    round: Optional[int] = None


@dataclass
class QueuedSpin:
    id: str
    status: str
    bet_per_line: int
    paylines: int
    total_bet: int
    spin_fee: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    bet_key: Optional[str] = None
    tx_id: Optional[str] = None
    submit_block: Optional[int] = None
    claim_block: Optional[int] = None
    outcome: Optional[SpinOutcome] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    claim_confirmed: bool = False
    claim_tx: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in SpinStatus.TERMINAL

    @property
    def reserved_amount(self) -> int:
        return 0 if self.is_terminal else self.total_bet + self.spin_fee

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'status': self.status,
            'bet_per_line': self.bet_per_line,
            'paylines': self.paylines,
            'total_bet': self.total_bet,
            'created_at': self.created_at,
            'bet_key': self.bet_key,
            'tx_id': self.tx_id,
            'submit_block': self.submit_block,
            'claim_block': self.claim_block,
            'outcome': self.outcome.to_dict() if self.outcome else None,
            'error': self.error,
            'claim_confirmed': self.claim_confirmed,
        }


@dataclass(frozen=True)
class PaytableConfig:
    """Read-only scoring rules for one machine."""
    mode: str
    symbols: Dict[str, Dict[int, int]]
    payline_patterns: Tuple[Tuple[int, ...], ...] = ()
    blank_symbol: Optional[str] = '_'
    wild_symbols: Dict[str, int] = field(default_factory=dict)
    min_match: int = 3
    bonus_symbol: Optional[str] = None
    bonus_min_reels: int = 2
    bonus_spins_awarded: int = 0
    jackpot_symbol: Optional[str] = None
    jackpot_min_reels: int = 3
    jackpot_amount: int = 0
    bonus_multiplier_numerator: int = 1
    bonus_multiplier_denominator: int = 1
    win_level_thresholds: Dict[str, int] = field(default_factory=dict)

    def multiplier(self, symbol: str, match_count: int) -> int:
        if match_count < self.min_match:
            return 0
        return self.symbols.get(symbol, {}).get(match_count, 0)


@dataclass(frozen=True)
class GameConfig:
    name: str
    short_name: str
    mode: str
    reel_count: int
    reel_length: int
    window_length: int
    reel_strip: str
    min_bet: int
    max_bet: int
    max_paylines: int
    paytable: PaytableConfig
    # Per-spin contract cost, held in reserve while a spin is in flight
    spin_fee: int = 0
    # Box storage, network fee and safety buffer, checked but not reserved
    fee_overhead: int = 0

    @property
    def required_fees(self) -> int:
        return self.spin_fee + self.fee_overhead

    def to_public_dict(self) -> dict:
        return {
            'name': self.name,
            'short_name': self.short_name,
            'mode': self.mode,
            'reel_count': self.reel_count,
            'reel_length': self.reel_length,
            'window_length': self.window_length,
            'min_bet': self.min_bet,
            'max_bet': self.max_bet,
            'max_paylines': self.max_paylines,
            'spin_fee': self.spin_fee,
            'fee_overhead': self.fee_overhead,
            'paylines': [list(p) for p in self.paytable.payline_patterns],
            'paytable': {
                symbol: {str(count): mult for count, mult in payouts.items()}
                for symbol, payouts in self.paytable.symbols.items()
            },
        }
