"""
Ways-to-win evaluation.

A symbol pays when it (or a wild) shows anywhere in the window of consecutive
reels starting at reel 0. Ways are the product of per-reel match counts.
Scatter symbols never pay as lines: the jackpot trigger replaces the whole
payout with a fixed amount, the bonus trigger schedules free spins.

On a bonus spin the winning lines keep their unboosted payouts and the bonus
multiplier is applied once to their sum, so total_payout can exceed the sum
of the line payouts.
"""
from dataclasses import dataclass, field
from typing import List

from fairspin_be.game_types import WinningLine

# line_id given to the single jackpot line
JACKPOT_LINE_ID = -1


@dataclass
class WaysResult:
    winning_lines: List[WinningLine] = field(default_factory=list)
    total_payout: int = 0
    bonus_spins_awarded: int = 0
    jackpot_hit: bool = False


def _is_scatter(symbol, paytable):
    return symbol in (paytable.bonus_symbol, paytable.jackpot_symbol)


def matches_on_reel(reel, symbol, paytable):
    """Occurrences of ``symbol`` on one reel window, wilds included."""
    if symbol in paytable.wild_symbols or _is_scatter(symbol, paytable):
        return 0
    return sum(1 for cell in reel if cell == symbol or cell in paytable.wild_symbols)


def consecutive_reels(grid, symbol, paytable):
    """Indices of the reels, from reel 0, that contain ``symbol`` without a gap."""
    contributing = []
    for reel_index, reel in enumerate(grid.reels):
        if matches_on_reel(reel, symbol, paytable) == 0:
            break
        contributing.append(reel_index)
    return contributing


def highest_wild_multiplier(grid, reel_indices, paytable):
    highest = 1
    for reel_index in reel_indices:
        for cell in grid.reels[reel_index]:
            highest = max(highest, paytable.wild_symbols.get(cell, 1))
    return highest


def reels_containing(grid, symbol):
    """Number of distinct reels whose window shows ``symbol``."""
    return sum(1 for reel in grid.reels if symbol in reel)


def apply_bonus_multiplier(payout, paytable):
    """Bonus-spin boost, floored once on the summed line payouts."""
    return payout * paytable.bonus_multiplier_numerator // paytable.bonus_multiplier_denominator


def evaluate_ways(grid, paytable, bet_per_line, is_bonus_spin=False):
    result = WaysResult()

    if paytable.jackpot_symbol is not None and \
            reels_containing(grid, paytable.jackpot_symbol) >= paytable.jackpot_min_reels:
        result.jackpot_hit = True
        result.total_payout = paytable.jackpot_amount
        result.winning_lines.append(WinningLine(
            line_id=JACKPOT_LINE_ID,
            symbol=paytable.jackpot_symbol,
            match_count=reels_containing(grid, paytable.jackpot_symbol),
            payout=paytable.jackpot_amount,
            is_jackpot=True,
        ))
        return result

    for line_id, symbol in enumerate(sorted(paytable.symbols)):
        if symbol in paytable.wild_symbols or _is_scatter(symbol, paytable):
            continue
        contributing = consecutive_reels(grid, symbol, paytable)
        match_count = len(contributing)
        multiplier = paytable.multiplier(symbol, match_count)
        if multiplier == 0:
            continue

        ways = 1
        for reel_index in contributing:
            ways *= matches_on_reel(grid.reels[reel_index], symbol, paytable)
        wild_multiplier = highest_wild_multiplier(grid, contributing, paytable)
        payout = multiplier * ways * bet_per_line * wild_multiplier

        result.winning_lines.append(WinningLine(
            line_id=line_id,
            symbol=symbol,
            match_count=match_count,
            payout=payout,
            ways=ways,
            wild_multiplier=wild_multiplier,
        ))

    result.total_payout = sum(line.payout for line in result.winning_lines)
    if is_bonus_spin:
        result.total_payout = apply_bonus_multiplier(result.total_payout, paytable)

    if paytable.bonus_symbol is not None and \
            reels_containing(grid, paytable.bonus_symbol) >= paytable.bonus_min_reels:
        result.bonus_spins_awarded = paytable.bonus_spins_awarded

    return result
