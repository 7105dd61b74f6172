from fairspin_be.game_types import GameMode, SpinOutcome, WinLevel
from fairspin_be.utils.game_config import DEFAULT_WIN_LEVEL_THRESHOLDS
from fairspin_be.utils.grid_generation import derive_grid
from fairspin_be.utils.payline_evaluator import evaluate_paylines
from fairspin_be.utils.ways_evaluator import evaluate_ways


def total_bet_for(game_config, bet_per_line, paylines):
    """Ways machines stake a single line; payline machines stake every selected line."""
    if game_config.mode == GameMode.WAYS:
        return bet_per_line
    return bet_per_line * paylines


def classify_win_level(total_payout, total_bet, thresholds=None):
    """
    Buckets a payout by its ratio to the total bet.

    Thresholds are integer multiples of the bet and are compared without
    division, so the result is monotonic in ``total_payout``.
    """
    if total_payout <= 0:
        return WinLevel.NONE
    if total_bet <= 0:
        return WinLevel.SMALL

    thresholds = {**DEFAULT_WIN_LEVEL_THRESHOLDS, **(thresholds or {})}
    if total_payout >= thresholds['jackpot'] * total_bet:
        return WinLevel.JACKPOT
    if total_payout >= thresholds['large'] * total_bet:
        return WinLevel.LARGE
    if total_payout >= thresholds['medium'] * total_bet:
        return WinLevel.MEDIUM
    return WinLevel.SMALL


def evaluate_grid(grid, game_config, bet_per_line, paylines, is_bonus_spin=False,
                  block_number=None, block_seed=None, bet_key=None):
    paytable = game_config.paytable
    total_bet = total_bet_for(game_config, bet_per_line, paylines)
    bonus_spins_awarded = 0
    jackpot_hit = False

    if game_config.mode == GameMode.WAYS:
        ways = evaluate_ways(grid, paytable, bet_per_line, is_bonus_spin=is_bonus_spin)
        winning_lines = ways.winning_lines
        total_payout = ways.total_payout
        bonus_spins_awarded = ways.bonus_spins_awarded
        jackpot_hit = ways.jackpot_hit
    else:
        winning_lines = evaluate_paylines(grid, paytable, bet_per_line, paylines)
        total_payout = sum(line.payout for line in winning_lines)

    if jackpot_hit:
        win_level = WinLevel.JACKPOT
    else:
        win_level = classify_win_level(total_payout, total_bet, paytable.win_level_thresholds)

    return SpinOutcome(
        grid=grid,
        winning_lines=tuple(winning_lines),
        total_payout=total_payout,
        win_level=win_level,
        total_bet=total_bet,
        bonus_spins_awarded=bonus_spins_awarded,
        jackpot_hit=jackpot_hit,
        block_number=block_number,
        block_seed=block_seed,
        bet_key=bet_key,
    )


def compute_outcome(bet_key, seed, game_config, bet_per_line, paylines, block_number=None, is_bonus_spin=False):
    """Derives the grid for (bet key, seed) and scores it. ``bet_key`` and ``seed`` are raw bytes."""
    grid = derive_grid(
        bet_key,
        seed,
        game_config.reel_strip,
        game_config.reel_length,
        game_config.window_length,
        game_config.reel_count,
    )
    return evaluate_grid(
        grid,
        game_config,
        bet_per_line,
        paylines,
        is_bonus_spin=is_bonus_spin,
        block_number=block_number,
        block_seed=bytes(seed).hex(),
        bet_key=bytes(bet_key).hex(),
    )
