import pytest

from fairspin_be.game_types import WinLevel
from fairspin_be.utils.bet_key import encode_bet_key
from fairspin_be.utils.game_config import get_game_config
from fairspin_be.utils.grid_generation import grid_from_string, grid_to_string
from fairspin_be.utils.outcome import classify_win_level, compute_outcome, evaluate_grid, total_bet_for

BET = 1_000_000

@pytest.fixture
def payline_config():
    return get_game_config('5reel')

@pytest.fixture
def ways_config():
    return get_game_config('w2w')

def test_total_bet(payline_config, ways_config):
    assert total_bet_for(payline_config, BET, 20) == 20 * BET
    assert total_bet_for(ways_config, BET, 20) == BET

@pytest.mark.parametrize('payout,expected', [
    (0, WinLevel.NONE),
    (1, WinLevel.SMALL),
    (499, WinLevel.SMALL),
    (500, WinLevel.MEDIUM),
    (1999, WinLevel.MEDIUM),
    (2000, WinLevel.LARGE),
    (9999, WinLevel.LARGE),
    (10000, WinLevel.JACKPOT),
])
def test_classify_win_level_thresholds(payout, expected):
    assert classify_win_level(payout, 100) == expected

def test_classify_with_zero_bet():
    assert classify_win_level(10, 0) == WinLevel.SMALL
    assert classify_win_level(0, 0) == WinLevel.NONE

def test_classify_is_monotonic():
    levels = [WinLevel.ORDER.index(classify_win_level(payout, 37)) for payout in range(0, 5000, 7)]
    assert levels == sorted(levels)

def test_custom_thresholds_are_merged():
    assert classify_win_level(300, 100, {'medium': 3}) == WinLevel.MEDIUM
    assert classify_win_level(2000, 100, {'medium': 3}) == WinLevel.LARGE

def test_payline_win_level_depends_on_total_bet(payline_config):
    grid = grid_from_string('_A__A__A_______')
    one_line = evaluate_grid(grid, payline_config, BET, 1)
    all_lines = evaluate_grid(grid, payline_config, BET, 20)
    assert one_line.total_payout == all_lines.total_payout == 200 * BET
    assert one_line.win_level == WinLevel.JACKPOT
    assert all_lines.win_level == WinLevel.MEDIUM
    assert all_lines.total_bet == 20 * BET
    assert all_lines.is_win

def test_jackpot_always_classifies_as_jackpot(ways_config):
    grid = grid_from_string('E00E00E00789679')
    outcome = evaluate_grid(grid, ways_config, 100_000_000, 1)
    assert outcome.jackpot_hit
    assert outcome.total_payout == 1_000_000_000
    assert outcome.win_level == WinLevel.JACKPOT

def test_total_equals_sum_of_lines(ways_config):
    grid = grid_from_string('000000B89789679')
    outcome = evaluate_grid(grid, ways_config, 7, 1)
    assert outcome.total_payout == sum(line.payout for line in outcome.winning_lines)

def test_bonus_spin_total_boosts_line_sum(ways_config):
    grid = grid_from_string('0A80A80A8456456')
    outcome = evaluate_grid(grid, ways_config, 1, 1, is_bonus_spin=True)
    line_sum = sum(line.payout for line in outcome.winning_lines)
    assert line_sum == 76
    assert outcome.total_payout == line_sum * 15000 // 10000

def test_compute_outcome_golden_vector(payline_config):
    key = encode_bet_key(bytes(32), BET, 19, 0)
    seed = bytes(range(32))
    outcome = compute_outcome(key, seed, payline_config, BET, 20, block_number=42)
    assert grid_to_string(outcome.grid) == 'D________D__C__'
    assert outcome.total_payout == 0
    assert outcome.win_level == WinLevel.NONE
    assert outcome.block_number == 42
    assert outcome.block_seed == seed.hex()
    assert outcome.bet_key == key.hex()
    data = outcome.to_dict()
    assert data['grid'][0] == ['D', '_', '_']
    assert data['winning_lines'] == []
