import unittest

from fairspin_be.utils.game_config import get_game_config
from fairspin_be.utils.grid_generation import grid_from_string
from fairspin_be.utils.ways_evaluator import (
    JACKPOT_LINE_ID, consecutive_reels, evaluate_ways, highest_wild_multiplier,
    matches_on_reel, reels_containing
)

BET = 1_000_000


class TestWaysEvaluator(unittest.TestCase):
    def setUp(self):
        self.paytable = get_game_config('w2w').paytable

    def test_three_reel_run_with_wild(self):
        grid = grid_from_string('056007B89789679')
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertEqual(len(result.winning_lines), 1)
        line = result.winning_lines[0]
        self.assertEqual(line.symbol, '0')
        self.assertEqual(line.match_count, 3)
        self.assertEqual(line.ways, 2)
        self.assertEqual(line.wild_multiplier, 1)
        self.assertEqual(line.payout, 68 * 2 * BET)
        self.assertEqual(result.total_payout, 136 * BET)
        self.assertFalse(result.jackpot_hit)
        self.assertEqual(result.bonus_spins_awarded, 0)

    def test_highest_wild_multiplier_applies(self):
        grid = grid_from_string('056007D89789679')
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertEqual(result.winning_lines[0].wild_multiplier, 3)
        self.assertEqual(result.total_payout, 68 * 2 * 3 * BET)

    def test_bonus_spin_multiplier_is_floored(self):
        grid = grid_from_string('056007B89789679')
        result = evaluate_ways(grid, self.paytable, 3, is_bonus_spin=True)
        # 68 * 2 * 3 = 408, * 1.5 = 612
        self.assertEqual(result.total_payout, 612)
        odd = evaluate_ways(grid, self.paytable, 1, is_bonus_spin=True)
        # 136 * 1.5 = 204
        self.assertEqual(odd.total_payout, 204)
        self.assertEqual([line.payout for line in odd.winning_lines], [136])

    def test_bonus_spin_multiplier_applies_to_line_sum(self):
        grid = grid_from_string('0A80A80A8456456')
        result = evaluate_ways(grid, self.paytable, 1, is_bonus_spin=True)
        self.assertEqual(
            [(line.symbol, line.payout) for line in result.winning_lines],
            [('0', 68), ('8', 5), ('A', 3)]
        )
        # floor(76 * 1.5), not 102 + 7 + 4
        self.assertEqual(result.total_payout, 114)
        regular = evaluate_ways(grid, self.paytable, 1)
        self.assertEqual(regular.total_payout, 76)

    def test_full_grid_of_one_symbol(self):
        grid = grid_from_string('0' * 15)
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertEqual(result.winning_lines[0].ways, 3 ** 5)
        self.assertEqual(result.total_payout, 900 * 243 * BET)

    def test_jackpot_short_circuits(self):
        grid = grid_from_string('E00E00E00789679')
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertTrue(result.jackpot_hit)
        self.assertEqual(result.total_payout, 1_000_000_000)
        self.assertEqual(len(result.winning_lines), 1)
        self.assertEqual(result.winning_lines[0].line_id, JACKPOT_LINE_ID)
        self.assertTrue(result.winning_lines[0].is_jackpot)

    def test_jackpot_counts_distinct_reels(self):
        grid = grid_from_string('EEE007B89789679')
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertFalse(result.jackpot_hit)
        self.assertEqual(result.total_payout, 0)

    def test_bonus_trigger_awards_spins(self):
        grid = grid_from_string('F56F07B89789679')
        result = evaluate_ways(grid, self.paytable, BET)
        self.assertEqual(result.bonus_spins_awarded, 8)
        self.assertEqual(result.total_payout, 0)

    def test_helpers(self):
        grid = grid_from_string('056007C89789679')
        self.assertEqual(matches_on_reel(grid.reels[1], '0', self.paytable), 2)
        self.assertEqual(matches_on_reel(grid.reels[2], '0', self.paytable), 1)
        self.assertEqual(matches_on_reel(grid.reels[0], 'F', self.paytable), 0)
        self.assertEqual(consecutive_reels(grid, '0', self.paytable), [0, 1, 2])
        self.assertEqual(highest_wild_multiplier(grid, [0, 1, 2], self.paytable), 2)
        self.assertEqual(highest_wild_multiplier(grid, [0, 1], self.paytable), 1)
        self.assertEqual(reels_containing(grid, '9'), 3)


if __name__ == '__main__':
    unittest.main()
