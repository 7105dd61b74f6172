import unittest

from fairspin_be.game_types import PaytableConfig
from fairspin_be.utils.game_config import get_game_config
from fairspin_be.utils.grid_generation import grid_from_string
from fairspin_be.utils.payline_evaluator import evaluate_payline, evaluate_paylines, get_payline_symbols

BET = 1_000_000


def wild_paytable():
    return PaytableConfig(
        mode='payline',
        symbols={
            'A': {3: 50, 4: 100, 5: 500},
            'B': {3: 10, 4: 20, 5: 40},
            'W': {3: 100, 4: 400, 5: 2000},
        },
        payline_patterns=((1, 1, 1, 1, 1),),
        wild_symbols={'W': 1},
    )


class TestPaylineEvaluator(unittest.TestCase):
    def setUp(self):
        self.paytable = get_game_config('5reel').paytable

    def test_three_of_a_kind_on_middle_line(self):
        grid = grid_from_string('_A__A__A_______')
        lines = evaluate_paylines(grid, self.paytable, BET, 1)
        self.assertEqual(len(lines), 1)
        line = lines[0]
        self.assertEqual(line.line_id, 0)
        self.assertEqual(line.symbol, 'A')
        self.assertEqual(line.match_count, 3)
        self.assertEqual(line.payout, 200 * BET)
        self.assertEqual(line.pattern, (1, 1, 1, 1, 1))

    def test_all_twenty_lines_only_pay_matching_lines(self):
        grid = grid_from_string('_A__A__A_______')
        lines = evaluate_paylines(grid, self.paytable, BET, 20)
        self.assertEqual([line.line_id for line in lines], [0])

    def test_four_and_five_of_a_kind(self):
        four = evaluate_paylines(grid_from_string('_A__A__A__A____'), self.paytable, BET, 1)
        five = evaluate_paylines(grid_from_string('_C__C__C__C__C_'), self.paytable, BET, 1)
        self.assertEqual(four[0].payout, 1000 * BET)
        self.assertEqual(five[0].match_count, 5)
        self.assertEqual(five[0].payout, 500 * BET)

    def test_line_opening_with_blank_never_pays(self):
        grid = grid_from_string('_________AAAAAA')
        self.assertEqual(evaluate_paylines(grid, self.paytable, BET, 20), [])

    def test_run_must_start_at_first_reel(self):
        grid = grid_from_string('_B__A__A__A__A_')
        self.assertIsNone(evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET))

    def test_two_of_a_kind_does_not_pay(self):
        grid = grid_from_string('_D__D__C__C__C_')
        self.assertIsNone(evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET))

    def test_only_selected_paylines_are_evaluated(self):
        # Top row wins on pattern index 1
        grid = grid_from_string('B__B__B________')
        self.assertEqual(evaluate_paylines(grid, self.paytable, BET, 1), [])
        lines = evaluate_paylines(grid, self.paytable, BET, 2)
        self.assertEqual([(line.line_id, line.symbol) for line in lines], [(1, 'B')])
        self.assertEqual(lines[0].payout, 60 * BET)

    def test_zigzag_pattern(self):
        # pattern 3 is [0, 1, 2, 1, 0]
        grid = grid_from_string('D___D___D_D_D__')
        self.assertEqual(get_payline_symbols(grid, (0, 1, 2, 1, 0)), ['D', 'D', 'D', 'D', 'D'])
        lines = evaluate_paylines(grid, self.paytable, BET, 4)
        self.assertEqual([line.line_id for line in lines], [3])
        self.assertEqual(lines[0].payout, 250 * BET)


class TestPaylineWilds(unittest.TestCase):
    def setUp(self):
        self.paytable = wild_paytable()

    def test_leading_wilds_take_first_real_symbol(self):
        grid = grid_from_string('_W__W__B__B____')
        symbol, count, payout = evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET)
        self.assertEqual((symbol, count), ('B', 4))
        self.assertEqual(payout, 20 * BET)

    def test_wild_inside_run(self):
        grid = grid_from_string('_A__W__A__B____')
        symbol, count, _ = evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET)
        self.assertEqual((symbol, count), ('A', 3))

    def test_all_wild_line_pays_as_wild(self):
        grid = grid_from_string('_W__W__W__W__W_')
        symbol, count, payout = evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET)
        self.assertEqual((symbol, count, payout), ('W', 5, 2000 * BET))

    def test_wilds_before_blank_pay_as_wild(self):
        grid = grid_from_string('_W__W__W_______')
        symbol, count, _ = evaluate_payline(grid, (1, 1, 1, 1, 1), self.paytable, BET)
        self.assertEqual((symbol, count), ('W', 3))


if __name__ == '__main__':
    unittest.main()
