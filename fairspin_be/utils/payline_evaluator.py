from fairspin_be.game_types import WinningLine


def get_payline_symbols(grid, pattern):
    """Symbols selected by a payline pattern, one per reel, left to right."""
    return [grid.symbol_at(reel_index, row) for reel_index, row in enumerate(pattern)]


def _line_run(symbols, paytable):
    """
    Returns (symbol, run_length) for the left-to-right run starting at reel 0.

    Wilds substitute for the line symbol. A line that opens with wilds takes the
    first non-wild symbol as its symbol. When the wilds run into a blank, or fill
    the whole line, the run pays as the opening wild.
    """
    wilds = paytable.wild_symbols
    blank = paytable.blank_symbol

    line_symbol = next((symbol for symbol in symbols if symbol not in wilds), None)
    if line_symbol is None or (blank is not None and line_symbol == blank):
        line_symbol = symbols[0]

    run = 0
    for symbol in symbols:
        if symbol == line_symbol or symbol in wilds:
            run += 1
        else:
            break
    return line_symbol, run


def evaluate_payline(grid, pattern, paytable, bet_per_line):
    """Scores a single payline. Returns (symbol, match_count, payout) or None."""
    symbols = get_payline_symbols(grid, pattern)
    if not symbols:
        return None
    if paytable.blank_symbol is not None and symbols[0] == paytable.blank_symbol:
        return None

    symbol, match_count = _line_run(symbols, paytable)
    multiplier = paytable.multiplier(symbol, match_count)
    if multiplier == 0:
        return None
    return symbol, match_count, bet_per_line * multiplier


def evaluate_paylines(grid, paytable, bet_per_line, selected_paylines=None):
    """
    Evaluates the first ``selected_paylines`` patterns of the paytable.

    At most one WinningLine is produced per active payline; ``line_id`` is the
    pattern's zero-based index.
    """
    patterns = paytable.payline_patterns
    if selected_paylines is not None:
        patterns = patterns[:selected_paylines]

    winning_lines = []
    for line_id, pattern in enumerate(patterns):
        result = evaluate_payline(grid, pattern, paytable, bet_per_line)
        if result is None:
            continue
        symbol, match_count, payout = result
        winning_lines.append(WinningLine(
            line_id=line_id,
            symbol=symbol,
            match_count=match_count,
            payout=payout,
            pattern=tuple(pattern),
        ))
    return winning_lines
