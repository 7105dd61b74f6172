import json
import logging
import os

from fairspin_be.exceptions import ConfigNotLoadedException, InvalidReelDataException
from fairspin_be.game_types import GameConfig, GameMode, PaytableConfig

logger = logging.getLogger(__name__)

GAMES_BASE_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'public', 'games'))

DEFAULT_WIN_LEVEL_THRESHOLDS = {'medium': 5, 'large': 20, 'jackpot': 100}

_config_cache = {}


def load_game_config(short_name, base_dir=None):
    """
    Loads the machine configuration JSON for ``short_name`` and validates its structure.

    Args:
        short_name (str): Directory name under ``public/games``.
        base_dir (str): Optional override of the games directory (used by tests).

    Returns:
        dict: The raw, validated configuration.

    Raises:
        ConfigNotLoadedException: If the file is missing or not valid JSON.
        InvalidReelDataException: If the structure fails validation.
    """
    file_path = os.path.join(base_dir or GAMES_BASE_PATH, short_name, 'gameConfig.json')
    if not os.path.exists(file_path):
        raise ConfigNotLoadedException(
            f"Configuration file not found for game '{short_name}' at {file_path}",
            details={'short_name': short_name}
        )

    try:
        with open(file_path, 'r') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigNotLoadedException(
            f"Invalid JSON in {file_path}: {e.msg} (line {e.lineno}, col {e.colno})",
            details={'short_name': short_name}
        )

    _validate_game_config(config, short_name)
    logger.info(f"Loaded game config '{short_name}' from {file_path}")
    return config


def _fail(short_name, message):
    raise InvalidReelDataException(f"Config validation error for game '{short_name}': {message}")


def _validate_game_config(config, short_name):
    """Checks the keys and types the engine relies on. Raises InvalidReelDataException on the first problem."""
    if not isinstance(config, dict):
        _fail(short_name, "Root must be a dictionary.")
    game = config.get('game')
    if not isinstance(game, dict):
        _fail(short_name, "'game' key must be a dictionary.")

    for key in ('name', 'short_name'):
        value = game.get(key)
        if not isinstance(value, str) or not value.strip():
            _fail(short_name, f"game.{key} must be a non-empty str.")

    mode = game.get('mode')
    if mode not in (GameMode.PAYLINE, GameMode.WAYS):
        _fail(short_name, f"game.mode must be '{GameMode.PAYLINE}' or '{GameMode.WAYS}'.")

    layout = game.get('layout')
    if not isinstance(layout, dict):
        _fail(short_name, "game.layout must be a dictionary.")
    for key in ('reel_count', 'reel_length', 'window_length'):
        value = layout.get(key)
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            _fail(short_name, f"game.layout.{key} must be a positive integer.")
    reel_count, reel_length, window_length = layout['reel_count'], layout['reel_length'], layout['window_length']
    if reel_length <= window_length + 1:
        _fail(short_name, "game.layout.reel_length must exceed window_length + 1.")
    reel_strip = layout.get('reel_strip')
    if not isinstance(reel_strip, str) or len(reel_strip) != reel_count * reel_length:
        _fail(short_name, f"game.layout.reel_strip must be a string of {reel_count * reel_length} symbols.")

    betting = game.get('betting')
    if not isinstance(betting, dict):
        _fail(short_name, "game.betting must be a dictionary.")
    for key in ('min_bet', 'max_bet', 'max_paylines'):
        value = betting.get(key)
        if not isinstance(value, int) or value <= 0:
            _fail(short_name, f"game.betting.{key} must be a positive integer.")
    if betting['min_bet'] > betting['max_bet']:
        _fail(short_name, "game.betting.min_bet cannot exceed max_bet.")
    for key in ('spin_fee', 'fee_overhead'):
        value = betting.get(key, 0)
        if not isinstance(value, int) or value < 0:
            _fail(short_name, f"game.betting.{key} must be a non-negative integer.")

    paylines = game.get('paylines', [])
    if not isinstance(paylines, list):
        _fail(short_name, "game.paylines must be a list.")
    if mode == GameMode.PAYLINE and len(paylines) < betting['max_paylines']:
        _fail(short_name, "game.paylines must define at least max_paylines patterns.")
    for i, pattern in enumerate(paylines):
        if not isinstance(pattern, list) or len(pattern) != reel_count:
            _fail(short_name, f"game.paylines[{i}] must list one row per reel.")
        for row in pattern:
            if not isinstance(row, int) or not 0 <= row < window_length:
                _fail(short_name, f"game.paylines[{i}] row {row} out of bounds (window: {window_length}).")

    symbols = game.get('symbols')
    if not isinstance(symbols, dict):
        _fail(short_name, "game.symbols must be a dictionary.")
    paytable = symbols.get('paytable')
    if not isinstance(paytable, dict) or not paytable:
        _fail(short_name, "game.symbols.paytable must be a non-empty dictionary.")
    for symbol, payouts in paytable.items():
        if len(symbol) != 1:
            _fail(short_name, f"paytable symbol '{symbol}' must be a single character.")
        if not isinstance(payouts, dict):
            _fail(short_name, f"paytable entry for '{symbol}' must be a dictionary.")
        for count, multiplier in payouts.items():
            if not str(count).isdigit() or not isinstance(multiplier, int) or multiplier < 0:
                _fail(short_name, f"paytable entry for '{symbol}' has invalid pair {count!r}: {multiplier!r}.")
    wilds = symbols.get('wilds', {})
    if not isinstance(wilds, dict) or any(not isinstance(m, int) or m < 1 for m in wilds.values()):
        _fail(short_name, "game.symbols.wilds must map symbols to positive integer multipliers.")

    features = game.get('features', {})
    for name, required in (('bonus', ('symbol', 'min_reels', 'spins_awarded')), ('jackpot', ('symbol', 'min_reels', 'amount'))):
        feature = features.get(name)
        if feature is None:
            continue
        missing = [key for key in required if key not in feature]
        if missing:
            _fail(short_name, f"game.features.{name} missing keys: {', '.join(missing)}.")


def build_game_config(raw):
    """Turns a validated raw config into the immutable GameConfig the engine works with."""
    game = raw['game']
    layout = game['layout']
    betting = game['betting']
    symbols = game['symbols']
    features = game.get('features', {})
    bonus = features.get('bonus') or {}
    jackpot = features.get('jackpot') or {}

    paytable = PaytableConfig(
        mode=game['mode'],
        symbols={
            symbol: {int(count): multiplier for count, multiplier in payouts.items()}
            for symbol, payouts in symbols['paytable'].items()
        },
        payline_patterns=tuple(tuple(pattern) for pattern in game.get('paylines', [])),
        blank_symbol=symbols.get('blank'),
        wild_symbols=dict(symbols.get('wilds', {})),
        min_match=symbols.get('min_match', 3),
        bonus_symbol=bonus.get('symbol'),
        bonus_min_reels=bonus.get('min_reels', 2),
        bonus_spins_awarded=bonus.get('spins_awarded', 0),
        bonus_multiplier_numerator=bonus.get('multiplier_numerator', 1),
        bonus_multiplier_denominator=bonus.get('multiplier_denominator', 1),
        jackpot_symbol=jackpot.get('symbol'),
        jackpot_min_reels=jackpot.get('min_reels', 3),
        jackpot_amount=jackpot.get('amount', 0),
        win_level_thresholds=dict(game.get('win_levels') or DEFAULT_WIN_LEVEL_THRESHOLDS),
    )
    return GameConfig(
        name=game['name'],
        short_name=game['short_name'],
        mode=game['mode'],
        reel_count=layout['reel_count'],
        reel_length=layout['reel_length'],
        window_length=layout['window_length'],
        reel_strip=layout['reel_strip'],
        min_bet=betting['min_bet'],
        max_bet=betting['max_bet'],
        max_paylines=betting['max_paylines'],
        spin_fee=betting.get('spin_fee', 0),
        fee_overhead=betting.get('fee_overhead', 0),
        paytable=paytable,
    )


def get_game_config(short_name, base_dir=None):
    """Cached load + build. GameConfig is immutable so one instance is shared."""
    cache_key = (short_name, base_dir)
    if cache_key not in _config_cache:
        _config_cache[cache_key] = build_game_config(load_game_config(short_name, base_dir))
    return _config_cache[cache_key]


def clear_config_cache():
    _config_cache.clear()
