"""
Configuration validation and startup checks.

Every environment value the engine reads is parsed here once, at import of the
Config class. Malformed values are errors; missing values fall back to
development defaults with a warning, except where production requires them.
"""

import os
import re
import sys
import warnings
from typing import List, Optional, Tuple

DEFAULT_DATABASE_URL = 'sqlite:///fairspin.db'
DEFAULT_NODE_URL = 'https://mainnet-api.voi.nodely.dev'
DEFAULT_INDEXER_URL = 'https://mainnet-idx.voi.nodely.dev'
DEFAULT_GAME_CONFIG_NAME = '5reel'
SUPPORTED_ADAPTERS = ('mock', 'voi')

_GAME_NAME_RE = re.compile(r'^[A-Za-z0-9_-]+\Z')


class ConfigValidationError(Exception):
    """Raised when configuration is missing or invalid."""
    pass


class ConfigValidator:
    """Validates engine configuration read from the environment."""

    def __init__(self, is_production: bool = None):
        """
        Args:
            is_production: If None, production is assumed only when FLASK_ENV=production
        """
        if is_production is None:
            is_production = os.getenv('FLASK_ENV', '').lower() == 'production'

        self.is_production = is_production
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def _parse_number(self, var_name: str, default, cast=float, minimum=0, allow_zero=True):
        raw = os.getenv(var_name)
        if raw is None or raw.strip() == '':
            return default
        try:
            value = cast(raw)
        except ValueError:
            self.errors.append(f"CRITICAL: {var_name} must be a number, got '{raw}'")
            return default
        if value < minimum or (not allow_zero and value == minimum):
            bound = f"greater than {minimum}" if not allow_zero else f"at least {minimum}"
            self.errors.append(f"CRITICAL: {var_name} must be {bound}, got {raw}")
            return default
        return value

    def validate_database_config(self) -> str:
        """Validate database configuration."""
        database_url = os.getenv('DATABASE_URL')

        if database_url:
            if not database_url.startswith(('postgresql://', 'postgresql+psycopg2://', 'sqlite://')):
                self.errors.append("CRITICAL: DATABASE_URL must use a supported database driver")
            return database_url

        if self.is_production:
            self.errors.append("CRITICAL: DATABASE_URL must be set in production environment")
            return None

        self.warnings.append(f"WARNING: DATABASE_URL not set - using development fallback {DEFAULT_DATABASE_URL}")
        return DEFAULT_DATABASE_URL

    def validate_chain_config(self) -> Tuple[str, str, str, Optional[str]]:
        """Validate chain adapter selection and endpoints."""
        adapter = os.getenv('CHAIN_ADAPTER', 'mock').lower()
        if adapter not in SUPPORTED_ADAPTERS:
            self.errors.append(
                f"CRITICAL: CHAIN_ADAPTER must be one of {', '.join(SUPPORTED_ADAPTERS)}, got '{adapter}'"
            )
        elif adapter == 'mock':
            if self.is_production:
                self.errors.append("CRITICAL: The mock chain adapter cannot be used in production (set CHAIN_ADAPTER=voi)")
            else:
                self.warnings.append("WARNING: Using the mock chain adapter - outcomes come from a local sandbox ledger")

        node_url = os.getenv('CHAIN_NODE_URL') or DEFAULT_NODE_URL
        indexer_url = os.getenv('CHAIN_INDEXER_URL') or DEFAULT_INDEXER_URL
        for var_name, url in (('CHAIN_NODE_URL', node_url), ('CHAIN_INDEXER_URL', indexer_url)):
            if not url.startswith(('http://', 'https://')):
                self.errors.append(f"CRITICAL: {var_name} must include protocol (http:// or https://)")

        api_token = os.getenv('CHAIN_API_TOKEN') or None
        return adapter, node_url, indexer_url, api_token

    def validate_game_config(self) -> str:
        """Validate the machine selection."""
        name = os.getenv('GAME_CONFIG_NAME', DEFAULT_GAME_CONFIG_NAME)
        if not _GAME_NAME_RE.match(name):
            self.errors.append(f"CRITICAL: GAME_CONFIG_NAME '{name}' is not a valid game directory name")
        return name

    def validate_timing_config(self) -> dict:
        """Validate polling intervals, delays and limits."""
        return {
            'BLOCK_POLL_INTERVAL': self._parse_number('BLOCK_POLL_INTERVAL', 1.0, allow_zero=False),
            'CLAIM_GRACE_DELAY': self._parse_number('CLAIM_GRACE_DELAY', 0.5),
            'CLAIM_MAX_WAIT': self._parse_number('CLAIM_MAX_WAIT', None, allow_zero=False),
            'BALANCE_REFRESH_DELAY': self._parse_number('BALANCE_REFRESH_DELAY', 5.0),
            'BALANCE_POLL_INTERVAL': self._parse_number('BALANCE_POLL_INTERVAL', 30.0),
            'TERMINAL_SPIN_RETENTION': self._parse_number('TERMINAL_SPIN_RETENTION', 50, cast=int),
            'CHAIN_REQUEST_TIMEOUT': self._parse_number('CHAIN_REQUEST_TIMEOUT', 10.0, allow_zero=False),
        }

    def validate_all(self) -> dict:
        """
        Validate all configuration settings.

        Returns:
            Dictionary containing validated configuration values

        Raises:
            ConfigValidationError: If any value is invalid, or required in production and missing
        """
        config = {}

        try:
            config['SQLALCHEMY_DATABASE_URI'] = self.validate_database_config()
            (config['CHAIN_ADAPTER'], config['CHAIN_NODE_URL'],
             config['CHAIN_INDEXER_URL'], config['CHAIN_API_TOKEN']) = self.validate_chain_config()
            config['GAME_CONFIG_NAME'] = self.validate_game_config()
            config.update(self.validate_timing_config())

            config['DEBUG'] = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 't')
            if self.is_production and config['DEBUG']:
                self.errors.append("CRITICAL: DEBUG mode must be disabled in production (set FLASK_DEBUG=False)")

            if self.errors:
                error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in self.errors)
                if self.warnings:
                    error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warning}" for warning in self.warnings)
                raise ConfigValidationError(error_msg)

            for warning in self.warnings:
                warnings.warn(warning, UserWarning)

            return config

        except Exception as e:
            if isinstance(e, ConfigValidationError):
                raise
            raise ConfigValidationError(f"Configuration validation error: {str(e)}") from e


def validate_engine_config() -> dict:
    """
    Validate configuration with fail-fast behavior.

    Raises:
        SystemExit: If validation fails
    """
    try:
        validator = ConfigValidator()
        return validator.validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nHow to fix:", file=sys.stderr)
        print("1. Correct or unset the environment variables listed above", file=sys.stderr)
        print("2. Set DATABASE_URL and CHAIN_ADAPTER=voi for production", file=sys.stderr)
        print("\nApplication startup ABORTED\n", file=sys.stderr)
        sys.exit(1)
