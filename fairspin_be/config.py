"""
Application configuration with fail-fast validation.

Values come from the environment through config_validator; see that module for
defaults and what counts as invalid.
"""
from fairspin_be.config_validator import validate_engine_config

class Config:
    """Engine configuration."""

    _validated_config = validate_engine_config()

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Flask Debug Mode
    DEBUG = _validated_config['DEBUG']

    # Chain Access
    CHAIN_ADAPTER = _validated_config['CHAIN_ADAPTER']
    CHAIN_NODE_URL = _validated_config['CHAIN_NODE_URL']
    CHAIN_INDEXER_URL = _validated_config['CHAIN_INDEXER_URL']
    CHAIN_API_TOKEN = _validated_config['CHAIN_API_TOKEN']
    CHAIN_REQUEST_TIMEOUT = _validated_config['CHAIN_REQUEST_TIMEOUT']

    # Machine served by this instance (directory under public/games)
    GAME_CONFIG_NAME = _validated_config['GAME_CONFIG_NAME']

    # Spin lifecycle timing, in seconds
    BLOCK_POLL_INTERVAL = _validated_config['BLOCK_POLL_INTERVAL']
    CLAIM_GRACE_DELAY = _validated_config['CLAIM_GRACE_DELAY']
    CLAIM_MAX_WAIT = _validated_config['CLAIM_MAX_WAIT']
    BALANCE_REFRESH_DELAY = _validated_config['BALANCE_REFRESH_DELAY']
    BALANCE_POLL_INTERVAL = _validated_config['BALANCE_POLL_INTERVAL']
    TERMINAL_SPIN_RETENTION = _validated_config['TERMINAL_SPIN_RETENTION']


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    CHAIN_ADAPTER = 'mock'
    GAME_CONFIG_NAME = '5reel'
    BLOCK_POLL_INTERVAL = 0.01
    CLAIM_GRACE_DELAY = 0
    CLAIM_MAX_WAIT = 2.0
    BALANCE_REFRESH_DELAY = 0
    BALANCE_POLL_INTERVAL = 0
