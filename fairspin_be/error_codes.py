class ErrorCodes:
    """String error codes returned in the ``error_code`` field of every error payload."""

    # Generic
    GENERIC_ERROR = "GENERIC_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    # Commitment / grid derivation
    MALFORMED_KEY = "MALFORMED_KEY"
    INVALID_REEL_DATA = "INVALID_REEL_DATA"

    # Caller sequencing
    CONFIG_NOT_LOADED = "CONFIG_NOT_LOADED"
    NOT_INITIALIZED = "NOT_INITIALIZED"

    # Wager validation
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_BET = "INVALID_BET"

    # Chain interaction
    SUBMISSION_FAILED = "SUBMISSION_FAILED"
    CLAIM_VERIFICATION_FAILED = "CLAIM_VERIFICATION_FAILED"
    CHAIN_QUERY_FAILED = "CHAIN_QUERY_FAILED"
    SPIN_CANCELLED = "SPIN_CANCELLED"

    # Replay
    REPLAY_NOT_FOUND = "REPLAY_NOT_FOUND"
