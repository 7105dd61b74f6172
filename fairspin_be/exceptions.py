from fairspin_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None, action_button=None, recoverable=False):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.action_button = action_button if action_button is not None else {}
        self.recoverable = recoverable

    def to_event_payload(self):
        """Shape used when the error is pushed through a controller's event bus."""
        return {
            'code': self.error_code,
            'message': self.status_message,
            'recoverable': self.recoverable,
            'details': self.details,
        }

class MalformedKeyException(AppException):
    def __init__(self, status_message="Malformed bet key", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.MALFORMED_KEY,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class InvalidReelDataException(AppException):
    def __init__(self, status_message="Invalid reel data", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INVALID_REEL_DATA,
            status_message=status_message,
            status_code=500,
            details=details,
            action_button=action_button
        )

class ConfigNotLoadedException(AppException):
    def __init__(self, status_message="Game configuration not loaded", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.CONFIG_NOT_LOADED,
            status_message=status_message,
            status_code=503,
            details=details,
            action_button=action_button
        )

class NotInitializedException(AppException):
    def __init__(self, status_message="Game engine not initialized", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.NOT_INITIALIZED,
            status_message=status_message,
            status_code=503,
            details=details,
            action_button=action_button
        )

class InsufficientBalanceException(AppException):
    def __init__(self, status_message="Insufficient balance", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INSUFFICIENT_BALANCE,
            status_message=status_message,
            status_code=400,
            details=details,
            action_button=action_button,
            recoverable=True
        )

class InvalidBetException(AppException):
    def __init__(self, status_message="Invalid bet", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INVALID_BET,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button,
            recoverable=True
        )

class SubmissionFailedException(AppException):
    def __init__(self, status_message="Spin submission failed", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.SUBMISSION_FAILED,
            status_message=status_message,
            status_code=502,
            details=details,
            action_button=action_button,
            recoverable=True
        )

class ClaimVerificationFailedException(AppException):
    def __init__(self, status_message="Claim verification failed", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.CLAIM_VERIFICATION_FAILED,
            status_message=status_message,
            status_code=502,
            details=details,
            action_button=action_button
        )

class ChainQueryException(AppException):
    def __init__(self, status_message="Chain query failed", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.CHAIN_QUERY_FAILED,
            status_message=status_message,
            status_code=502,
            details=details,
            action_button=action_button,
            recoverable=True
        )

class SpinCancelledException(AppException):
    def __init__(self, status_message="Spin cancelled", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.SPIN_CANCELLED,
            status_message=status_message,
            status_code=409,
            details=details,
            action_button=action_button
        )

class ReplayNotFoundException(AppException):
    def __init__(self, status_message="No spin found for this transaction", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.REPLAY_NOT_FOUND,
            status_message=status_message,
            status_code=404,
            details=details,
            action_button=action_button
        )
