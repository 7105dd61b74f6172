import pytest
from fairspin_be.exceptions import (
    AppException,
    MalformedKeyException,
    InvalidReelDataException,
    ConfigNotLoadedException,
    NotInitializedException,
    InsufficientBalanceException,
    InvalidBetException,
    SubmissionFailedException,
    ClaimVerificationFailedException,
    ChainQueryException,
    SpinCancelledException,
    ReplayNotFoundException
)
from fairspin_be.error_codes import ErrorCodes

def test_app_exception_instantiation():
    details = {"field": "value"}
    action_button = {"text": "Retry", "actionType": "RETRY_ACTION"}

    exc = AppException(
        error_code="TEST_001",
        status_message="Test message",
        status_code=400,
        details=details,
        action_button=action_button,
        recoverable=True
    )

    assert exc.error_code == "TEST_001"
    assert exc.status_message == "Test message"
    assert exc.status_code == 400
    assert exc.details == details
    assert exc.action_button == action_button
    assert exc.recoverable is True
    assert str(exc) == "Test message"

def test_app_exception_defaults():
    exc = AppException(error_code="TEST_002", status_message="Default test", status_code=500)
    assert exc.details == {}
    assert exc.action_button == {}
    assert exc.recoverable is False

def test_event_payload():
    exc = InvalidBetException("Minimum bet is 1000000", details={'errors': ["Minimum bet is 1000000"]})
    assert exc.to_event_payload() == {
        'code': ErrorCodes.INVALID_BET,
        'message': "Minimum bet is 1000000",
        'recoverable': True,
        'details': {'errors': ["Minimum bet is 1000000"]},
    }

@pytest.mark.parametrize("exc_class, error_code, status_code, recoverable", [
    (MalformedKeyException, ErrorCodes.MALFORMED_KEY, 422, False),
    (InvalidReelDataException, ErrorCodes.INVALID_REEL_DATA, 500, False),
    (ConfigNotLoadedException, ErrorCodes.CONFIG_NOT_LOADED, 503, False),
    (NotInitializedException, ErrorCodes.NOT_INITIALIZED, 503, False),
    (InsufficientBalanceException, ErrorCodes.INSUFFICIENT_BALANCE, 400, True),
    (InvalidBetException, ErrorCodes.INVALID_BET, 422, True),
    (SubmissionFailedException, ErrorCodes.SUBMISSION_FAILED, 502, True),
    (ClaimVerificationFailedException, ErrorCodes.CLAIM_VERIFICATION_FAILED, 502, False),
    (ChainQueryException, ErrorCodes.CHAIN_QUERY_FAILED, 502, True),
    (SpinCancelledException, ErrorCodes.SPIN_CANCELLED, 409, False),
    (ReplayNotFoundException, ErrorCodes.REPLAY_NOT_FOUND, 404, False),
])
def test_specific_exceptions(exc_class, error_code, status_code, recoverable):
    exc = exc_class()
    assert isinstance(exc, AppException)
    assert exc.error_code == error_code
    assert exc.status_code == status_code
    assert exc.recoverable is recoverable
    assert exc.details == {}
    assert str(exc) == exc.status_message

def test_custom_message_and_details():
    exc = MalformedKeyException("Bet key must be 56 bytes, got 12", details={'length': 12})
    assert exc.status_message == "Bet key must be 56 bytes, got 12"
    assert exc.details == {'length': 12}
