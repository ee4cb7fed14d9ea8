from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.response import Response
from rest_framework import status


def exception_handler(exc, context):
    """
    Custom exception handler for DRF that returns consistent error format.

    Domain errors raised from a view and not handled there are rendered with
    their own code and status.
    """
    if isinstance(exc, AuthFlowError):
        return error_response(exc)

    response = drf_exception_handler(exc, context)

    if response:
        response.data = format_error(
            code=getattr(exc, "default_code", "error"),
            message=str(exc),
            details=(
                response.data
                if isinstance(response.data, dict)
                else {"detail": response.data}
            ),
        )

    return response


def format_error(code: str, message: str, details=None):
    return {
        "error": {
            "code": str(code).upper(),
            "message": message,
            "details": details if details is not None else {},
        }
    }


def error_response(exc: "AuthFlowError") -> Response:
    """Render a domain error with its specific code (authenticated callers only)"""
    return Response(
        format_error(code=exc.code, message=str(exc), details=exc.details()),
        status=exc.status_code,
    )


class ErrorKind:
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHENTICATED = "unauthenticated"
    REPLAY_DETECTED = "replay_detected"
    RATE_LIMITED = "rate_limited"
    EXPIRED = "expired"
    FORBIDDEN = "forbidden"


class AuthFlowError(Exception):
    """Base class for every failure of the authentication core"""
    kind = ErrorKind.UNAUTHENTICATED
    code = "auth_failed"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Authentication failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    def details(self) -> dict:
        return {}


class RecordNotFound(AuthFlowError):
    """Raised by the challenge store when no live record exists"""
    kind = ErrorKind.NOT_FOUND
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"

    def __init__(self, key=None, purpose=None, message=None):
        self.key = key
        self.purpose = purpose
        super().__init__(message)


class RecordExpired(RecordNotFound):
    """A record whose TTL lapsed. Handled exactly like RecordNotFound."""
    kind = ErrorKind.EXPIRED


class ChallengeNotFound(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "challenge_missing"
    default_message = "Invalid or expired challenge"


class CredentialNotFound(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "unknown_credential"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Unknown credential"


class CredentialSubjectMismatch(CredentialNotFound):
    """The credential exists but belongs to another subject"""
    default_message = "Credential does not belong to this user"


class DeviceAlreadyRegistered(AuthFlowError):
    kind = ErrorKind.CONFLICT
    code = "device_already_registered"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A passkey already exists for this device. Please delete it first."

    def __init__(self, device_id=None):
        self.device_id = device_id
        super().__init__()


class AssertionInvalid(AuthFlowError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "assertion_invalid"
    default_message = "Assertion could not be verified"


class ReplayDetected(AuthFlowError):
    """Raised when an assertion counter does not move forward"""
    kind = ErrorKind.REPLAY_DETECTED
    code = "replay_detected"
    default_message = "Replay detected"

    def __init__(self, stored_count=None, presented_count=None):
        self.stored_count = stored_count
        self.presented_count = presented_count
        super().__init__()


class VerificationTokenInvalid(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "verification_token_invalid"
    default_message = "Verification token is missing, consumed or expired"


class LoginDenied(AuthFlowError):
    """The session issuer withheld a session for this login attempt"""
    kind = ErrorKind.UNAUTHENTICATED
    code = "not_authorized"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect username or passkey"


class StepUpCodeNotFound(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "code_missing"
    default_message = "No verification code found. Please request a new one."


class CodeIncorrect(AuthFlowError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "code_incorrect"
    default_message = "Invalid verification code"

    def __init__(self, remaining_attempts):
        self.remaining_attempts = remaining_attempts
        super().__init__()

    def details(self):
        return {"remaining_attempts": self.remaining_attempts}


class AttemptsExhausted(AuthFlowError):
    """The attempt limit was reached and the record invalidated"""
    kind = ErrorKind.RATE_LIMITED
    code = "attempts_exhausted"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many incorrect attempts. Please request a new code."


class SecretIncorrect(AuthFlowError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "secret_incorrect"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect password"

    def details(self):
        return {"field": "password"}


class SecondFactorIncorrect(AuthFlowError):
    kind = ErrorKind.UNAUTHENTICATED
    code = "second_factor_incorrect"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Incorrect 2FA code"

    def details(self):
        return {"field": "totp_code"}


class SecondFactorRequired(AuthFlowError):
    """Password checked out but the enrolled second factor was not supplied"""
    kind = ErrorKind.UNAUTHENTICATED
    code = "second_factor_required"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "2FA code required"

    def details(self):
        return {"requires_mfa": True}


class StepUpRequired(AuthFlowError):
    kind = ErrorKind.FORBIDDEN
    code = "step_up_required"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "This operation requires a recent step-up verification"


class ContactChangeNotFound(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "contact_change_missing"
    default_message = "No contact change in progress"


class ContactInUse(AuthFlowError):
    kind = ErrorKind.CONFLICT
    code = "contact_in_use"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This address is already in use"


class SecondFactorAlreadyEnrolled(AuthFlowError):
    kind = ErrorKind.CONFLICT
    code = "second_factor_enrolled"
    status_code = status.HTTP_409_CONFLICT
    default_message = "A second factor is already enrolled"


class NoDestination(AuthFlowError):
    kind = ErrorKind.NOT_FOUND
    code = "no_destination"
    default_message = "No address available to deliver the code"
