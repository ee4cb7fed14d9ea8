from .exceptions import (
    exception_handler,
    error_response,
    format_error,
    AuthFlowError,
    ErrorKind,
    RecordNotFound,
    RecordExpired,
    ChallengeNotFound,
    CredentialNotFound,
    CredentialSubjectMismatch,
    DeviceAlreadyRegistered,
    AssertionInvalid,
    ReplayDetected,
    VerificationTokenInvalid,
    LoginDenied,
    StepUpCodeNotFound,
    CodeIncorrect,
    AttemptsExhausted,
    SecretIncorrect,
    SecondFactorIncorrect,
    SecondFactorRequired,
    StepUpRequired,
    ContactChangeNotFound,
    ContactInUse,
    SecondFactorAlreadyEnrolled,
    NoDestination,
)

__all__ = [
    "exception_handler",
    "error_response",
    "format_error",
    "AuthFlowError",
    "ErrorKind",
    "RecordNotFound",
    "RecordExpired",
    "ChallengeNotFound",
    "CredentialNotFound",
    "CredentialSubjectMismatch",
    "DeviceAlreadyRegistered",
    "AssertionInvalid",
    "ReplayDetected",
    "VerificationTokenInvalid",
    "LoginDenied",
    "StepUpCodeNotFound",
    "CodeIncorrect",
    "AttemptsExhausted",
    "SecretIncorrect",
    "SecondFactorIncorrect",
    "SecondFactorRequired",
    "StepUpRequired",
    "ContactChangeNotFound",
    "ContactInUse",
    "SecondFactorAlreadyEnrolled",
    "NoDestination",
]
