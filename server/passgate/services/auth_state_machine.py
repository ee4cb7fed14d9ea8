"""Custom-challenge login decision for passkey sign-in.

A session issuer that supports custom challenges drives every login attempt
through three calls: define (what happens next), create (the challenge to
present) and verify (was the answer right). The decision logic is the pure
`transition` function below; `CustomChallengeAdapter` only translates the
issuer's call shapes into events and back.

The real proof happens out of band: the passkey assertion is verified by the
credential registry, which leaves a single-use verification token. The answer
to the custom challenge is that token.
"""

import enum
import logging
from dataclasses import dataclass, field

from passgate.services import verification_tokens
from passgate.utils import VerificationTokenInvalid

logger = logging.getLogger(__name__)

CUSTOM_CHALLENGE = "CUSTOM_CHALLENGE"
PASSKEY_AUTH_METHOD = "passkey"


class AuthState(str, enum.Enum):
    AWAITING_PROOF = "awaiting_proof"
    CHALLENGE_ISSUED = "challenge_issued"
    PENDING_VERIFY = "pending_verify"
    APPROVED = "approved"
    DENIED = "denied"


class EventKind(str, enum.Enum):
    DECIDE = "decide"
    CREATE = "create"
    VERIFY = "verify"


class Action(str, enum.Enum):
    ISSUE_CHALLENGE = "issue_challenge"
    PRESENT_CHALLENGE = "present_challenge"
    ANSWER_CORRECT = "answer_correct"
    ANSWER_INCORRECT = "answer_incorrect"
    ISSUE_TOKENS = "issue_tokens"
    FAIL = "fail"


TERMINAL_STATES = frozenset({AuthState.APPROVED, AuthState.DENIED})


@dataclass(frozen=True)
class Event:
    kind: EventKind
    claims_passkey: bool = False
    passkey_enabled: bool = False
    step_count: int = 0
    challenge_name: str | None = None
    answer_correct: bool = False


@dataclass(frozen=True)
class Transition:
    state: AuthState
    action: Action


def transition(state: AuthState, event: Event) -> Transition:
    """Pure transition function: (state, event) -> (state, action)."""
    if event.kind is EventKind.DECIDE:
        if not (event.claims_passkey and event.passkey_enabled):
            return Transition(AuthState.DENIED, Action.FAIL)
        if state is AuthState.AWAITING_PROOF and event.step_count == 0:
            return Transition(AuthState.CHALLENGE_ISSUED, Action.ISSUE_CHALLENGE)
        if state is AuthState.APPROVED and event.step_count == 1:
            return Transition(AuthState.APPROVED, Action.ISSUE_TOKENS)
        return Transition(AuthState.DENIED, Action.FAIL)

    if event.kind is EventKind.CREATE:
        if state is AuthState.CHALLENGE_ISSUED and event.challenge_name == CUSTOM_CHALLENGE:
            return Transition(AuthState.PENDING_VERIFY, Action.PRESENT_CHALLENGE)
        return Transition(AuthState.DENIED, Action.FAIL)

    if event.kind is EventKind.VERIFY:
        if state is AuthState.PENDING_VERIFY and event.answer_correct:
            return Transition(AuthState.APPROVED, Action.ANSWER_CORRECT)
        return Transition(AuthState.DENIED, Action.ANSWER_INCORRECT)

    return Transition(AuthState.DENIED, Action.FAIL)


@dataclass
class LoginAttempt:
    """State the issuer threads through one login attempt."""
    subject: str
    claims_passkey: bool
    passkey_enabled: bool
    state: AuthState = AuthState.AWAITING_PROOF
    history: list = field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "subject": self.subject,
            "claims_passkey": self.claims_passkey,
            "passkey_enabled": self.passkey_enabled,
            "state": self.state.value,
            "history": list(self.history),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "LoginAttempt":
        return cls(
            subject=payload.get("subject", ""),
            claims_passkey=bool(payload.get("claims_passkey")),
            passkey_enabled=bool(payload.get("passkey_enabled")),
            state=AuthState(payload.get("state", AuthState.DENIED.value)),
            history=list(payload.get("history", [])),
        )


class CustomChallengeAdapter:
    """Maps the define / create / verify call contract onto `transition`."""

    def define(self, attempt: LoginAttempt) -> dict:
        event = Event(
            kind=EventKind.DECIDE,
            claims_passkey=attempt.claims_passkey,
            passkey_enabled=attempt.passkey_enabled,
            step_count=len(attempt.history),
        )
        result = self._apply(attempt, event)
        response = {"issue_tokens": False, "fail_authentication": False, "challenge_name": None}
        if result.action is Action.ISSUE_CHALLENGE:
            response["challenge_name"] = CUSTOM_CHALLENGE
        elif result.action is Action.ISSUE_TOKENS:
            response["issue_tokens"] = True
        else:
            response["fail_authentication"] = True
        return response

    def create(self, attempt: LoginAttempt, challenge_name: str | None) -> dict:
        result = self._apply(attempt, Event(kind=EventKind.CREATE, challenge_name=challenge_name))
        if result.action is not Action.PRESENT_CHALLENGE:
            return {"public_challenge_parameters": {}}
        # Nothing secret here: the proof was produced against the registry challenge.
        return {"public_challenge_parameters": {"message": "Passkey authentication"}}

    def verify(self, attempt: LoginAttempt, answer: str | None) -> dict:
        answer_correct = False
        if attempt.state is AuthState.PENDING_VERIFY and answer:
            try:
                verification_tokens.redeem(attempt.subject, answer)
                answer_correct = True
            except VerificationTokenInvalid:
                answer_correct = False

        result = self._apply(attempt, Event(kind=EventKind.VERIFY, answer_correct=answer_correct))
        attempt.history.append(
            {"challenge_name": CUSTOM_CHALLENGE, "challenge_result": result.action is Action.ANSWER_CORRECT}
        )
        return {"answer_correct": result.action is Action.ANSWER_CORRECT}

    def _apply(self, attempt: LoginAttempt, event: Event) -> Transition:
        result = transition(attempt.state, event)
        logger.debug(
            "Login attempt %s --%s--> %s (%s)",
            attempt.state.value,
            event.kind.value,
            result.state.value,
            result.action.value,
        )
        attempt.state = result.state
        return result
