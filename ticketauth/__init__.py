"""Ticket login client with second factor challenge support"""

from .core.exceptions import (
    AuthError,
    CancelledByUser,
    ChallengeRejected,
    FactorCeremonyAborted,
    LoginFailed,
    MalformedChallenge,
)
from .core.types import (
    ChallengeOutcome,
    ChallengePayload,
    Credentials,
    LoginResult,
    OrchestratorState,
    OutcomeStatus,
    SessionData,
    TfaMethod,
)

__all__ = [
    "AuthError",
    "CancelledByUser",
    "ChallengeOutcome",
    "ChallengePayload",
    "ChallengeRejected",
    "Credentials",
    "FactorCeremonyAborted",
    "LoginFailed",
    "LoginResult",
    "MalformedChallenge",
    "OrchestratorState",
    "OutcomeStatus",
    "SessionData",
    "TfaMethod",
]
