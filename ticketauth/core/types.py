"""Core data types for the ticket login client"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any


class TfaMethod(Enum):
    """Second factor methods, values are the fixed priority index"""

    WEBAUTHN = 0
    TOTP = 1
    RECOVERY = 2

    @property
    def tag(self) -> str:
        """Wire tag used in the factor response"""
        return self.name.lower()

    @classmethod
    def by_priority(cls) -> list["TfaMethod"]:
        return sorted(cls, key=lambda m: m.value)


class OrchestratorState(Enum):
    """Challenge orchestrator states"""

    SELECTING_METHOD = auto()
    AWAITING_FACTOR = auto()
    SUBMITTING = auto()
    RESOLVED = auto()  # success or failure, see ChallengeOutcome
    CANCELLED = auto()


class OutcomeStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass
class Credentials:
    """Primary login credentials, lives for one submit call only"""

    username: str
    password: str = field(repr=False)
    realm: str = "pam"

    @property
    def userid(self) -> str:
        return f"{self.username}@{self.realm}"


@dataclass
class ChallengePayload:
    """Second factor methods offered by a pending-challenge ticket"""

    webauthn: dict | None = None  # ceremony descriptor, wire format until fixed up
    totp: bool = False
    recovery: list[str] = field(default_factory=list)

    def available(self) -> list[TfaMethod]:
        """Available methods in priority order"""
        present = {
            TfaMethod.WEBAUTHN: bool(self.webauthn),
            TfaMethod.TOTP: self.totp,
            TfaMethod.RECOVERY: bool(self.recovery),
        }
        return [m for m in TfaMethod.by_priority() if present[m]]

    @property
    def recovery_low(self) -> bool:
        return bool(self.recovery) and len(self.recovery) <= 3


@dataclass
class SessionData:
    """Final session, owned by the caller once returned"""

    username: str
    ticket: str = field(repr=False)
    extra: dict = field(default_factory=dict)  # CSRFPreventionToken etc.

    @property
    def csrf_token(self) -> str | None:
        return self.extra.get("CSRFPreventionToken")


@dataclass
class LoginResult:
    """Result of a primary login, either a session or a pending challenge"""

    username: str
    session: SessionData | None = None
    pending_ticket: str | None = field(default=None, repr=False)

    @property
    def needs_second_factor(self) -> bool:
        return self.pending_ticket is not None


@dataclass
class Assertion:
    """Hardware authenticator assertion, binary fields as returned by the device"""

    id: str
    raw_id: bytes
    authenticator_data: bytes
    client_data_json: bytes
    signature: bytes
    type: str = "public-key"


@dataclass
class ChallengeOutcome:
    """Single result type of a challenge flow"""

    status: OutcomeStatus
    session: SessionData | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


def format_factor(method: TfaMethod, payload: str) -> str:
    """Tagged factor response consumed by the ticket exchange"""
    return f"{method.tag}:{payload}"


def session_from_data(data: dict[str, Any]) -> SessionData:
    """Build SessionData from a ticket response `data` object"""
    extra = {k: v for k, v in data.items() if k not in ("username", "ticket")}
    return SessionData(username=data["username"], ticket=data["ticket"], extra=extra)
