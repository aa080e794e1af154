"""Custom exceptions for the ticket login client"""

from typing import Any


class AuthError(Exception):
    """Base exception for login and second factor outcomes"""

    pass


class LoginFailed(AuthError):
    """Primary login failed (credentials rejected or transport error)"""

    def __init__(self):
        # One message for every cause, unknown user and wrong password look the same
        super().__init__("Login failed. Please try again")


class MalformedChallenge(AuthError):
    """Pending-challenge ticket could not be decoded or offers no method"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Malformed second factor challenge: {reason}")


class FactorCeremonyAborted(AuthError):
    """Hardware ceremony was aborted or dismissed, the flow stays usable"""

    def __init__(self, cause: BaseException | None = None):
        self.cause = cause
        msg = "WebAuthn ceremony aborted"
        if cause is not None:
            msg += f" ({type(cause).__name__})"
        super().__init__(msg)


class ChallengeRejected(AuthError):
    """Second factor was wrong, expired, or the exchange failed"""

    def __init__(self, detail: str | None = None):
        self.detail = detail
        msg = "Second factor rejected"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class CancelledByUser(AuthError):
    """Challenge flow dismissed before a factor was submitted"""

    def __init__(self):
        super().__init__("Second factor challenge cancelled")


class ConfigError(AuthError):
    """Configuration missing or invalid"""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Configuration error: {detail}")


class TransportError(AuthError):
    """Ticket endpoint call error"""

    def __init__(self, status_code: int, detail: str, response: Any = None):
        self.status_code = status_code
        self.detail = detail
        self.response = response
        super().__init__(f"API error {status_code}: {detail}")
