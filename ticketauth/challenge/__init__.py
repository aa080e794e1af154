from .decoder import decode, is_challenge_ticket
from .handlers import RecoveryHandler, TotpHandler, WebAuthnHandler
from .orchestrator import ChallengeOrchestrator

__all__ = [
    "ChallengeOrchestrator",
    "RecoveryHandler",
    "TotpHandler",
    "WebAuthnHandler",
    "decode",
    "is_challenge_ticket",
]
