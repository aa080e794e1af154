"""Pending-challenge ticket decoding"""

import json
import logging
from urllib.parse import unquote

from ..core.exceptions import MalformedChallenge
from ..core.types import ChallengePayload
from .handlers import base64url_to_bytes

logger = logging.getLogger(__name__)

TFA_MARKER = "!tfa!"


def challenge_prefix(product: str = "PBS") -> str:
    return f"{product}:{TFA_MARKER}"


def is_challenge_ticket(ticket: str, product: str = "PBS") -> bool:
    """Whether the ticket is a pending second factor challenge"""
    return ticket.startswith(challenge_prefix(product))


def decode(ticket: str) -> ChallengePayload:
    """
    Decode the challenge embedded in a pending ticket.

    The challenge is the second ':' separated field with the "!tfa!" marker
    stripped, URL-encoded JSON. Raises MalformedChallenge on any problem.
    """
    fields = ticket.split(":")
    if len(fields) < 2 or not fields[1].startswith(TFA_MARKER):
        raise MalformedChallenge("ticket does not carry a challenge")

    encoded = fields[1][len(TFA_MARKER):]
    try:
        data = json.loads(unquote(encoded, errors="strict"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedChallenge(f"unparseable payload ({e})")

    if not isinstance(data, dict):
        raise MalformedChallenge("payload is not an object")

    webauthn = data.get("webauthn")
    if webauthn is not None and not _valid_webauthn(webauthn):
        raise MalformedChallenge("invalid webauthn descriptor")

    recovery = data.get("recovery") or []
    if not isinstance(recovery, list):
        raise MalformedChallenge("recovery must be a list")

    payload = ChallengePayload(
        webauthn=webauthn or None,
        totp=bool(data.get("totp")),
        recovery=[str(r) for r in recovery],
    )
    if not payload.available():
        raise MalformedChallenge("no second factor method available")

    logger.debug(
        f"[TFA] Decoded challenge, methods: {[m.tag for m in payload.available()]}"
    )
    return payload


def _valid_webauthn(descriptor) -> bool:
    if not isinstance(descriptor, dict):
        return False
    public_key = descriptor.get("publicKey")
    if not isinstance(public_key, dict) or not _is_base64url(public_key.get("challenge")):
        return False

    allow = public_key.get("allowCredentials", [])
    if not isinstance(allow, list):
        return False
    return all(isinstance(cred, dict) and _is_base64url(cred.get("id")) for cred in allow)


def _is_base64url(value) -> bool:
    if not isinstance(value, str):
        return False
    try:
        base64url_to_bytes(value)
    except ValueError:
        return False
    return True
