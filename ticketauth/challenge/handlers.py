"""Second factor method handlers"""

import base64
import json
import logging
import re

from ..ceremony.base import AbortSignal, Ceremony
from ..core.exceptions import FactorCeremonyAborted
from ..core.types import TfaMethod, format_factor

logger = logging.getLogger(__name__)

TOTP_RE = re.compile(r"^[0-9]{6}$")
RECOVERY_KEY_RE = re.compile(r"^[0-9a-f]{4}(-[0-9a-f]{4}){3}$")

# Descriptor key holding the original challenge text once fixed up
FIXUP_SENTINEL = "string"


def base64url_to_bytes(text: str) -> bytes:
    """Decode unpadded base64url, raises binascii.Error on bad input"""
    return base64.b64decode(text + "=" * (-len(text) % 4), altchars=b"-_", validate=True)


def bytes_to_base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


class MethodHandler:
    """Common input handling, exactly one handler is enabled at a time"""

    method: TfaMethod
    confirm_text = "Confirm Second Factor"

    def __init__(self):
        self.enabled = False
        self.value = ""

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def set_value(self, value: str) -> None:
        if not self.enabled:
            logger.debug(f"[TFA] Ignoring input for disabled {self.method.tag} handler")
            return
        self.value = value

    def is_valid(self) -> bool:
        raise NotImplementedError

    @property
    def validation_error(self) -> str | None:
        return None


class TotpHandler(MethodHandler):
    method = TfaMethod.TOTP

    def is_valid(self) -> bool:
        return bool(TOTP_RE.fullmatch(self.value))

    @property
    def validation_error(self) -> str | None:
        if not self.value:
            return "This field is required"
        if not self.is_valid():
            return "TOTP codes consist of six decimal digits"
        return None

    def attempt(self) -> str:
        return format_factor(self.method, self.value)


class RecoveryHandler(MethodHandler):
    method = TfaMethod.RECOVERY

    def is_valid(self) -> bool:
        return bool(RECOVERY_KEY_RE.fullmatch(self.value))

    @property
    def validation_error(self) -> str | None:
        if not self.value:
            return "This field is required"
        if not self.is_valid():
            return "Does not look like a valid recovery key"
        return None

    def attempt(self) -> str:
        return format_factor(self.method, self.value)


class WebAuthnHandler(MethodHandler):
    """Drives the hardware ceremony for one challenge descriptor"""

    method = TfaMethod.WEBAUTHN
    confirm_text = "Start WebAuthn challenge"

    def __init__(
        self,
        descriptor: dict | None,
        ceremony: Ceremony | None,
        user_verification: str | None = None,
    ):
        super().__init__()
        self.descriptor = descriptor
        self._ceremony = ceremony
        self._user_verification = user_verification
        self.fixup_count = 0

    def is_valid(self) -> bool:
        # nothing to type, confirming (re)starts the ceremony
        return self.descriptor is not None

    def set_value(self, value: str) -> None:
        pass

    def fixup(self) -> dict:
        """Convert the wire descriptor to byte buffers, once per descriptor"""
        descriptor = self.descriptor
        if isinstance(descriptor.get(FIXUP_SENTINEL), str):
            return descriptor

        # convert everything before touching the descriptor
        public_key = descriptor["publicKey"]
        original = public_key["challenge"]
        challenge = base64url_to_bytes(original)
        cred_ids = [base64url_to_bytes(cred["id"]) for cred in public_key.get("allowCredentials", [])]

        public_key["challenge"] = challenge
        for cred, cred_id in zip(public_key.get("allowCredentials", []), cred_ids):
            cred["id"] = cred_id
        if self._user_verification is not None:
            public_key["userVerification"] = self._user_verification
        descriptor[FIXUP_SENTINEL] = original

        self.fixup_count += 1
        return descriptor

    async def attempt(self, signal: AbortSignal) -> str:
        """
        Run one ceremony bound to `signal`.
        Raises FactorCeremonyAborted if it fails or was aborted meanwhile.
        """
        if self._ceremony is None:
            raise FactorCeremonyAborted(RuntimeError("no hardware ceremony available"))

        try:
            descriptor = self.fixup()
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            logger.warning(f"[WebAuthn] Unusable challenge descriptor: {e!r}")
            raise FactorCeremonyAborted(e)

        try:
            assertion = await self._ceremony.get(descriptor["publicKey"], signal)
        except Exception as e:
            logger.info(f"[WebAuthn] Ceremony ended without assertion: {e!r}")
            raise FactorCeremonyAborted(e)

        if signal.aborted:
            logger.info("[WebAuthn] Discarding assertion from an aborted ceremony")
            raise FactorCeremonyAborted()

        response = {
            "id": assertion.id,
            "type": assertion.type,
            "challenge": descriptor[FIXUP_SENTINEL],
            "rawId": bytes_to_base64url(assertion.raw_id),
            "response": {
                "authenticatorData": bytes_to_base64url(assertion.authenticator_data),
                "clientDataJSON": bytes_to_base64url(assertion.client_data_json),
                "signature": bytes_to_base64url(assertion.signature),
            },
        }
        return format_factor(self.method, json.dumps(response, separators=(",", ":")))
