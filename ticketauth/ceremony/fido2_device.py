"""USB HID security key ceremony using python-fido2"""

import asyncio
import getpass
import logging

from fido2.client import Fido2Client, UserInteraction
from fido2.hid import CtapHidDevice
from fido2.utils import websafe_encode
from fido2.webauthn import (
    PublicKeyCredentialDescriptor,
    PublicKeyCredentialRequestOptions,
    PublicKeyCredentialType,
    UserVerificationRequirement,
)

from ..core.types import Assertion
from .base import AbortSignal

logger = logging.getLogger(__name__)


class ConsoleInteraction(UserInteraction):
    """Prompts on the terminal for touch and PIN"""

    def prompt_up(self):
        print("Touch your security key now...")

    def request_pin(self, permissions, rp_id):
        return getpass.getpass("Enter security key PIN: ")

    def request_uv(self, permissions, rp_id):
        return True


def request_options(public_key: dict) -> PublicKeyCredentialRequestOptions:
    """Build fido2 request options from a fixed-up publicKey descriptor"""
    allow = [
        PublicKeyCredentialDescriptor(
            type=PublicKeyCredentialType(cred.get("type", "public-key")),
            id=cred["id"],
        )
        for cred in public_key.get("allowCredentials", [])
    ]
    user_verification = public_key.get("userVerification")
    return PublicKeyCredentialRequestOptions(
        challenge=public_key["challenge"],
        timeout=public_key.get("timeout"),
        rp_id=public_key.get("rpId"),
        allow_credentials=allow or None,
        user_verification=(
            UserVerificationRequirement(user_verification) if user_verification else None
        ),
    )


def _to_assertion(response) -> Assertion:
    # fido2 >= 1.2 wraps the assertion in AuthenticationResponse
    inner = getattr(response, "response", None)
    if inner is not None:
        raw_id = bytes(response.raw_id)
        client_data, auth_data = inner.client_data, inner.authenticator_data
        signature = inner.signature
    else:
        raw_id = bytes(response.credential_id)
        client_data, auth_data = response.client_data, response.authenticator_data
        signature = response.signature

    return Assertion(
        id=websafe_encode(raw_id),
        raw_id=raw_id,
        authenticator_data=bytes(auth_data),
        client_data_json=bytes(client_data),
        signature=bytes(signature),
    )


class Fido2DeviceCeremony:
    """Runs the assertion on the first connected USB security key"""

    def __init__(self, origin: str, user_interaction: UserInteraction | None = None):
        self._origin = origin
        self._user_interaction = user_interaction or ConsoleInteraction()

    def _open_client(self) -> Fido2Client:
        device = next(CtapHidDevice.list_devices(), None)
        if device is None:
            raise RuntimeError("no security key found")
        logger.info(f"[WebAuthn] Using security key {device}")
        return Fido2Client(device, self._origin, user_interaction=self._user_interaction)

    def _get_assertion(self, options: PublicKeyCredentialRequestOptions, signal: AbortSignal):
        client = self._open_client()
        selection = client.get_assertion(options, event=signal.event)
        return selection.get_response(0)

    async def get(self, public_key: dict, signal: AbortSignal) -> Assertion:
        options = request_options(public_key)
        try:
            response = await asyncio.to_thread(self._get_assertion, options, signal)
        except asyncio.CancelledError:
            # stop the device exchange still running in the worker thread
            signal.abort()
            raise
        return _to_assertion(response)
