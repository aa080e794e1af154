"""Fakes shared by the test modules"""

from __future__ import annotations

import asyncio
import base64
import copy
import json
from types import SimpleNamespace
from urllib.parse import quote

from ticketauth.auth.finalizer import SessionFinalizer
from ticketauth.challenge.decoder import decode
from ticketauth.challenge.orchestrator import ChallengeOrchestrator
from ticketauth.core.types import Assertion
from ticketauth.storage.json_file import MemoryStateStorage
from ticketauth.storage.preferences import PreferenceStore


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


WEBAUTHN_DESCRIPTOR = {
    "publicKey": {
        "challenge": b64url(b"server-challenge-bytes"),
        "rpId": "backup.example.com",
        "timeout": 60000,
        "allowCredentials": [
            {"type": "public-key", "id": b64url(b"credential-one")},
            {"type": "public-key", "id": b64url(b"credential-two")},
        ],
    }
}

SESSION_DATA = {
    "username": "alice@pam",
    "ticket": "PBS:alice@pam:5F0A1B2C::c2lnbmF0dXJl",
    "CSRFPreventionToken": "5F0A1B2C:Y3NyZnRva2Vu",
}


def webauthn_descriptor() -> dict:
    return copy.deepcopy(WEBAUTHN_DESCRIPTOR)


def make_ticket(payload, product: str = "PBS") -> str:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return f"{product}:!tfa!{quote(text, safe='')}:5F0A1B2C::c2lnbmF0dXJl"


def make_assertion() -> Assertion:
    return Assertion(
        id=b64url(b"credential-one"),
        raw_id=b"credential-one",
        authenticator_data=b"\x01\x02auth-data",
        client_data_json=b'{"type":"webauthn.get"}',
        signature=b"\x30\x45signature",
    )


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run"""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeEndpoint:
    """Scripted ticket endpoint, records every request"""

    def __init__(self, responses=None):
        self.requests: list[dict] = []
        self.responses = list(responses or [])
        self.gate: asyncio.Event | None = None

    async def post_ticket(self, params):
        self.requests.append(dict(params))
        if self.gate is not None:
            await self.gate.wait()
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeCeremony:
    """Ceremony whose outcome is decided by the test"""

    def __init__(self):
        self.calls: list[SimpleNamespace] = []

    async def get(self, public_key, signal):
        future = asyncio.get_running_loop().create_future()
        call = SimpleNamespace(public_key=public_key, signal=signal, future=future)
        self.calls.append(call)
        signal.add_listener(future.cancel)
        return await future

    @property
    def last(self) -> SimpleNamespace:
        return self.calls[-1]

    def succeed(self, assertion: Assertion | None = None) -> None:
        self.last.future.set_result(assertion or make_assertion())

    def fail(self, error: Exception | None = None) -> None:
        self.last.future.set_exception(error or RuntimeError("NotAllowedError"))


class Continuations:
    def __init__(self):
        self.successes = []
        self.failures = []

    def on_success(self, session) -> None:
        self.successes.append(session)

    def on_failure(self, error) -> None:
        self.failures.append(error)

    @property
    def calls(self) -> int:
        return len(self.successes) + len(self.failures)


def build_orchestrator(
    payload: dict,
    *,
    endpoint: FakeEndpoint | None = None,
    ceremony: FakeCeremony | None = None,
    storage: MemoryStateStorage | None = None,
    continuations: Continuations | None = None,
) -> tuple[ChallengeOrchestrator, Continuations]:
    ticket = make_ticket(payload)
    continuations = continuations or Continuations()
    orchestrator = ChallengeOrchestrator(
        userid="alice@pam",
        ticket=ticket,
        challenge=decode(ticket),
        finalizer=SessionFinalizer(endpoint or FakeEndpoint([dict(SESSION_DATA)])),
        on_success=continuations.on_success,
        on_failure=continuations.on_failure,
        preferences=PreferenceStore(storage or MemoryStateStorage()),
        ceremony=ceremony,
    )
    return orchestrator, continuations
