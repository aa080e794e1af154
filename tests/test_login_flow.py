"""Tests for primary login, final exchange and the composed login flow"""

import pytest

from ticketauth.auth.finalizer import SessionFinalizer
from ticketauth.auth.submitter import CredentialSubmitter
from ticketauth.core.exceptions import (
    CancelledByUser,
    ChallengeRejected,
    LoginFailed,
    MalformedChallenge,
    TransportError,
)
from ticketauth.core.types import Credentials, OutcomeStatus, TfaMethod
from ticketauth.login import LoginFlow
from ticketauth.storage.json_file import MemoryStateStorage
from ticketauth.storage.preferences import LAST_METHOD_KEY, PreferenceStore

from tests.support import SESSION_DATA, FakeCeremony, FakeEndpoint, make_ticket, settle, webauthn_descriptor


def pending(payload) -> dict:
    return {"username": "alice@pam", "ticket": make_ticket(payload)}


class TestCredentialSubmitter:
    @pytest.mark.asyncio
    async def test_direct_session(self):
        endpoint = FakeEndpoint([dict(SESSION_DATA)])
        result = await CredentialSubmitter(endpoint).submit(Credentials("alice", "secret", "pam"))

        assert endpoint.requests == [{"username": "alice@pam", "password": "secret"}]
        assert not result.needs_second_factor
        assert result.session.ticket == SESSION_DATA["ticket"]
        assert result.session.extra == {"CSRFPreventionToken": SESSION_DATA["CSRFPreventionToken"]}

    @pytest.mark.asyncio
    async def test_pending_challenge(self):
        endpoint = FakeEndpoint([pending({"totp": True})])
        result = await CredentialSubmitter(endpoint).submit(Credentials("alice", "secret", "pbs"))

        assert endpoint.requests[0]["username"] == "alice@pbs"
        assert result.needs_second_factor
        assert result.session is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            TransportError(401, "authentication failure"),
            TransportError(0, "request failed: connection refused"),
            TransportError(500, "invalid response format"),
        ],
    )
    async def test_every_failure_is_login_failed(self, error):
        endpoint = FakeEndpoint([error])
        with pytest.raises(LoginFailed) as exc_info:
            await CredentialSubmitter(endpoint).submit(Credentials("alice", "secret"))
        assert str(exc_info.value) == "Login failed. Please try again"

    def test_credentials_repr_hides_password(self):
        assert "secret" not in repr(Credentials("alice", "secret"))


class TestSessionFinalizer:
    @pytest.mark.asyncio
    async def test_exchange_posts_factor_as_password(self):
        endpoint = FakeEndpoint([dict(SESSION_DATA)])
        session = await SessionFinalizer(endpoint).exchange("alice@pam", "PBS:!tfa!x", "totp:123456")

        assert endpoint.requests == [
            {"username": "alice@pam", "tfa-challenge": "PBS:!tfa!x", "password": "totp:123456"}
        ]
        assert session.username == "alice@pam"

    @pytest.mark.asyncio
    async def test_exchange_failure_is_rejection(self):
        endpoint = FakeEndpoint([TransportError(401, "authentication failure")])
        with pytest.raises(ChallengeRejected):
            await SessionFinalizer(endpoint).exchange("alice@pam", "PBS:!tfa!x", "totp:000000")


def totp_driver(code: str):
    async def drive(orchestrator):
        if orchestrator.active_method is not TfaMethod.TOTP:
            orchestrator.select_method(TfaMethod.TOTP)
        orchestrator.set_input(code)
        await orchestrator.confirm()

    return drive


async def idle_driver(orchestrator):
    return None


class TestLoginFlow:
    @pytest.mark.asyncio
    async def test_login_without_second_factor(self):
        flow = LoginFlow(endpoint=FakeEndpoint([dict(SESSION_DATA)]))
        outcome = await flow.run(Credentials("alice", "secret"), idle_driver)

        assert outcome.ok
        assert outcome.session.username == "alice@pam"

    @pytest.mark.asyncio
    async def test_login_with_totp(self):
        first = pending({"totp": True, "recovery": ["a1"]})
        endpoint = FakeEndpoint([first, dict(SESSION_DATA)])
        flow = LoginFlow(endpoint=endpoint, preferences=PreferenceStore(MemoryStateStorage()))

        outcome = await flow.run(Credentials("alice", "secret"), totp_driver("123456"))

        assert outcome.status is OutcomeStatus.SUCCESS
        assert endpoint.requests[1]["password"] == "totp:123456"
        assert endpoint.requests[1]["tfa-challenge"] == first["ticket"]

    @pytest.mark.asyncio
    async def test_driver_giving_up_cancels(self):
        endpoint = FakeEndpoint([pending({"totp": True})])
        flow = LoginFlow(endpoint=endpoint)

        outcome = await flow.run(Credentials("alice", "secret"), idle_driver)

        assert outcome.status is OutcomeStatus.CANCELLED
        assert isinstance(outcome.error, CancelledByUser)
        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_driver_error_propagates(self):
        endpoint = FakeEndpoint([pending({"totp": True})])
        flow = LoginFlow(endpoint=endpoint)
        result = await flow.login(Credentials("alice", "secret"))

        async def broken(orchestrator):
            raise RuntimeError("terminal went away")

        with pytest.raises(RuntimeError):
            await flow.complete_challenge(result, broken)

    @pytest.mark.asyncio
    async def test_rejected_second_factor(self):
        endpoint = FakeEndpoint([pending({"totp": True}), TransportError(401, "invalid code")])
        flow = LoginFlow(endpoint=endpoint)

        outcome = await flow.run(Credentials("alice", "secret"), totp_driver("000000"))

        assert outcome.status is OutcomeStatus.FAILURE
        assert isinstance(outcome.error, ChallengeRejected)

    @pytest.mark.asyncio
    async def test_login_failure(self):
        flow = LoginFlow(endpoint=FakeEndpoint([TransportError(401, "authentication failure")]))
        outcome = await flow.run(Credentials("alice", "wrong"), idle_driver)

        assert outcome.status is OutcomeStatus.FAILURE
        assert isinstance(outcome.error, LoginFailed)

    @pytest.mark.asyncio
    async def test_malformed_challenge(self):
        endpoint = FakeEndpoint([{"username": "alice@pam", "ticket": make_ticket({})}])
        flow = LoginFlow(endpoint=endpoint)

        outcome = await flow.run(Credentials("alice", "secret"), idle_driver)

        assert outcome.status is OutcomeStatus.FAILURE
        assert isinstance(outcome.error, MalformedChallenge)

    @pytest.mark.asyncio
    async def test_webauthn_ceremony_completes_while_driver_waits(self):
        endpoint = FakeEndpoint(
            [pending({"webauthn": webauthn_descriptor(), "totp": True}), dict(SESSION_DATA)]
        )
        ceremony = FakeCeremony()
        storage = MemoryStateStorage()
        flow = LoginFlow(endpoint=endpoint, preferences=PreferenceStore(storage), ceremony=ceremony)

        async def touch_key(orchestrator):
            await settle()
            ceremony.succeed()
            await orchestrator.wait_ceremony()

        outcome = await flow.run(Credentials("alice", "secret"), touch_key)

        assert outcome.ok
        assert endpoint.requests[1]["password"].startswith("webauthn:")
        assert LAST_METHOD_KEY not in storage.data

    @pytest.mark.asyncio
    async def test_remembered_method_used_next_time(self):
        storage = MemoryStateStorage()
        payload = {"webauthn": webauthn_descriptor(), "totp": True}
        endpoint = FakeEndpoint([pending(payload), dict(SESSION_DATA)])
        flow = LoginFlow(endpoint=endpoint, preferences=PreferenceStore(storage), ceremony=FakeCeremony())

        await flow.run(Credentials("alice", "secret"), totp_driver("123456"))
        assert storage.data[LAST_METHOD_KEY] == {"id": TfaMethod.TOTP.value}

        seen = []

        async def record(orchestrator):
            seen.append(orchestrator.active_method)

        endpoint.responses = [pending({"webauthn": webauthn_descriptor(), "totp": True})]
        await flow.run(Credentials("alice", "secret"), record)
        assert seen == [TfaMethod.TOTP]
