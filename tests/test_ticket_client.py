"""Tests for the ticket endpoint HTTP client"""

import pytest

from ticketauth.client.ticket_client import TicketClient
from ticketauth.config import ServerConfig
from ticketauth.core.exceptions import TransportError

from tests.support import SESSION_DATA


class _Response:
    def __init__(self, status_code=200, payload=None, invalid_json=False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


SERVER = ServerConfig(host="backup.example.com", verify_tls=False, timeout=5.0)


@pytest.mark.asyncio
async def test_returns_data_object():
    session = _Session(_Response(payload={"data": dict(SESSION_DATA)}))
    client = TicketClient(SERVER, session=session)

    data = await client.post_ticket({"username": "alice@pam", "password": "secret"})

    assert data == SESSION_DATA
    url, kwargs = session.calls[0]
    assert url == "https://backup.example.com:8007/api2/json/access/ticket"
    assert kwargs["data"] == {"username": "alice@pam", "password": "secret"}
    assert kwargs["verify"] is False
    assert kwargs["timeout"] == 5.0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "session, status",
    [
        (_Session(error=ConnectionError("refused")), 0),
        (_Session(_Response(status_code=401, payload={"data": None})), 401),
        (_Session(_Response(invalid_json=True)), 500),
        (_Session(_Response(payload={"data": None})), 500),
        (_Session(_Response(payload={"data": {"username": "alice@pam"}})), 500),
        (_Session(_Response(payload=["not", "an", "object"])), 500),
    ],
)
async def test_failures_raise_transport_error(session, status):
    client = TicketClient(SERVER, session=session)
    with pytest.raises(TransportError) as exc_info:
        await client.post_ticket({"username": "alice@pam", "password": "secret"})
    assert exc_info.value.status_code == status


@pytest.mark.asyncio
async def test_close_leaves_injected_session_alone():
    session = _Session()
    client = TicketClient(SERVER, session=session)
    await client.close()
    assert client._session is session
