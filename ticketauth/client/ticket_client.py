"""Ticket endpoint HTTP client"""

import logging

from curl_cffi.requests import AsyncSession

from ..config import ServerConfig
from ..core.exceptions import TransportError

logger = logging.getLogger(__name__)

BASE_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/x-www-form-urlencoded",
    "User-Agent": "ticketauth/0.1",
}


class TicketClient:
    """POSTs to /api2/json/access/ticket over an async curl_cffi session"""

    def __init__(self, server: ServerConfig, session: AsyncSession | None = None):
        self._server = server
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession()
        return self._session

    async def post_ticket(self, params: dict[str, str]) -> dict:
        """POST params, return the response `data` object"""
        session = self._get_session()
        url = self._server.ticket_url

        try:
            resp = await session.post(
                url,
                headers=BASE_HEADERS,
                data=params,
                timeout=self._server.timeout,
                verify=self._server.verify_tls,
            )
        except Exception as e:
            logger.error(f"[Ticket] Request to {url} failed: {e}")
            raise TransportError(status_code=0, detail=f"request failed: {e}")

        if resp.status_code != 200:
            logger.warning(f"[Ticket] Failed with status {resp.status_code}")
            raise TransportError(
                status_code=resp.status_code,
                detail=f"ticket request failed with status {resp.status_code}",
            )

        try:
            payload = resp.json()
        except Exception as e:
            logger.error(f"[Ticket] JSON parse failed: {e}")
            raise TransportError(status_code=500, detail="invalid JSON response")

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict) or not data.get("ticket") or not data.get("username"):
            # the body may echo a ticket, keep it out of the log
            logger.error("[Ticket] Invalid response format, missing ticket data")
            raise TransportError(status_code=500, detail="invalid response format")

        return data

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
