"""Primary username/password login"""

import logging

from ..challenge.decoder import is_challenge_ticket
from ..client.base import TicketEndpoint
from ..core.exceptions import LoginFailed, TransportError
from ..core.types import Credentials, LoginResult, session_from_data

logger = logging.getLogger(__name__)


class CredentialSubmitter:
    """Submits primary credentials to the ticket endpoint"""

    def __init__(self, endpoint: TicketEndpoint, product: str = "PBS"):
        self._endpoint = endpoint
        self._product = product

    async def submit(self, credentials: Credentials) -> LoginResult:
        """
        Login with username@realm + password.
        Raises LoginFailed for every failure cause.
        """
        userid = credentials.userid
        params = {"username": userid, "password": credentials.password}

        try:
            data = await self._endpoint.post_ticket(params)
        except TransportError as e:
            logger.info(f"[Login] Login for {userid} failed: {e}")
            raise LoginFailed() from None

        ticket = data["ticket"]
        username = data.get("username", userid)

        if is_challenge_ticket(ticket, self._product):
            logger.info(f"[Login] {username} requires a second factor")
            return LoginResult(username=username, pending_ticket=ticket)

        logger.info(f"[Login] {username} logged in")
        return LoginResult(username=username, session=session_from_data(data))
