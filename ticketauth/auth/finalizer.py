"""Exchange a completed second factor for the final ticket"""

import logging

from ..client.base import TicketEndpoint
from ..core.exceptions import ChallengeRejected, TransportError
from ..core.types import SessionData, session_from_data

logger = logging.getLogger(__name__)


class SessionFinalizer:
    """Posts the tagged factor response together with the challenge ticket"""

    def __init__(self, endpoint: TicketEndpoint):
        self._endpoint = endpoint

    async def exchange(self, userid: str, pending_ticket: str, factor: str) -> SessionData:
        """Raises ChallengeRejected when the endpoint refuses the factor"""
        params = {
            "username": userid,
            "tfa-challenge": pending_ticket,
            "password": factor,
        }

        method = factor.split(":", 1)[0]
        try:
            data = await self._endpoint.post_ticket(params)
            session = session_from_data(data)
        except TransportError as e:
            logger.info(f"[TFA] {method} factor for {userid} rejected: {e}")
            raise ChallengeRejected(e.detail) from None
        except (KeyError, TypeError, AttributeError) as e:
            logger.error(f"[TFA] Unusable exchange response for {userid}: {e!r}")
            raise ChallengeRejected("invalid response format") from None

        logger.info(f"[TFA] {userid} completed second factor via {method}")
        return session
