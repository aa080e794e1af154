"""Ticket endpoint client protocol"""

from typing import Protocol


class TicketEndpoint(Protocol):
    """Protocol for the ticket-issuing endpoint"""

    async def post_ticket(self, params: dict[str, str]) -> dict:
        """
        POST form params to the ticket endpoint and return the `data` object.
        Raises TransportError on any failure.
        """
        ...
