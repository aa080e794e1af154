from .base import TicketEndpoint
from .ticket_client import TicketClient

__all__ = ["TicketEndpoint", "TicketClient"]
