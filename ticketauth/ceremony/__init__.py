from .base import AbortSignal, Ceremony

__all__ = ["AbortSignal", "Ceremony"]
