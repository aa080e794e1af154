"""Hardware ceremony protocol and abort signal"""

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from ..core.types import Assertion

logger = logging.getLogger(__name__)


class AbortSignal:
    """One-shot abort flag bound to a single ceremony attempt.

    Backed by a threading.Event so a blocking device exchange running in a
    worker thread can observe it.
    """

    def __init__(self):
        self._event = threading.Event()
        self._listeners: list[Callable[[], None]] = []

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def event(self) -> threading.Event:
        return self._event

    def add_listener(self, callback: Callable[[], None]) -> None:
        """Run callback on abort, immediately if already aborted"""
        if self.aborted:
            callback()
        else:
            self._listeners.append(callback)

    def abort(self) -> None:
        if self.aborted:
            return
        self._event.set()
        listeners, self._listeners = self._listeners, []
        for callback in listeners:
            try:
                callback()
            except Exception as e:
                logger.warning(f"[WebAuthn] Abort listener failed: {e}")


class Ceremony(Protocol):
    """Protocol for the platform hardware credential API"""

    async def get(self, public_key: dict, signal: AbortSignal) -> Assertion:
        """
        Run an assertion ceremony. `public_key` holds the request options with
        `challenge` and `allowCredentials[].id` as bytes. Must give up promptly
        once `signal` is aborted.
        """
        ...
