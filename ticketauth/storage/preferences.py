"""Last used second factor method hint"""

import json
import logging

from ..core.types import TfaMethod
from .base import StateStorage

logger = logging.getLogger(__name__)

LAST_METHOD_KEY = "PBS.TFALogin.lastTab"
USER_VERIFICATION_KEY = "webauthn-user-verification"


class PreferenceStore:
    """Advisory preference entries, a bad entry never blocks login"""

    def __init__(self, storage: StateStorage):
        self._storage = storage

    def get_last_method(self) -> TfaMethod | None:
        try:
            raw = self._storage.get(LAST_METHOD_KEY)
        except Exception as e:
            logger.debug(f"[Prefs] Could not read last method: {e}")
            return None
        if raw is None:
            return None

        try:
            # Older entries hold the JSON text rather than the object
            record = json.loads(raw) if isinstance(raw, str) else raw
            return TfaMethod(int(record["id"]))
        except (ValueError, TypeError, KeyError) as e:
            logger.debug(f"[Prefs] Ignoring stale last method entry {raw!r}: {e}")
            return None

    def set_last_method(self, method: TfaMethod) -> None:
        try:
            self._storage.set(LAST_METHOD_KEY, {"id": method.value})
        except OSError as e:
            logger.warning(f"[Prefs] Could not store last method: {e}")

    def get_user_verification(self) -> str | None:
        """User verification preference owned by the settings side, read only here"""
        try:
            value = self._storage.get(USER_VERIFICATION_KEY)
        except Exception as e:
            logger.debug(f"[Prefs] Could not read user verification: {e}")
            return None
        return value if isinstance(value, str) else None
