"""Local state storage protocol"""

from typing import Any, Protocol


class StateStorage(Protocol):
    """Protocol for durable client-local key/value state"""

    def get(self, key: str) -> Any | None:
        """Load value for key, None if missing"""
        ...

    def set(self, key: str, value: Any) -> None:
        """Save value for key"""
        ...

    def remove(self, key: str) -> None:
        """Drop key if present"""
        ...
