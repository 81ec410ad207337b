from abc import ABC, abstractmethod
from typing import Any, Optional


class CacheStore(ABC):
    """
    Abstract base class for key-value persistence.

    Two independent namespaces are exposed:
    * transients: entries that expire automatically after a TTL;
    * options: durable entries that persist until overwritten or deleted.

    Values must be JSON-compatible.
    """

    @abstractmethod
    def get_transient(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if missing or expired."""
        pass

    @abstractmethod
    def set_transient(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a value that expires after ttl_seconds."""
        pass

    @abstractmethod
    def delete_transient(self, key: str) -> None:
        """Evict a transient. Missing keys are ignored."""
        pass

    @abstractmethod
    def get_option(self, key: str, default: Any = None) -> Any:
        """Return a durable value, or default if it was never written."""
        pass

    @abstractmethod
    def update_option(self, key: str, value: Any) -> None:
        """Create or overwrite a durable value."""
        pass

    @abstractmethod
    def delete_option(self, key: str) -> None:
        """Delete a durable value. Missing keys are ignored."""
        pass
