import copy
import time
from typing import Any, Callable, Dict, Optional, Tuple

from product_update_server.storage.cache_store import CacheStore


class InMemoryCacheStore(CacheStore):
    """
    Process-local store. Values are deep-copied on the way in and out so callers
    never share mutable state with the store.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._transients: Dict[str, Tuple[Any, float]] = {}
        self._options: Dict[str, Any] = {}

    def get_transient(self, key: str) -> Optional[Any]:
        entry = self._transients.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._transients.pop(key, None)
            return None
        return copy.deepcopy(value)

    def set_transient(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._transients[key] = (copy.deepcopy(value), self._clock() + ttl_seconds)

    def delete_transient(self, key: str) -> None:
        self._transients.pop(key, None)

    def get_option(self, key: str, default: Any = None) -> Any:
        if key not in self._options:
            return default
        return copy.deepcopy(self._options[key])

    def update_option(self, key: str, value: Any) -> None:
        self._options[key] = copy.deepcopy(value)

    def delete_option(self, key: str) -> None:
        self._options.pop(key, None)

    def transient_expires_at(self, key: str) -> Optional[float]:
        entry = self._transients.get(key)
        return entry[1] if entry else None
