import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

from product_update_server.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


class JsonCacheStore(CacheStore):
    """
    Data-directory backed store: one JSON file per key.

    Layout:
        <data_dir>/transients/<key>.json  {"value": ..., "expires_at": <epoch seconds>}
        <data_dir>/options/<key>.json     {"value": ...}
    """

    def __init__(self, data_dir: Path, clock: Callable[[], float] = time.time):
        self._data_dir = data_dir
        self._clock = clock
        self._transients_dir = self._data_dir / "transients"
        self._options_dir = self._data_dir / "options"

        # Ensure data directories exist
        self._transients_dir.mkdir(parents=True, exist_ok=True)
        self._options_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, directory: Path, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid store key: {key!r}")
        return directory / f"{key}.json"

    def _read(self, path: Path) -> Optional[dict]:
        if not path.exists():
            return None
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable store file {path}: {e}")
            return None
        return raw if isinstance(raw, dict) else None

    def _write(self, path: Path, payload: dict) -> None:
        # Each writer gets its own temp file; os.replace swaps it in whole
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_transient(self, key: str) -> Optional[Any]:
        path = self._path(self._transients_dir, key)
        raw = self._read(path)
        if raw is None:
            return None
        expires_at = raw.get("expires_at")
        if not isinstance(expires_at, (int, float)) or self._clock() >= expires_at:
            path.unlink(missing_ok=True)
            return None
        return raw.get("value")

    def set_transient(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        path = self._path(self._transients_dir, key)
        self._write(path, {"value": value, "expires_at": self._clock() + ttl_seconds})

    def delete_transient(self, key: str) -> None:
        self._path(self._transients_dir, key).unlink(missing_ok=True)

    def get_option(self, key: str, default: Any = None) -> Any:
        raw = self._read(self._path(self._options_dir, key))
        if raw is None or "value" not in raw:
            return default
        return raw["value"]

    def update_option(self, key: str, value: Any) -> None:
        self._write(self._path(self._options_dir, key), {"value": value})

    def delete_option(self, key: str) -> None:
        self._path(self._options_dir, key).unlink(missing_ok=True)
