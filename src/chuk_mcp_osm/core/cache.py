"""
Keyed TTL cache with FIFO eviction and optional JSON disk persistence.

Expiry is lazy: every read or write first purges expired entries. Disk
persistence is best effort; failures are logged and the in-memory table
stays authoritative.
"""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class TTLCache:
    """In-memory cache with per-entry TTL and oldest-inserted eviction."""

    def __init__(
        self,
        ttl_ms: float,
        max_entries: int,
        persist_file: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self.persist_file = Path(persist_file) if persist_file else None
        self._clock = clock

        # key -> {"value": ..., "expires": epoch ms}; dict order is insertion order
        self._store: dict[str, dict[str, Any]] = {}
        self._load()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        if self._purge_expired():
            self._save()
        entry = self._store.get(key)
        if entry is None:
            return None
        return entry["value"]

    def has(self, key: str) -> bool:
        self._purge_expired()
        return key in self._store

    def set(self, key: str, value: Any) -> None:
        """Insert a value, evicting the oldest-inserted entry when full."""
        self._purge_expired()
        self._store.pop(key, None)
        if len(self._store) >= self.max_entries:
            oldest = next(iter(self._store))
            del self._store[oldest]
            logger.debug(f"Cache full ({self.max_entries}), evicted {oldest[:60]}")
        self._store[key] = {"value": value, "expires": self._now_ms() + self.ttl_ms}
        self._save()

    def clear(self) -> None:
        self._store.clear()
        self._save()

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._store)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _purge_expired(self) -> int:
        now = self._now_ms()
        expired = [k for k, entry in self._store.items() if entry["expires"] <= now]
        for key in expired:
            del self._store[key]
        return len(expired)

    def _load(self) -> None:
        if self.persist_file is None or not self.persist_file.exists():
            return
        try:
            raw = json.loads(self.persist_file.read_text(encoding="utf-8"))
            now = self._now_ms()
            for key, entry in raw:
                if entry["expires"] > now:
                    self._store[key] = {"value": entry["value"], "expires": entry["expires"]}
            # snapshot may come from a cache with a larger max_entries
            while len(self._store) > self.max_entries:
                del self._store[next(iter(self._store))]
            logger.info(f"Loaded {len(self._store)} cache entries from {self.persist_file}")
        except Exception as e:
            logger.warning(f"Failed to load cache from {self.persist_file}: {e}")
            self._store = {}

    def _save(self) -> None:
        if self.persist_file is None:
            return
        try:
            payload = [[key, entry] for key, entry in self._store.items()]
            self.persist_file.parent.mkdir(parents=True, exist_ok=True)
            self.persist_file.write_text(json.dumps(payload), encoding="utf-8")
        except Exception as e:
            logger.error(f"Failed to persist cache to {self.persist_file}: {e}")
