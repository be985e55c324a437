"""
In-memory TTL cache for whole-project scan results.

An entry may carry validator data: a mapping of absolute file path to the
mtime observed when the entry was stored.  Lookups stat a small random
sample of those paths and drop the entry on any mismatch, which bounds
staleness without stat-ing every file on every read.
"""

from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 5 * 60
DEFAULT_SAMPLE_SIZE = 10


@dataclass
class _CacheEntry(Generic[T]):
    data: T
    validator_data: Optional[dict[str, float]]
    expires_at: float


class ScanCache(Generic[T]):
    """
    Keyed cache with a fixed time window and sampled mtime revalidation.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of an entry from the moment it is stored.
    sample_size:
        Maximum number of recorded mtimes checked per lookup.
    clock:
        Monotonic time source, injectable for tests.
    rng:
        Random source used to pick the sample.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store: dict[str, _CacheEntry[T]] = {}
        self._ttl = ttl_seconds
        self._sample_size = sample_size
        self._clock = clock
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _live_entry(self, key: str) -> Optional[_CacheEntry[T]]:
        """Return the entry for *key* if unexpired and still fresh on disk."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._store[key]
            return None
        if entry.validator_data and not self._sample_is_fresh(entry.validator_data):
            logger.debug("Scan cache entry %s is stale, invalidating", key)
            del self._store[key]
            return None
        return entry

    def _sample_is_fresh(self, mtimes: dict[str, float]) -> bool:
        paths = list(mtimes)
        sample = self._rng.sample(paths, min(self._sample_size, len(paths)))
        for path in sample:
            try:
                if os.stat(path).st_mtime != mtimes[path]:
                    return False
            except OSError:
                return False
        return True

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[T]:
        entry = self._live_entry(key)
        return entry.data if entry is not None else None

    def set(self, key: str, value: T, validator_data: Optional[dict[str, float]] = None) -> None:
        """Store *value*, replacing any existing entry and restarting its window."""
        self._store[key] = _CacheEntry(
            data=value,
            validator_data=dict(validator_data) if validator_data is not None else None,
            expires_at=self._clock() + self._ttl,
        )

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def get_validator_data(self, key: str) -> Optional[dict[str, Any]]:
        """Return the mtime map stored with *key*, or None."""
        entry = self._live_entry(key)
        return entry.validator_data if entry is not None else None

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def invalidate_all(self) -> None:
        self._store.clear()
