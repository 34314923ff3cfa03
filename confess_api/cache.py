"""
In-process key/value cache with per-entry expiration.

A single TTLStore is built when the application starts, kept on
``app.state.cache`` and handed to routes through the ``get_cache``
dependency. A janitor thread purges expired entries on a fixed interval.
"""
import math
import threading
import time
from datetime import timedelta
from typing import Any, Hashable, List, NamedTuple, Optional, Union

from cachetools import TLRUCache
from fastapi import Request

from .logging_config import get_logger

logger = get_logger("cache")

# Sentinels accepted as ``ttl`` by TTLStore.set
DEFAULT_EXPIRATION = 0
NO_EXPIRATION = -1

TTL = Union[int, float, timedelta]


class _Entry(NamedTuple):
    value: Any
    ttl: Optional[float]  # seconds, None = never expires


def _time_to_use(key, entry: _Entry, now: float) -> float:
    if entry.ttl is None:
        return math.inf
    return now + entry.ttl


class TTLStore:
    """Thread-safe cache where every entry carries its own expiry."""

    def __init__(
        self,
        default_ttl: timedelta = timedelta(minutes=30),
        cleanup_interval: timedelta = timedelta(minutes=60),
        maxsize: int = 1024,
        timer=time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self._cache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._janitor: Optional[threading.Thread] = None

    @staticmethod
    def default_expiration() -> int:
        """Sentinel meaning "use the configured default TTL"."""
        return DEFAULT_EXPIRATION

    def _resolve_ttl(self, ttl: TTL) -> Optional[float]:
        if isinstance(ttl, timedelta):
            return ttl.total_seconds()
        if ttl == DEFAULT_EXPIRATION:
            return self.default_ttl.total_seconds()
        if ttl == NO_EXPIRATION:
            return None
        return float(ttl)

    def set(self, key: Hashable, value: Any, ttl: TTL = DEFAULT_EXPIRATION):
        with self._lock:
            self._cache[key] = _Entry(value, self._resolve_ttl(ttl))

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._cache.get(key)
        if entry is None:
            return default
        return entry.value

    def delete(self, key: Hashable):
        with self._lock:
            self._cache.pop(key, None)

    def keys(self) -> List[Hashable]:
        with self._lock:
            return list(self._cache.keys())

    def delete_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            return len(self._cache.expire())

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    # ============================================================
    # JANITOR
    # ============================================================

    def start_janitor(self):
        """Start the background sweep thread (idempotent)."""
        if self._janitor and self._janitor.is_alive():
            return
        self._stop.clear()
        self._janitor = threading.Thread(target=self._sweep_loop, daemon=True, name="cache-janitor")
        self._janitor.start()
        logger.info(
            "Cache janitor started",
            interval_seconds=self.cleanup_interval.total_seconds(),
        )

    def stop_janitor(self):
        self._stop.set()
        if self._janitor:
            self._janitor.join(timeout=5)
            self._janitor = None

    def _sweep_loop(self):
        interval = self.cleanup_interval.total_seconds()
        while not self._stop.wait(interval):
            removed = self.delete_expired()
            if removed:
                logger.debug("Cache sweep", removed=removed)


def build_cache(settings) -> TTLStore:
    """Create the application cache from settings."""
    return TTLStore(
        default_ttl=timedelta(minutes=settings.cache_default_ttl_minutes),
        cleanup_interval=timedelta(minutes=settings.cache_cleanup_interval_minutes),
        maxsize=settings.cache_max_entries,
    )


def get_cache(request: Request) -> TTLStore:
    """FastAPI dependency returning the application's cache."""
    return request.app.state.cache
