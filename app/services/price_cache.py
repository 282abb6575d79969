from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class PriceCacheEntry:
    price: Decimal
    stored_at: float


class PriceCache:
    """
    TLD -> registration price memo with optional TTL.

    A ``ttl_seconds`` of 0 or less keeps entries for the life of the process.
    Reads and writes are guarded by a lock, so the cache can be shared between
    the event loop and worker threads.
    """

    def __init__(self, ttl_seconds: int | None = None):
        self._ttl = settings.PRICE_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._entries: dict[str, PriceCacheEntry] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @staticmethod
    def _key(tld: str) -> str:
        return tld.strip().lower().lstrip(".")

    def _is_fresh(self, entry: PriceCacheEntry) -> bool:
        if self._ttl <= 0:
            return True
        return time.monotonic() - entry.stored_at < self._ttl

    def get(self, tld: str) -> Decimal | None:
        """Return the cached price for a TLD, or None when missing or expired"""
        key = self._key(tld)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_fresh(entry):
                del self._entries[key]
                logger.debug(f"Price cache expired for .{key}")
                return None
            return entry.price

    def set(self, tld: str, price: Decimal) -> None:
        key = self._key(tld)
        with self._lock:
            self._entries[key] = PriceCacheEntry(
                price=Decimal(price), stored_at=time.monotonic()
            )
        logger.debug(f"Cached price for .{key}: {price}")

    def invalidate(self, tld: str) -> bool:
        """Drop one TLD. Returns whether an entry was removed."""
        with self._lock:
            return self._entries.pop(self._key(tld), None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, tld: str) -> bool:
        return self.get(tld) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for entry in self._entries.values() if self._is_fresh(entry))


# Shared process-wide instance used by the Namecheap adapter
price_cache = PriceCache()
