"""
Cache service for the decode/enrich pipeline.

All shared state lives in one WatcherCaches object that is built once and
handed to every component:

- metadata:    token identity per mint (no expiry by default, LRU-bounded)
- prices:      TokenPriceInfo per mint, stale after PRICE_CACHE_TTL_SEC
- positions:   (wallet, mint) pairs already seen, drives "new position"
- balances:    last observed lamports per address
- signatures:  recently processed signatures, for de-duplication

Concurrent resolutions of the same key share one in-flight task through
SingleFlight, so two runs that miss the cache for the same mint do the
network work once.

Usage:
    caches = WatcherCaches.from_settings(settings)

    cached = caches.prices.get(mint)
    if cached is None:
        cached = await caches.price_flight.run(mint, lambda: fetch(mint))
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from solana_watcher.config import Settings
from solana_watcher.core.models import WalletTokenPosition

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Single cache entry with optional TTL"""
    value: Any
    timestamp: float
    ttl: Optional[float]

    def is_expired(self, now: float) -> bool:
        return bool(self.ttl) and now - self.timestamp > self.ttl


class TTLCache:
    """
    Keyed cache with an optional TTL and an optional LRU size bound.

    A ttl or maxsize of 0/None disables that policy.
    """

    def __init__(
        self,
        name: str,
        ttl: Optional[float] = None,
        maxsize: Optional[int] = None,
        clock: Clock = time.monotonic,
    ):
        self.name = name
        self.ttl = ttl or None
        self.maxsize = maxsize or None
        self._clock = clock
        self._data: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._data.get(key)

        if entry is None:
            self._stats["misses"] += 1
            return default

        if entry.is_expired(self._clock()):
            del self._data[key]
            self._stats["misses"] += 1
            return default

        self._data.move_to_end(key)
        self._stats["hits"] += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value. `ttl` overrides the cache default for this entry."""
        if key in self._data:
            self._data.move_to_end(key)
        self._data[key] = CacheEntry(value=value, timestamp=self._clock(), ttl=ttl or self.ttl)

        while self.maxsize and len(self._data) > self.maxsize:
            oldest, _ = self._data.popitem(last=False)
            self._stats["evictions"] += 1
            logger.debug(f"Cache EVICT [{self.name}]: {oldest[:16]}")

    def __contains__(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            del self._data[key]
            return False
        return True

    def __len__(self) -> int:
        return len(self._data)

    def invalidate(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, v in self._data.items() if v.is_expired(now)]
        for k in expired:
            del self._data[k]
        return len(expired)

    def get_stats(self) -> Dict[str, Any]:
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0
        return {
            "entries": len(self._data),
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "evictions": self._stats["evictions"],
            "hit_rate_pct": round(hit_rate, 1),
        }


class SingleFlight:
    """Collapses concurrent calls for the same key into one shared task."""

    def __init__(self, name: str):
        self.name = name
        self._inflight: Dict[str, asyncio.Future] = {}
        self.joined = 0

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            self.joined += 1
            logger.debug(f"SingleFlight [{self.name}]: joined in-flight {key[:16]}")
        # A cancelled waiter must not cancel the shared task
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def __len__(self) -> int:
        return len(self._inflight)


class WatcherCaches:
    """Process-wide caches, owned by one pipeline and passed by reference."""

    SIGNATURE_CACHE_MAXSIZE = 10_000
    SHARED_BALANCE_KEY = "*"

    def __init__(
        self,
        metadata_ttl: Optional[float] = None,
        metadata_maxsize: Optional[int] = None,
        price_ttl: Optional[float] = 300.0,
        position_maxsize: Optional[int] = None,
        dedup_ttl: Optional[float] = 300.0,
        per_address_balances: bool = True,
        clock: Clock = time.monotonic,
    ):
        self.metadata = TTLCache("metadata", ttl=metadata_ttl, maxsize=metadata_maxsize, clock=clock)
        self.prices = TTLCache("price", ttl=price_ttl, clock=clock)
        self.positions = TTLCache("wallet_position", maxsize=position_maxsize, clock=clock)
        self.balances = TTLCache("last_balance", clock=clock)
        self.signatures = TTLCache(
            "signature", ttl=dedup_ttl, maxsize=self.SIGNATURE_CACHE_MAXSIZE, clock=clock
        )
        self.metadata_flight = SingleFlight("metadata")
        self.price_flight = SingleFlight("price")
        self.per_address_balances = per_address_balances

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = time.monotonic) -> "WatcherCaches":
        return cls(
            metadata_ttl=settings.METADATA_CACHE_TTL_SEC,
            metadata_maxsize=settings.METADATA_CACHE_MAXSIZE,
            price_ttl=settings.PRICE_CACHE_TTL_SEC,
            position_maxsize=settings.POSITION_CACHE_MAXSIZE,
            dedup_ttl=settings.DEDUP_TTL_SEC,
            per_address_balances=settings.BALANCE_TRACKING_PER_ADDRESS,
            clock=clock,
        )

    def mark_position(self, wallet: str, mint: str, first_seen: float) -> bool:
        """Record that `wallet` touched `mint`. Returns True the first time."""
        key = f"{wallet}-{mint}"
        position: Optional[WalletTokenPosition] = self.positions.get(key)
        if position is not None:
            position.transaction_count += 1
            return False
        self.positions.set(key, WalletTokenPosition(wallet=wallet, mint=mint, first_seen=first_seen))
        return True

    def swap_balance(self, address: str, lamports: int) -> Optional[int]:
        """Store the latest lamport balance and return the previous one."""
        key = address if self.per_address_balances else self.SHARED_BALANCE_KEY
        previous = self.balances.get(key)
        self.balances.set(key, lamports)
        return previous

    def seen_signature(self, signature: str) -> bool:
        """True if the signature was already processed within the de-dup window."""
        if signature in self.signatures:
            return True
        self.signatures.set(signature, True)
        return False

    def forget_signature(self, signature: str) -> None:
        """Release a signature so a later delivery of it is processed again."""
        self.signatures.invalidate(signature)

    def get_stats(self) -> Dict[str, Dict[str, Any]]:
        return {
            cache.name: cache.get_stats()
            for cache in (self.metadata, self.prices, self.positions, self.balances, self.signatures)
        }

    def print_stats(self) -> None:
        for name, stats in self.get_stats().items():
            logger.info(
                f"📦 Cache [{name}]: {stats['entries']} entries | "
                f"hit rate {stats['hit_rate_pct']}% | evictions {stats['evictions']}"
            )
