"""
Endpoint condition cache with single-flight probe markers.

Many Milvus CRs can share one dependency (the same etcd cluster, the same
object storage). The cache is keyed by the canonical endpoint set so that:
- a probe result is reused by every CR pointing at the same endpoints
- at most one probe per endpoint set is in flight at any time

Entries are created lazily and live for the process lifetime; every
completed probe overwrites the entry.

The cache is used from a single asyncio event loop. try_start_probe_for()
checks and sets the marker without awaiting, so it is atomic with respect
to other coroutines.
"""

import time
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from milvus_protocols import Condition

EndpointKey = tuple[str, ...]


def endpoint_key(endpoints: Iterable[str]) -> EndpointKey:
    """Canonical key: sorted, de-duplicated, blank entries dropped."""
    return tuple(sorted({e.strip() for e in endpoints if e.strip()}))


@dataclass
class EndpointCacheEntry:
    """
    Cached probe state for one endpoint set.

    Attributes:
        condition: Condition from the last completed probe
        initialized: True once a probe has completed
        probing: True while a probe is in flight
        checked_at: Monotonic time of the last completed probe
    """

    condition: Condition | None = None
    initialized: bool = False
    probing: bool = False
    checked_at: float = 0.0


class EndpointCheckCache:
    """
    Process-wide cache of dependency probe results.

    Example:
        cache = EndpointCheckCache(ttl_seconds=30)
        condition, initialized = cache.get(["etcd-0:2379"])
        if cache.try_start_probe_for(["etcd-0:2379"]):
            try:
                cache.set(["etcd-0:2379"], await probe())
            finally:
                cache.end_probe_for(["etcd-0:2379"])
    """

    def __init__(self, ttl_seconds: float = 30.0) -> None:
        self.ttl_seconds = ttl_seconds
        self._entries: dict[EndpointKey, EndpointCacheEntry] = {}

    def _entry(self, endpoints: Iterable[str]) -> EndpointCacheEntry:
        key = endpoint_key(endpoints)
        entry = self._entries.get(key)
        if entry is None:
            entry = EndpointCacheEntry()
            self._entries[key] = entry
        return entry

    def get(self, endpoints: Iterable[str]) -> tuple[Condition | None, bool]:
        """Return (last condition, initialized)."""
        entry = self._entry(endpoints)
        return entry.condition, entry.initialized

    def set(self, endpoints: Iterable[str], condition: Condition) -> None:
        entry = self._entry(endpoints)
        entry.condition = condition
        entry.initialized = True
        entry.checked_at = time.monotonic()

    def is_fresh(self, endpoints: Iterable[str]) -> bool:
        """True if a completed probe is younger than the TTL."""
        entry = self._entry(endpoints)
        if not entry.initialized:
            return False
        return time.monotonic() - entry.checked_at < self.ttl_seconds

    def try_start_probe_for(self, endpoints: Iterable[str]) -> bool:
        """Acquire the in-flight marker; False if another probe holds it."""
        entry = self._entry(endpoints)
        if entry.probing:
            return False
        entry.probing = True
        return True

    def end_probe_for(self, endpoints: Iterable[str]) -> None:
        """Release the in-flight marker."""
        self._entry(endpoints).probing = False

    @asynccontextmanager
    async def probing(self, endpoints: Iterable[str]) -> AsyncIterator[bool]:
        """
        Scoped marker acquisition.

        Yields True if this caller owns the probe. The marker is released
        on every exit path, including cancellation and timeouts.
        """
        endpoints = list(endpoints)
        acquired = self.try_start_probe_for(endpoints)
        try:
            yield acquired
        finally:
            if acquired:
                self.end_probe_for(endpoints)
