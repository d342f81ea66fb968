"""Keyed load-or-compute caches for table metadata."""

import logging
import threading
from typing import Any, Callable, Dict, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class MetadataCache(Protocol):
    """Load-or-compute cache consumed by table gateways."""

    def load(self, key: str, fallback: Callable[[], Any]) -> Any:
        ...

    def remove(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemoryMetadataCache:
    """Thread-safe, process-local metadata cache.

    Entries never expire. The fallback runs outside the lock, so two threads
    loading the same missing key may both compute it; the last write wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: Dict[str, Any] = {}

    def load(self, key: str, fallback: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing it on a miss."""
        with self._lock:
            if key in self._store:
                logger.debug(f"Metadata cache hit: {key}")
                return self._store[key]

        value = fallback()
        with self._lock:
            self._store[key] = value
        logger.debug(f"Metadata cache stored: {key}")
        return value

    def remove(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
