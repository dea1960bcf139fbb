"""
In-memory store of authorization flows awaiting their callback.

Entries are keyed by the OAuth2 state or the OAuth1 request token and
expire after a TTL. Suitable for a single process only.
"""

import logging
import threading
import time
from typing import Any, Callable


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600


class PendingFlows:
    """
    Thread-safe map from callback key to the engine that started the flow.

    Args:
        ttl_seconds: Lifetime of an entry
        clock: Monotonic time source, in seconds
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = {}

    def add(self, key: str, engine: Any) -> None:
        with self._lock:
            self._purge()
            self._entries[key] = (self._clock() + self._ttl, engine)

    def pop(
        self, key: str | None, accept: Callable[[Any], bool] | None = None
    ) -> Any | None:
        """
        Remove and return the engine for a key, or None if unknown or expired.

        When accept is given, an engine it rejects stays in the store and
        None is returned.
        """
        if not key:
            return None
        with self._lock:
            self._purge()
            entry = self._entries.get(key)
            if entry is None or (accept is not None and not accept(entry[1])):
                return None
            del self._entries[key]
        return entry[1]

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)

    def _purge(self) -> None:
        now = self._clock()
        expired = [key for key, (deadline, _) in self._entries.items() if deadline <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Expired {len(expired)} pending authorization flows")
