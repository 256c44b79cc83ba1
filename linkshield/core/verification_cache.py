"""Time-bounded in-memory cache of verification verdicts."""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from linkshield.core.models import VerificationVerdict

logger = logging.getLogger(__name__)


class VerificationCache:
    """
    Thread-safe TTL cache keyed by the raw URL string.

    Not size-bounded: entries are small and expire after ttl_seconds.
    The lock only guards single dict operations, never a verification.
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[VerificationVerdict, float]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def get(self, url: str) -> Optional[VerificationVerdict]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                self._misses += 1
                return None
            verdict, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[url]
                self._misses += 1
                return None
            self._hits += 1
            return verdict

    def set(self, url: str, verdict: VerificationVerdict) -> None:
        with self._lock:
            self._entries[url] = (verdict, self._clock() + self._ttl)

    def flush_all(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
        logger.info(f"Verification cache flushed ({count} entries)")

    def _prune(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            self._prune()
            total = self._hits + self._misses
            return {
                "hits": self._hits,
                "misses": self._misses,
                "keys": len(self._entries),
                "hit_rate": round(self._hits / total * 100, 2) if total > 0 else 0.0,
                "ttl_seconds": self._ttl,
            }
