"""
In-memory cache of validation outcomes.

Entries are advisory: a miss only costs another existence check. The cache
lives for one run and is cleared at teardown.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from shipcheck.constants import RESPONSE_CACHE_TTL_SECONDS
from shipcheck.models import ValidationOutcome


@dataclass
class CacheEntry:
    """A cached outcome and when it was stored."""
    outcome: ValidationOutcome
    created_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        """Check if this entry is still inside the TTL window."""
        return now - self.created_at < ttl


class ResponseCache:
    """
    Fixed-window TTL cache keyed by normalized URL.

    Only the run's single asyncio control flow touches it. The clock is
    injectable so tests can move time without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float = RESPONSE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[ValidationOutcome]:
        """Return a fresh cached outcome, or None."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if not entry.is_fresh(self._clock(), self.ttl_seconds):
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.outcome

    def set(self, key: str, outcome: ValidationOutcome) -> None:
        self._entries[key] = CacheEntry(outcome=outcome, created_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
