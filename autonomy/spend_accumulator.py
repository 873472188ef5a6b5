"""Spend Accumulator - cached daily spend per agent.

Answers "how much has this agent spent (approved transactions only) since
local midnight?" without hitting the transaction store on every validation.

Cache coherence rules:
- An entry is trusted while ``0 <= now - cached_at < ttl``.
- ``invalidate(agent_id)`` must be called right after an approved transaction
  is recorded; until then the cache can under-count for up to ``ttl`` seconds.
- An entry cached just before midnight and read just after still returns
  yesterday's total. The staleness is bounded by ``ttl``.
- A failed aggregation raises ``StorageError``. It never yields ``0``, which
  would look like "no spend yet" and inflate the agent's headroom.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Protocol

from autonomy.clock import Clock, local_now, start_of_day
from autonomy.errors import StorageError


logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5.0


class SpendSource(Protocol):
    """Source-of-truth aggregation over recorded transactions."""

    def sum_approved_since(self, agent_id: str, since: datetime) -> Decimal:
        ...


@dataclass(frozen=True)
class SpendCacheEntry:
    """Cached daily spend for one agent."""

    amount: Decimal
    cached_at: datetime


class SpendAccumulator:
    """TTL cache in front of the daily spend aggregation.

    One accumulator belongs to one validation service instance; there is no
    module-level state, so independent instances (and tests) never share
    entries.

    Usage Example:
        ```python
        ledger = TransactionLedger()
        accumulator = SpendAccumulator(ledger, ttl_seconds=5)

        accumulator.get_daily_spend("research-bot")   # aggregates, caches
        accumulator.get_daily_spend("research-bot")   # served from cache

        ledger.record_transaction(...)                # approved spend
        accumulator.invalidate("research-bot")        # next read recomputes
        ```

    Attributes:
        source (SpendSource): Store answering ``sum_approved_since``
        ttl_seconds (float): How long an entry is trusted
        clock (Clock): Wall clock; the day window is derived from it
    """

    def __init__(self, source: SpendSource, ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Clock = local_now):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._cache: Dict[str, SpendCacheEntry] = {}
        # bumped on invalidation; an aggregation that raced one is not cached
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_daily_spend(self, agent_id: str) -> Decimal:
        """Approved spend for ``agent_id`` since the start of today.

        Args:
            agent_id (str): Agent to look up

        Returns:
            Decimal: Cached value when fresh, otherwise a fresh aggregation

        Raises:
            StorageError: If the aggregation read fails
        """
        now = self.clock()
        with self._lock:
            entry = self._cache.get(agent_id)
            if entry is not None and self._is_fresh(entry, now):
                self.hits += 1
                logger.debug("Daily spend cache hit for %s: %s", agent_id, entry.amount)
                return entry.amount
            self.misses += 1
            generation = (self._epoch, self._generations.get(agent_id, 0))

        since = start_of_day(now)
        try:
            amount = self.source.sum_approved_since(agent_id, since)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to aggregate daily spend for agent {agent_id}: {e}") from e

        with self._lock:
            if generation == (self._epoch, self._generations.get(agent_id, 0)):
                self._cache[agent_id] = SpendCacheEntry(amount=amount, cached_at=now)
        logger.debug("Daily spend for %s aggregated since %s: %s", agent_id, since.isoformat(), amount)
        return amount

    def invalidate(self, agent_id: str) -> None:
        """Drop the cached entry so the next read re-aggregates."""
        with self._lock:
            self._cache.pop(agent_id, None)
            self._generations[agent_id] = self._generations.get(agent_id, 0) + 1

    def invalidate_all(self) -> None:
        with self._lock:
            self._cache.clear()
            self._epoch += 1

    def cached_entry(self, agent_id: str) -> Optional[SpendCacheEntry]:
        """Raw cache entry regardless of freshness, for diagnostics."""
        with self._lock:
            return self._cache.get(agent_id)

    def _is_fresh(self, entry: SpendCacheEntry, now: datetime) -> bool:
        age = (now - entry.cached_at).total_seconds()
        return 0 <= age < self.ttl_seconds
