"""Daily cache with a 07:00 IST rollover."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import CacheEntry
from .storage import PaperStore

logger = logging.getLogger(__name__)

# Cache days roll over at 07:00 in UTC+05:30, not at midnight.
ROLLOVER_OFFSET = timedelta(hours=5, minutes=30)
ROLLOVER_HOUR = 7


def current_logical_date(now: datetime | None = None) -> str:
    """Compute the logical cache date.

    Args:
        now: Reference time (defaults to the current time). Naive values are
            taken as UTC.

    Returns:
        Date string (YYYY-MM-DD) in UTC+05:30, where the day starts at 07:00
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(timezone(ROLLOVER_OFFSET))
    if local.hour < ROLLOVER_HOUR:
        local -= timedelta(days=1)
    return local.date().isoformat()


def next_rollover(now: datetime | None = None) -> datetime:
    """Return the UTC instant of the next cache rollover after now."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    local = now.astimezone(timezone(ROLLOVER_OFFSET))
    target = local.replace(hour=ROLLOVER_HOUR, minute=0, second=0, microsecond=0)
    if local >= target:
        target += timedelta(days=1)
    return target.astimezone(timezone.utc)


class DailyCache:
    """Cache of serializable payloads valid until the next rollover.

    Stale entries are treated as misses and left in place; they are
    overwritten by the next set_cache for the same key.
    """

    def __init__(self, store: PaperStore):
        """Initialize cache.

        Args:
            store: Backend whose cache partition holds the entries
        """
        self.store = store

    def get_cached(self, key: str, now: datetime | None = None) -> Any | None:
        """Return the cached payload for key, or None on a miss or stale entry."""
        try:
            entry = self.store.get_cache_entry(key)
        except ValueError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if entry is None:
            return None
        if entry.cache_date != current_logical_date(now):
            logger.info(f"Cache entry {key} is stale ({entry.cache_date})")
            return None
        return entry.data

    def set_cache(self, key: str, data: Any, now: datetime | None = None) -> None:
        """Store data under key, stamped with the current logical date."""
        self.store.put_cache_entry(key, CacheEntry(cache_date=current_logical_date(now), data=data))
