#!/usr/bin/env python3
"""
Retention trimming for the mention store.

Runs after every successful admission. The window can be longer on weekends
(newsrooms publish less, so the dashboard keeps more history visible); which
window applies is decided from the wall clock alone.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from store import MentionStore
from utils.time_parser import is_weekend

DAY_SECONDS = 24 * 60 * 60
DEFAULT_RETENTION_SECONDS = 14 * DAY_SECONDS


@dataclass(frozen=True)
class TrimResult:
    removed: int
    cutoff: int


@dataclass(frozen=True)
class RetentionPolicy:
    """Weekday/weekend retention windows, in seconds."""
    weekday_seconds: int = DEFAULT_RETENTION_SECONDS
    weekend_seconds: Optional[int] = None
    timezone: str = "America/New_York"

    @classmethod
    def from_config(cls, retention_config) -> "RetentionPolicy":
        weekend_days = retention_config.weekend_days
        return cls(
            weekday_seconds=int(retention_config.days * DAY_SECONDS),
            weekend_seconds=int(weekend_days * DAY_SECONDS) if weekend_days else None,
            timezone=retention_config.timezone,
        )

    def window_seconds(self, now: Optional[float] = None) -> int:
        if self.weekend_seconds is None:
            return self.weekday_seconds
        ts = time.time() if now is None else now
        moment = datetime.fromtimestamp(ts, tz=timezone.utc)
        return self.weekend_seconds if is_weekend(moment, self.timezone) else self.weekday_seconds


def trim(store: MentionStore, window_seconds: int, now: Optional[float] = None) -> TrimResult:
    """
    Evict mentions published before ``now - window_seconds``.

    A mention exactly at the cutoff is kept.
    """
    current = int(time.time() if now is None else now)
    cutoff = current - int(window_seconds)
    removed = store.remove_before(cutoff)
    return TrimResult(removed=removed, cutoff=cutoff)
