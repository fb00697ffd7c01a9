#!/usr/bin/env python3
"""
Centralized timestamp handling for the mention pipeline.

Collectors hand over dates in whatever shape their provider uses (RFC 2822
from RSS, ISO 8601 from APIs, bare dates from Congress.gov). Everything is
normalized to integer epoch seconds in UTC, which is what the store scores by.
"""

import re
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def relative_to_absolute(relative_str: str) -> Optional[datetime]:
    """
    Convert relative time string to absolute UTC datetime.

    Handles formats like "2 hours ago", "Today", "Yesterday".
    Returns UTC-aware datetime or None if unparseable.
    """
    if not relative_str:
        return None

    time_lower = relative_str.lower().strip()
    now = datetime.now(timezone.utc)

    if time_lower == 'today':
        return now.replace(hour=12, minute=0, second=0, microsecond=0)
    elif time_lower == 'yesterday':
        return (now - timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)

    match = re.search(r'(\d+)\s*(second|minute|hour|day|week)s?\s*ago', time_lower)
    if match:
        value = int(match.group(1))
        unit = match.group(2)
        return now - timedelta(**{unit + 's': value})

    return None


def parse_time(time_str) -> Optional[datetime]:
    """
    Parse various time string formats to UTC-aware datetime.

    Supports:
    - ISO 8601: "2026-01-25T10:30:00Z", "2026-01-25T10:30:00+00:00"
    - RFC 2822: "Sat, 25 Jan 2026 10:30:00 GMT"
    - Simple dates: "2026-01-25", "2026-01-25 10:30"
    - Relative: "2 hours ago", "Today"
    - Unix timestamp (epoch): 1737800000

    Returns UTC-aware datetime or None if unparseable.
    """
    if time_str is None or time_str == '':
        return None

    if isinstance(time_str, bool):
        return None

    if isinstance(time_str, (int, float)):
        try:
            return datetime.fromtimestamp(time_str, tz=timezone.utc)
        except (ValueError, OSError, OverflowError):
            return None

    time_str = str(time_str).strip()

    relative_result = relative_to_absolute(time_str)
    if relative_result:
        return relative_result

    try:
        dt = datetime.fromisoformat(time_str.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except (ValueError, AttributeError):
        pass

    formats = [
        '%Y-%m-%d %H:%M',
        '%Y-%m-%d %H:%M:%S',
        '%a, %d %b %Y %H:%M:%S %z',      # RFC 2822 with tz
        '%a, %d %b %Y %H:%M:%S GMT',     # RFC 2822 GMT
        '%a, %d %b %Y %H:%M:%S %Z',      # RFC 2822 with tz name
        '%d %b %Y %H:%M:%S',
        '%b %d, %Y',                      # "Jan 25, 2026"
        '%B %d, %Y',                      # "January 25, 2026"
    ]

    for fmt in formats:
        try:
            dt = datetime.strptime(time_str, fmt)
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
        except ValueError:
            continue

    return None


def to_epoch(value, now: Optional[float] = None) -> int:
    """
    Convert a provider date to epoch seconds.

    Unparseable or missing dates fall back to ``now`` (current time when not
    given), matching how collectors treat undated items as "just seen".
    """
    dt = parse_time(value)
    if dt is None:
        return int(now if now is not None else time.time())
    return int(dt.timestamp())


def iso_from_epoch(ts: int) -> str:
    """Render epoch seconds as an ISO 8601 UTC string ("...Z")."""
    dt = datetime.fromtimestamp(int(ts), tz=timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.000Z')


def is_weekend(now: datetime, tz_name: str = "America/New_York") -> bool:
    """True when ``now`` falls on Saturday or Sunday in ``tz_name``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).weekday() >= 5


# CLI for testing
if __name__ == '__main__':
    test_cases = [
        "2 hours ago",
        "Today",
        "2026-01-25T10:30:00Z",
        "2026-01-25",
        "Sat, 25 Jan 2026 10:30:00 GMT",
        "Jan 25, 2026",
        "Recent",  # Should fall back to now
    ]

    print("Time Parser Test Results:")
    print("=" * 60)

    for tc in test_cases:
        ts = to_epoch(tc)
        print(f"Input:  {tc}")
        print(f"  Epoch:  {ts}")
        print(f"  ISO:    {iso_from_epoch(ts)}")
        print()
