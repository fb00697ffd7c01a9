#!/usr/bin/env python3
"""
Mention storage.

The pipeline only needs two primitives from its store: a score-ordered set
of serialized mentions (scored by published epoch) and plain membership sets
for the identity ledger. Three backends provide them:

- MemoryBackend: in-process, lock-protected (tests, one-off runs)
- SQLiteBackend: on-disk cache database, one connection per call
- RedisBackend: shared store for concurrently running collectors

Backend failures surface as StoreUnavailableError and are never retried here.
"""

import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

import redis

from models import Mention, ParseFailure, parse_record

CACHE_DIR = Path.home() / ".cache" / "mention-pipeline"

# Default keys, shared with the dashboard readers
MENTIONS_KEY = "mentions:z"
SEEN_ID_KEY = "mentions:seen"
SEEN_CANON_KEY = "mentions:seen:canon"

NEG_INF = float('-inf')
POS_INF = float('inf')


class StoreUnavailableError(RuntimeError):
    """The backing store could not complete an operation."""


class StoreBackend(ABC):
    """Sorted-set and set primitives over string members."""

    @abstractmethod
    def zadd(self, key: str, score: float, member: str) -> bool:
        """Add or rescore a member. True if it was new."""

    @abstractmethod
    def zrangebyscore(self, key: str, min_score: float, max_score: float) -> List[str]:
        """Members with min_score <= score <= max_score, ascending."""

    @abstractmethod
    def zrange(self, key: str, start: int, end: int, reverse: bool = False) -> List[str]:
        """Members by rank, ``end`` inclusive, negative indexes from the tail."""

    @abstractmethod
    def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        """Remove members within the score range. Returns the number removed."""

    @abstractmethod
    def zrem(self, key: str, member: str) -> bool:
        """Remove an exact member. True if it was present."""

    @abstractmethod
    def zcard(self, key: str) -> int:
        pass

    @abstractmethod
    def sadd(self, key: str, member: str) -> bool:
        """Add to a set. True only if the member was not already present."""

    @abstractmethod
    def srem(self, key: str, member: str) -> bool:
        pass

    @abstractmethod
    def sismember(self, key: str, member: str) -> bool:
        pass

    @abstractmethod
    def scard(self, key: str) -> int:
        pass


def _rank_slice(length: int, start: int, end: int) -> slice:
    """Translate inclusive (possibly negative) ranks into a slice."""
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
    return slice(start, max(end + 1, start))


class MemoryBackend(StoreBackend):
    """Dict-backed store; a single lock makes each primitive atomic."""

    def __init__(self):
        self._zsets: Dict[str, Dict[str, float]] = {}
        self._sets: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def _ordered(self, key: str) -> List[str]:
        zset = self._zsets.get(key, {})
        return [m for m, _ in sorted(zset.items(), key=lambda kv: (kv[1], kv[0]))]

    def zadd(self, key, score, member):
        with self._lock:
            zset = self._zsets.setdefault(key, {})
            is_new = member not in zset
            zset[member] = score
            return is_new

    def zrangebyscore(self, key, min_score, max_score):
        with self._lock:
            zset = self._zsets.get(key, {})
            return [m for m in self._ordered(key) if min_score <= zset[m] <= max_score]

    def zrange(self, key, start, end, reverse=False):
        with self._lock:
            members = self._ordered(key)
            if reverse:
                members.reverse()
            return members[_rank_slice(len(members), start, end)]

    def zremrangebyscore(self, key, min_score, max_score):
        with self._lock:
            zset = self._zsets.get(key, {})
            doomed = [m for m, s in zset.items() if min_score <= s <= max_score]
            for member in doomed:
                del zset[member]
            return len(doomed)

    def zrem(self, key, member):
        with self._lock:
            return self._zsets.get(key, {}).pop(member, None) is not None

    def zcard(self, key):
        with self._lock:
            return len(self._zsets.get(key, {}))

    def sadd(self, key, member):
        with self._lock:
            members = self._sets.setdefault(key, set())
            if member in members:
                return False
            members.add(member)
            return True

    def srem(self, key, member):
        with self._lock:
            members = self._sets.get(key, set())
            if member not in members:
                return False
            members.discard(member)
            return True

    def sismember(self, key, member):
        with self._lock:
            return member in self._sets.get(key, set())

    def scard(self, key):
        with self._lock:
            return len(self._sets.get(key, set()))


class SQLiteBackend(StoreBackend):
    """SQLite-backed store; uniqueness constraints give atomic add-if-absent."""

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else CACHE_DIR / "mentions.db"
        self._init_db()

    def _connect(self):
        try:
            return sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"cannot open {self.db_path}: {e}") from e

    def _init_db(self):
        """Initialize the database and create tables if needed."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(f"cannot create {self.db_path.parent}: {e}") from e

        self._execute_script("""
            CREATE TABLE IF NOT EXISTS zsets (
                key TEXT NOT NULL,
                member TEXT NOT NULL,
                score REAL NOT NULL,
                PRIMARY KEY (key, member)
            );
            CREATE INDEX IF NOT EXISTS idx_zsets_score ON zsets(key, score);
            CREATE TABLE IF NOT EXISTS sets (
                key TEXT NOT NULL,
                member TEXT NOT NULL,
                PRIMARY KEY (key, member)
            );
        """)

    def _execute_script(self, script: str):
        conn = self._connect()
        try:
            with conn:
                conn.executescript(script)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"sqlite error: {e}") from e
        finally:
            conn.close()

    def _run(self, sql: str, params: tuple = (), fetch: bool = False):
        conn = self._connect()
        try:
            with conn:
                cursor = conn.execute(sql, params)
                if fetch:
                    return cursor.fetchall()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"sqlite error: {e}") from e
        finally:
            conn.close()

    def zadd(self, key, score, member):
        inserted = self._run(
            "INSERT OR IGNORE INTO zsets (key, member, score) VALUES (?, ?, ?)",
            (key, member, score))
        if not inserted:
            self._run("UPDATE zsets SET score = ? WHERE key = ? AND member = ?",
                      (score, key, member))
        return bool(inserted)

    def zrangebyscore(self, key, min_score, max_score):
        rows = self._run(
            "SELECT member FROM zsets WHERE key = ? AND score >= ? AND score <= ? "
            "ORDER BY score, member",
            (key, min_score, max_score), fetch=True)
        return [row[0] for row in rows]

    def zrange(self, key, start, end, reverse=False):
        order = "DESC" if reverse else "ASC"
        rows = self._run(
            f"SELECT member FROM zsets WHERE key = ? ORDER BY score {order}, member {order}",
            (key,), fetch=True)
        members = [row[0] for row in rows]
        return members[_rank_slice(len(members), start, end)]

    def zremrangebyscore(self, key, min_score, max_score):
        return self._run(
            "DELETE FROM zsets WHERE key = ? AND score >= ? AND score <= ?",
            (key, min_score, max_score))

    def zrem(self, key, member):
        return self._run("DELETE FROM zsets WHERE key = ? AND member = ?", (key, member)) > 0

    def zcard(self, key):
        return self._run("SELECT COUNT(*) FROM zsets WHERE key = ?", (key,), fetch=True)[0][0]

    def sadd(self, key, member):
        return self._run("INSERT OR IGNORE INTO sets (key, member) VALUES (?, ?)",
                         (key, member)) == 1

    def srem(self, key, member):
        return self._run("DELETE FROM sets WHERE key = ? AND member = ?", (key, member)) > 0

    def sismember(self, key, member):
        rows = self._run("SELECT 1 FROM sets WHERE key = ? AND member = ?",
                         (key, member), fetch=True)
        return bool(rows)

    def scard(self, key):
        return self._run("SELECT COUNT(*) FROM sets WHERE key = ?", (key,), fetch=True)[0][0]


class RedisBackend(StoreBackend):
    """Redis store; SADD's integer reply is the add-if-absent primitive."""

    def __init__(self, client: Optional[redis.Redis] = None, url: str = "redis://localhost:6379/0",
                 timeout: float = 10.0):
        self.client = client or redis.from_url(
            url, decode_responses=True, socket_timeout=timeout, socket_connect_timeout=timeout)

    def _call(self, method: str, *args, **kwargs):
        try:
            return getattr(self.client, method)(*args, **kwargs)
        except redis.RedisError as e:
            raise StoreUnavailableError(f"redis {method} failed: {e}") from e

    @staticmethod
    def _text(values) -> List[str]:
        return [v.decode('utf-8') if isinstance(v, bytes) else v for v in values]

    def zadd(self, key, score, member):
        return self._call('zadd', key, {member: score}) == 1

    def zrangebyscore(self, key, min_score, max_score):
        return self._text(self._call('zrangebyscore', key, min_score, max_score))

    def zrange(self, key, start, end, reverse=False):
        return self._text(self._call('zrange', key, start, end, desc=reverse))

    def zremrangebyscore(self, key, min_score, max_score):
        return self._call('zremrangebyscore', key, min_score, max_score)

    def zrem(self, key, member):
        return self._call('zrem', key, member) == 1

    def zcard(self, key):
        return self._call('zcard', key)

    def sadd(self, key, member):
        return self._call('sadd', key, member) == 1

    def srem(self, key, member):
        return self._call('srem', key, member) == 1

    def sismember(self, key, member):
        return bool(self._call('sismember', key, member))

    def scard(self, key):
        return self._call('scard', key)


def open_backend(store_config) -> StoreBackend:
    """Build the backend named by a StoreConfig."""
    kind = (store_config.backend or 'memory').lower()
    if kind == 'sqlite':
        return SQLiteBackend(store_config.db_path)
    if kind == 'redis':
        return RedisBackend(url=store_config.redis_url, timeout=store_config.timeout_seconds)
    if kind == 'memory':
        return MemoryBackend()
    raise ValueError(f"unknown store backend: {store_config.backend!r}")


class MentionStore:
    """Time-scored container of serialized mentions."""

    def __init__(self, backend: StoreBackend, key: str = MENTIONS_KEY):
        self.backend = backend
        self.key = key

    def add(self, mention: Mention) -> str:
        """Store a mention; returns the exact serialized value written."""
        raw = mention.to_json()
        self.backend.zadd(self.key, mention.published_ts, raw)
        return raw

    def range_by_time(self, min_ts: float = NEG_INF, max_ts: float = POS_INF) -> List[str]:
        return self.backend.zrangebyscore(self.key, min_ts, max_ts)

    def recent(self, limit: int = 2000) -> List[str]:
        """Newest-first raw values, at most ``limit`` of them."""
        if limit <= 0:
            return []
        return self.backend.zrange(self.key, 0, limit - 1, reverse=True)

    def remove(self, raw: str) -> bool:
        """Remove one exact stored value."""
        return self.backend.zrem(self.key, raw)

    def remove_by_time(self, min_ts: float, max_ts: float) -> int:
        return self.backend.zremrangebyscore(self.key, min_ts, max_ts)

    def remove_before(self, cutoff: int) -> int:
        """Remove everything scored strictly below ``cutoff``."""
        return self.remove_by_time(NEG_INF, cutoff - 1)

    def count(self) -> int:
        return self.backend.zcard(self.key)

    def mentions(self, raws: List[str]) -> List[Union[Mention, ParseFailure]]:
        return [parse_record(raw) for raw in raws]

    def find_by_id(self, mention_id: str):
        """(raw, Mention) for the first stored record with this id, else None."""
        for raw in self.backend.zrange(self.key, 0, -1):
            record = parse_record(raw)
            if isinstance(record, Mention) and record.id == mention_id:
                return raw, record
        return None
