#!/usr/bin/env python3
"""
Near-duplicate resolver for stored mentions.

Reads a newest-first snapshot of the store and plans removals in four passes:
1. Exact id
2. Exact canonical key
3. Exact normalized title, preferring original coverage over aggregators
4. Fuzzy title (token Jaccard) for aggregator items against original coverage

Each pass sees the survivors of the passes before it and yields its own
frozen drop-set; the plan is their union. Nothing is removed unless the run
is committed.
"""

import re
import sys
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

from canonical import host_of, normalize_host
from ledger import IdentityLedger, ledger_key
from models import Mention, parse_record
from store import POS_INF, MentionStore

DEFAULT_AGGREGATOR_DOMAINS = frozenset({'cryptopanic.com'})
DEFAULT_FUZZY_THRESHOLD = 0.55
DEFAULT_SCAN_LIMIT = 2000
SAMPLE_SIZE = 10

# Separators that introduce a trailing site name ("Headline - Site")
TITLE_SEPARATORS = (' - ', ' — ', ' | ')

TOKEN_PATTERN = re.compile(r'[a-z0-9]{4,}')


def normalize_title_key(title: str) -> str:
    """
    Comparable form of a headline.

    Lowercase, ASCII quotes and dashes, cut at the first site-name separator,
    punctuation removed, whitespace collapsed.
    """
    s = str(title or '').lower()
    s = re.sub(r'[‘’“”]', "'", s)
    s = re.sub(r'[–—]', '-', s)
    for sep in TITLE_SEPARATORS:
        s = s.split(sep)[0]
    s = re.sub(r"[^\w\s]", ' ', s)
    return ' '.join(s.split())


def title_tokens(title: str) -> FrozenSet[str]:
    """Alphanumeric runs of four or more characters from the normalized title."""
    return frozenset(TOKEN_PATTERN.findall(normalize_title_key(title)))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    a, b = set(a), set(b)
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def is_aggregator_host(host: str, aggregator_domains: Iterable[str]) -> bool:
    host = normalize_host(host)
    if not host:
        return False
    return any(host == d or host.endswith('.' + d) for d in aggregator_domains)


@dataclass(frozen=True)
class Entry:
    """One parsed snapshot record with its precomputed keys."""
    index: int
    raw: str
    mention: Mention
    canon: str
    title_key: str
    is_aggregator: bool

    @property
    def ts(self) -> int:
        return self.mention.published_ts


@dataclass(frozen=True)
class ResolutionPlan:
    entries: Sequence[Entry]
    by_id: FrozenSet[int]
    by_canon: FrozenSet[int]
    by_title_exact: FrozenSet[int]
    by_title_fuzzy: FrozenSet[int]
    parse_failed: int = 0

    @property
    def dropped(self) -> FrozenSet[int]:
        return self.by_id | self.by_canon | self.by_title_exact | self.by_title_fuzzy

    def dropped_entries(self) -> List[Entry]:
        dropped = self.dropped
        return [e for e in self.entries if e.index in dropped]

    def surviving_entries(self) -> List[Entry]:
        dropped = self.dropped
        return [e for e in self.entries if e.index not in dropped]


@dataclass
class ResolverReport:
    mode: str
    scanned: int
    parsed_ok: int
    parse_failed: int
    to_remove: int
    removed: int
    by_id: int
    by_canon: int
    by_title_exact: int
    by_title_fuzzy: int
    sample: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'ok': True,
            'mode': self.mode,
            'scanned': self.scanned,
            'to_remove': self.to_remove,
            'removed': self.removed,
            'by_id': self.by_id,
            'by_canon': self.by_canon,
            'by_title_exact': self.by_title_exact,
            'by_title_fuzzy': self.by_title_fuzzy,
            'stats': {'parsed_ok': self.parsed_ok, 'parse_failed': self.parse_failed},
            'sample': self.sample,
        }


def _newest_first(entries: List[Entry]) -> List[Entry]:
    # stable: equal timestamps keep snapshot order
    return sorted(entries, key=lambda e: -e.ts)


def _keep_newest(groups: Dict[str, List[Entry]]) -> FrozenSet[int]:
    drop = set()
    for members in groups.values():
        if len(members) > 1:
            drop.update(e.index for e in _newest_first(members)[1:])
    return frozenset(drop)


def _group(entries: Iterable[Entry], key) -> Dict[str, List[Entry]]:
    groups = defaultdict(list)
    for entry in entries:
        k = key(entry)
        if k:
            groups[k].append(entry)
    return groups


def exact_id_pass(entries: List[Entry]) -> FrozenSet[int]:
    return _keep_newest(_group(entries, lambda e: e.mention.id))


def exact_canon_pass(entries: List[Entry]) -> FrozenSet[int]:
    return _keep_newest(_group(entries, lambda e: ledger_key(e.canon)))


def exact_title_pass(entries: List[Entry]) -> FrozenSet[int]:
    """Same title: keep the newest original, else the newest aggregator."""
    drop = set()
    for members in _group(entries, lambda e: e.title_key).values():
        originals = _newest_first([e for e in members if not e.is_aggregator])
        aggregators = _newest_first([e for e in members if e.is_aggregator])
        if originals:
            drop.update(e.index for e in originals[1:])
            drop.update(e.index for e in aggregators)
        else:
            drop.update(e.index for e in aggregators[1:])
    return frozenset(drop)


def fuzzy_title_pass(entries: List[Entry], threshold: float) -> FrozenSet[int]:
    """Aggregator items whose title is close to any original item's title."""
    original_tokens = [title_tokens(e.mention.title) for e in entries if not e.is_aggregator]
    original_tokens = [t for t in original_tokens if t]
    drop = set()
    for entry in entries:
        if not entry.is_aggregator:
            continue
        tokens = title_tokens(entry.mention.title)
        if tokens and any(jaccard(tokens, other) >= threshold for other in original_tokens):
            drop.add(entry.index)
    return frozenset(drop)


def build_entries(raws: Sequence[str], aggregator_domains: Iterable[str]):
    """Parse a snapshot; returns (entries, parse_failed)."""
    aggregator_domains = list(aggregator_domains)
    entries, failed = [], 0
    for raw in raws:
        record = parse_record(raw)
        if not isinstance(record, Mention):
            failed += 1
            continue
        canon = record.canon
        entries.append(Entry(
            index=len(entries),
            raw=raw,
            mention=record,
            canon=canon,
            title_key=normalize_title_key(record.title),
            is_aggregator=is_aggregator_host(host_of(canon) or host_of(record.link or ''),
                                             aggregator_domains),
        ))
    return entries, failed


def plan_removals(raws: Sequence[str],
                  aggregator_domains: Iterable[str] = DEFAULT_AGGREGATOR_DOMAINS,
                  fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD) -> ResolutionPlan:
    """Decide what to drop from a newest-first snapshot. Pure."""
    entries, failed = build_entries(raws, aggregator_domains)

    def survivors(*dropped: FrozenSet[int]) -> List[Entry]:
        gone = frozenset().union(*dropped)
        return [e for e in entries if e.index not in gone]

    by_id = exact_id_pass(entries)
    by_canon = exact_canon_pass(survivors(by_id))
    by_title = exact_title_pass(survivors(by_id, by_canon))
    by_fuzzy = fuzzy_title_pass(survivors(by_id, by_canon, by_title), fuzzy_threshold)

    return ResolutionPlan(entries=tuple(entries), by_id=by_id, by_canon=by_canon,
                          by_title_exact=by_title, by_title_fuzzy=by_fuzzy,
                          parse_failed=failed)


def _sample(entry: Entry) -> dict:
    m = entry.mention
    return {'title': m.title or None, 'source': m.source or None,
            'link': m.link or None, 'canon': m.canon or None}


class NearDuplicateResolver:
    """Preview or commit one resolver run. Callers run one at a time."""

    def __init__(self, store: MentionStore, ledger: Optional[IdentityLedger] = None,
                 aggregator_domains: Iterable[str] = DEFAULT_AGGREGATOR_DOMAINS,
                 fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
                 verbose: bool = False):
        self.store = store
        self.ledger = ledger
        self.aggregator_domains = frozenset(normalize_host(d.strip()) for d in aggregator_domains
                                            if d and d.strip())
        self.fuzzy_threshold = fuzzy_threshold
        self.verbose = verbose

    def snapshot(self, hours: Optional[float] = None, limit: int = DEFAULT_SCAN_LIMIT,
                 now: Optional[float] = None) -> List[str]:
        """Newest-first raw values: the last ``hours`` hours, or the newest ``limit``."""
        if hours is None:
            return self.store.recent(limit)
        current = time.time() if now is None else now
        raws = self.store.range_by_time(int(current - hours * 3600), POS_INF)
        raws.reverse()
        return raws[:limit] if limit > 0 else raws

    def run(self, commit: bool = False, hours: Optional[float] = None,
            limit: int = DEFAULT_SCAN_LIMIT, now: Optional[float] = None) -> ResolverReport:
        plan = plan_removals(self.snapshot(hours=hours, limit=limit, now=now),
                             self.aggregator_domains, self.fuzzy_threshold)
        doomed = plan.dropped_entries()

        removed = 0
        if commit and doomed:
            removed = self._commit(plan, doomed)

        return ResolverReport(
            mode='commit' if commit else 'preview',
            scanned=len(plan.entries),
            parsed_ok=len(plan.entries),
            parse_failed=plan.parse_failed,
            to_remove=len(doomed),
            removed=removed,
            by_id=len(plan.by_id),
            by_canon=len(plan.by_canon),
            by_title_exact=len(plan.by_title_exact),
            by_title_fuzzy=len(plan.by_title_fuzzy),
            sample=[_sample(e) for e in doomed[:SAMPLE_SIZE]],
        )

    def _commit(self, plan: ResolutionPlan, doomed: List[Entry]) -> int:
        kept = plan.surviving_entries()
        kept_canons = {ledger_key(e.canon) for e in kept}
        kept_ids = {e.mention.id for e in kept}

        removed = 0
        for entry in doomed:
            if self.store.remove(entry.raw):
                removed += 1
            if self.ledger is not None:
                canon = entry.canon if ledger_key(entry.canon) not in kept_canons else ''
                mention_id = entry.mention.id if entry.mention.id not in kept_ids else ''
                if canon or mention_id:
                    self.ledger.revoke(canon, mention_id)
            if self.verbose:
                sys.stderr.write(f"Removed duplicate: \"{entry.mention.title}\" ({entry.mention.source})\n")
        return removed
