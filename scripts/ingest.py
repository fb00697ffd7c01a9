#!/usr/bin/env python3
"""
Admission pipeline: the path every collected item takes into the store.

    adapt -> canonicalize -> ledger admit -> filter chain -> store add -> trim

Losing the ledger race is a normal "duplicate" outcome. Store failures
propagate to the calling collector, which owns retries.
"""

import sys
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from adapters import RawItem, adapt
from canonical import ID_PREFIXES, canonicalize, id_from_canonical
from filters import FilterChain
from ledger import IdentityLedger, ledger_key
from models import CandidateMention, Mention, ParseFailure
from retention import RetentionPolicy, trim
from store import MentionStore, StoreUnavailableError

STORED = 'stored'
DUPLICATE = 'duplicate'
FILTERED = 'filtered'
INVALID = 'invalid'

POSITIVE_WORDS = ["win", "surge", "rally", "gain", "positive", "bull", "record", "secure",
                  "approve", "partnership"]
NEGATIVE_WORDS = ["hack", "breach", "lawsuit", "fine", "down", "drop", "negative", "bear",
                  "investigate", "halt", "outage", "delay", "ban"]


def sentiment_score(text: str) -> int:
    """Keyword sentiment: +1 per positive word present, -1 per negative."""
    t = (text or '').lower()
    return sum(1 for w in POSITIVE_WORDS if w in t) - sum(1 for w in NEGATIVE_WORDS if w in t)


def mention_id_for(canonical_key: str, kind: str) -> str:
    return id_from_canonical(ledger_key(canonical_key), ID_PREFIXES.get(kind, 'm'))


@dataclass(frozen=True)
class AdmissionResult:
    status: str
    canon: str = ''
    mention_id: str = ''
    rule: str = ''
    reason: str = ''
    mention: Optional[Mention] = None
    trimmed: int = 0

    @property
    def stored(self) -> bool:
        return self.status == STORED


@dataclass
class BatchReport:
    found: int = 0
    stored: int = 0
    duplicates: int = 0
    filtered: int = 0
    invalid: int = 0
    trimmed: int = 0
    filtered_by_rule: Counter = field(default_factory=Counter)
    parse_failures: List[ParseFailure] = field(default_factory=list)

    def record(self, result: AdmissionResult):
        self.found += 1
        if result.status == STORED:
            self.stored += 1
        elif result.status == DUPLICATE:
            self.duplicates += 1
        elif result.status == FILTERED:
            self.filtered += 1
            self.filtered_by_rule[result.rule] += 1
        else:
            self.invalid += 1

    def merge(self, other: "BatchReport"):
        self.found += other.found
        self.stored += other.stored
        self.duplicates += other.duplicates
        self.filtered += other.filtered
        self.invalid += other.invalid
        self.trimmed += other.trimmed
        self.filtered_by_rule.update(other.filtered_by_rule)
        self.parse_failures.extend(other.parse_failures)

    def to_dict(self) -> dict:
        return {
            'found': self.found,
            'stored': self.stored,
            'duplicates': self.duplicates,
            'filtered': self.filtered,
            'filtered_by_rule': dict(self.filtered_by_rule),
            'invalid': self.invalid,
            'parse_failed': len(self.parse_failures),
            'parse_failures': [f.to_dict() for f in self.parse_failures[:10]],
            'trimmed': self.trimmed,
        }


class MentionPipeline:
    """Admits candidate mentions into a store. Holds no state between items."""

    def __init__(self, store: MentionStore, ledger: IdentityLedger, filter_chain: FilterChain,
                 retention: Optional[RetentionPolicy] = None, enable_sentiment: bool = False,
                 verbose: bool = False):
        self.store = store
        self.ledger = ledger
        self.filter_chain = filter_chain
        self.retention = retention or RetentionPolicy()
        self.enable_sentiment = enable_sentiment
        self.verbose = verbose

    def _log(self, message: str):
        if self.verbose:
            sys.stderr.write(f"{message}\n")

    def _build_mention(self, candidate: CandidateMention, canon: str, mention_id: str) -> Mention:
        sentiment = candidate.sentiment
        if sentiment is None and self.enable_sentiment:
            sentiment = sentiment_score(f"{candidate.title} {candidate.summary}")
        return Mention(
            id=mention_id,
            canon=canon,
            title=candidate.title or '(untitled)',
            link=candidate.link,
            source=candidate.source,
            origin=candidate.origin,
            section=candidate.section,
            summary=candidate.summary,
            published_ts=candidate.published_ts,
            reach=candidate.reach,
            sentiment=sentiment,
            sentiment_label=candidate.sentiment_label,
            matched=candidate.matched,
            extra=dict(candidate.extra),
        )

    def admit_candidate(self, candidate: CandidateMention,
                        now: Optional[float] = None) -> AdmissionResult:
        """
        Run one candidate through the pipeline.

        Raises:
            StoreUnavailableError: if the store fails during admission or write
        """
        canon = canonicalize(candidate.link, candidate.title)
        if not canon:
            return AdmissionResult(status=INVALID, reason='nothing to key on')

        mention_id = mention_id_for(canon, candidate.kind)
        if not self.ledger.admit(canon, mention_id):
            return AdmissionResult(status=DUPLICATE, canon=canon, mention_id=mention_id)

        decision = self.filter_chain.evaluate(candidate)
        if decision.rejected:
            self._log(f"Skipping [{decision.rule}] \"{candidate.title}\" from {candidate.source}")
            return AdmissionResult(status=FILTERED, canon=canon, mention_id=mention_id,
                                   rule=decision.rule, reason=decision.reason)

        mention = self._build_mention(candidate, canon, mention_id)
        try:
            self.store.add(mention)
        except StoreUnavailableError:
            self._release(canon, mention_id)
            raise

        current = time.time() if now is None else now
        result = trim(self.store, self.retention.window_seconds(current), now=current)
        return AdmissionResult(status=STORED, canon=canon, mention_id=mention_id, mention=mention,
                               trimmed=result.removed)

    def _release(self, canon: str, mention_id: str):
        """Give the key back after a failed write so a later run can retry it."""
        try:
            self.ledger.revoke(canon, mention_id)
        except StoreUnavailableError as e:
            sys.stderr.write(f"Warning: could not release {canon} after failed write: {e}\n")

    def ingest(self, raw_items: Iterable[RawItem], now: Optional[float] = None) -> BatchReport:
        """Adapt and admit a batch of raw collector items."""
        report = BatchReport()
        for item in raw_items:
            candidate = adapt(item)
            if isinstance(candidate, ParseFailure):
                report.parse_failures.append(candidate)
                continue
            result = self.admit_candidate(candidate, now=now)
            report.record(result)
            if result.stored:
                report.trimmed += result.trimmed
        return report

    def remove_mention(self, mention_id: str) -> Dict:
        """Administrative removal: drop the stored record and forget its keys."""
        found = self.store.find_by_id(mention_id)
        if found is None:
            return {'ok': False, 'id': mention_id, 'error': 'not found'}
        raw, mention = found
        removed = self.store.remove(raw)
        self.ledger.revoke(mention.canon, mention.id)
        return {'ok': True, 'id': mention_id, 'removed': int(removed), 'title': mention.title,
                'canon': mention.canon}
