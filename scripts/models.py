#!/usr/bin/env python3
"""
Record types shared by the pipeline.

- CandidateMention: what an adapter produces from a raw collector item
- Mention: the immutable stored record (wire format is a JSON object)
- ParseFailure: an item or stored record that could not be understood
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from canonical import canonicalize
from utils.time_parser import iso_from_epoch

# Wire keys every stored record must carry (plus canon or link)
REQUIRED_FIELDS = ('id', 'published_ts')

# Optional wire keys written only when set
OPTIONAL_FIELDS = ('reach', 'sentiment', 'sentiment_label')


@dataclass(frozen=True)
class CandidateMention:
    """Normalized collector output, before canonicalization."""
    title: str
    link: Optional[str]
    summary: str
    source: str
    origin: str
    section: str
    published_ts: int
    kind: str = 'rss'
    reach: Optional[int] = None
    sentiment: Optional[float] = None
    sentiment_label: Optional[str] = None
    matched: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ParseFailure:
    """Something that could not be turned into a candidate or a Mention."""
    origin: str
    reason: str
    raw: str = ''

    def to_dict(self) -> dict:
        return {'origin': self.origin, 'reason': self.reason, 'raw': self.raw[:200]}


@dataclass(frozen=True)
class Mention:
    """One stored mention. Never mutated; corrections are remove + re-add."""
    id: str
    canon: str
    title: str
    link: Optional[str]
    source: str
    origin: str
    section: str
    summary: str
    published_ts: int
    reach: Optional[int] = None
    sentiment: Optional[float] = None
    sentiment_label: Optional[str] = None
    matched: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def published(self) -> str:
        return iso_from_epoch(self.published_ts)

    def to_wire(self) -> dict:
        """Serialize to the stored JSON shape."""
        data = {
            'id': self.id,
            'canon': self.canon,
            'section': self.section,
            'title': self.title,
            'link': self.link,
            'source': self.source,
            'summary': self.summary,
            'origin': self.origin,
            'published_ts': self.published_ts,
            'published': self.published,
        }
        for name in OPTIONAL_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.matched:
            data['matched'] = list(self.matched)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)

    @classmethod
    def from_wire(cls, data: dict) -> "Mention":
        """
        Build a Mention from a stored JSON object.

        Raises:
            ValueError: if a required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected object, got {type(data).__name__}")
        missing = [k for k in REQUIRED_FIELDS if data.get(k) in (None, '')]
        if missing:
            raise ValueError(f"missing fields: {', '.join(missing)}")

        # older records carry only a link
        link = data.get('link') if isinstance(data.get('link'), str) else None
        canon = data.get('canon') or canonicalize(link)
        if not canon:
            raise ValueError("missing fields: canon or link")

        try:
            published_ts = int(data['published_ts'])
        except (TypeError, ValueError):
            raise ValueError(f"bad published_ts: {data['published_ts']!r}")

        known = {'id', 'canon', 'title', 'link', 'source', 'origin', 'section',
                 'summary', 'published_ts', 'published', 'matched'} | set(OPTIONAL_FIELDS)
        matched = data.get('matched') or ()
        return cls(
            id=str(data['id']),
            canon=str(canon),
            title=data.get('title') or '(untitled)',
            link=data.get('link'),
            source=data.get('source') or '',
            origin=data.get('origin') or '',
            section=data.get('section') or '',
            summary=data.get('summary') or '',
            published_ts=published_ts,
            reach=data.get('reach'),
            sentiment=data.get('sentiment'),
            sentiment_label=data.get('sentiment_label'),
            matched=tuple(matched) if isinstance(matched, (list, tuple)) else (),
            extra={k: v for k, v in data.items() if k not in known},
        )


def parse_record(raw: Union[str, bytes, dict, None]) -> Union[Mention, ParseFailure]:
    """Parse a stored value into a Mention. Never raises."""
    if raw is None:
        return ParseFailure(origin='store', reason='empty record')
    try:
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        data = raw if isinstance(raw, dict) else json.loads(raw)
        return Mention.from_wire(data)
    except (ValueError, UnicodeDecodeError) as e:
        return ParseFailure(origin='store', reason=str(e), raw=str(raw))
