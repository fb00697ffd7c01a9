#!/usr/bin/env python3
"""
Adapters from collector payloads to CandidateMention.

Each collector hands over items in its provider's own shape. A RawItem tags
the payload with its kind; ``adapt`` dispatches to the adapter for that kind
and always returns either a CandidateMention or a ParseFailure.

Kinds:
  rss            - parsed RSS/Atom entry (Google Alerts entity feeds, YouTube)
  newsletter     - newsletter RSS entry (items may have no link)
  meltwater      - Meltwater API / webhook document
  congress       - Congress.gov bill
  google_alerts  - bare Google Alerts item {title, link, pub}
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

from bs4 import BeautifulSoup

from canonical import display_source, host_of, unwrap_redirect
from models import CandidateMention, ParseFailure
from utils.time_parser import to_epoch


@dataclass
class RawItem:
    """A provider payload plus the collector context it arrived with."""
    kind: str
    payload: Any
    origin: str = ''
    section: str = ''
    feed_title: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)


# Congress bill type -> congress.gov URL segment
BILL_URL_TYPES = {
    's': 'senate-bill',
    'hr': 'house-bill',
    'sres': 'senate-resolution',
    'hres': 'house-resolution',
    'sjres': 'senate-joint-resolution',
    'hjres': 'house-joint-resolution',
    'sconres': 'senate-concurrent-resolution',
    'hconres': 'house-concurrent-resolution',
}


def strip_html(text: str) -> str:
    """Plain text from an HTML fragment, whitespace collapsed."""
    if not text:
        return ''
    if '<' not in text:
        return ' '.join(text.split())
    soup = BeautifulSoup(text, 'html.parser')
    return ' '.join(soup.get_text(separator=' ', strip=True).split())


def _first(*values) -> str:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ''


def _youtube_watch_url(value: str) -> str:
    value = (value or '').strip()
    if re.match(r'^https?://', value, re.IGNORECASE):
        return value
    if re.fullmatch(r'[A-Za-z0-9_-]{11}', value):
        return f"https://www.youtube.com/watch?v={value}"
    return value


def extract_entry_link(entry: dict) -> str:
    """Best link for a feed entry, with alert redirects unwrapped."""
    link = entry.get('link')
    links = entry.get('links') or []
    if isinstance(link, dict):
        raw = link.get('href', '')
    elif isinstance(link, list) and link and isinstance(link[0], dict):
        raw = link[0].get('href', '')
    elif links and isinstance(links[0], dict) and links[0].get('href'):
        raw = links[0]['href']
    else:
        raw = link if isinstance(link, str) else ''
    if not raw and isinstance(entry.get('id'), str):
        raw = entry['id']

    raw = unwrap_redirect((raw or '').strip())

    entry_id = entry.get('id') if isinstance(entry.get('id'), str) else ''
    yt_id = entry.get('yt:videoId') or entry.get('yt_videoid') or (
        entry_id.split('yt:video:', 1)[1] if entry_id.startswith('yt:video:') else '')

    if not re.match(r'^https?://', raw, re.IGNORECASE) and yt_id:
        raw = _youtube_watch_url(yt_id)
    else:
        host = host_of(raw)
        if 'youtube.com' in host or 'youtu.be' in host:
            raw = _youtube_watch_url(raw)
    return raw.strip()


def _entry_date(entry: dict):
    return (entry.get('isoDate') or entry.get('pubDate') or entry.get('published')
            or entry.get('updated') or entry.get('dc:date'))


def adapt_rss_entry(item: RawItem) -> CandidateMention:
    entry = item.payload
    title = _first(entry.get('title'))
    summary = strip_html(_first(
        entry.get('media:description'), entry.get('contentSnippet'),
        entry.get('content'), entry.get('summary'), entry.get('description')))
    link = extract_entry_link(entry)
    return CandidateMention(
        title=title,
        link=link or None,
        summary=summary,
        source=display_source(link, item.feed_title),
        origin=item.origin or 'google_alerts',
        section=item.section or 'Google Alerts',
        published_ts=to_epoch(_entry_date(entry)),
        kind='rss',
    )


def adapt_newsletter_item(item: RawItem) -> CandidateMention:
    """Newsletter entries keep the newsletter name as their source."""
    entry = item.payload
    link = extract_entry_link(entry)
    if link == '#':
        link = ''
    feed_title = item.feed_title or 'Newsletter'
    return CandidateMention(
        title=_first(entry.get('title')),
        link=link or None,
        summary=strip_html(_first(entry.get('contentSnippet'), entry.get('content'),
                                  entry.get('summary'), entry.get('description'))),
        source=feed_title,
        origin=item.origin or 'newsletter',
        section=item.section or 'Newsletter',
        published_ts=to_epoch(_entry_date(entry)),
        kind='newsletter',
        reach=0,
        extra={'provider': feed_title, 'newsletter_article': not link},
    )


def normalize_sentiment(doc: dict) -> Optional[float]:
    """Numeric sentiment from a provider document (-1, 0, 1 or a score)."""
    score = doc.get('sentiment_score')
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        return score
    label = str(doc.get('sentiment') or '').lower()
    return {'positive': 1, 'negative': -1, 'neutral': 0}.get(label)


def adapt_meltwater_document(item: RawItem) -> CandidateMention:
    doc = item.payload
    content = doc.get('content') or {}
    source_info = doc.get('source') if isinstance(doc.get('source'), dict) else {}
    media = doc.get('media') or {}
    matched = doc.get('matched') if isinstance(doc.get('matched'), dict) else {}
    metrics = doc.get('metrics') or {}

    summary = _first(
        doc.get('summary'), doc.get('description'), doc.get('snippet'),
        content.get('summary'), content.get('description'), content.get('snippet'),
        matched.get('hit_sentence'), content.get('opening_text'), content.get('byline'),
        doc.get('document_summary'))
    # hit sentences come wrapped in ellipses
    summary = re.sub(r'\s*\.\.\.$', '', re.sub(r'^\.\.\.\s*', '', summary)).strip()

    link = _first(content.get('url'), doc.get('url'), doc.get('link'), doc.get('document_url'))
    source = _first(source_info.get('name'), doc.get('source_name'), media.get('name'),
                    doc.get('source') if isinstance(doc.get('source'), str) else '') or 'Meltwater'
    reach = (metrics.get('reach') or metrics.get('circulation')
             or doc.get('source_reach') or doc.get('reach') or 0)

    extra = {}
    country = _first(doc.get('country'), media.get('country'), source_info.get('country'),
                     doc.get('source_country'))
    if country:
        extra['country'] = country
    if item.extra.get('searchid'):
        extra['searchid'] = item.extra['searchid']

    return CandidateMention(
        title=_first(content.get('title'), doc.get('title'), doc.get('headline'),
                     doc.get('document_title')) or 'Untitled',
        link=link if link and link != '#' else None,
        summary=strip_html(summary),
        source=source,
        origin=item.origin or 'meltwater',
        section=item.section or 'Meltwater',
        published_ts=to_epoch(doc.get('published_date') or (doc.get('document') or {}).get('published_date')
                              or doc.get('date')),
        kind='meltwater',
        reach=int(reach),
        sentiment=normalize_sentiment(doc),
        sentiment_label=doc.get('sentiment') or None,
        extra=extra,
    )


def adapt_congress_bill(item: RawItem) -> CandidateMention:
    bill = item.payload
    congress = str(item.extra.get('congress') or bill.get('congress') or '119')
    bill_type = str(bill.get('type') or '')
    number = str(bill.get('number') or '')
    if not bill_type or not number:
        raise ValueError('bill without type/number')

    url_type = BILL_URL_TYPES.get(bill_type.lower(), f"{bill_type.lower()}-bill")
    link = f"https://www.congress.gov/bill/{congress}th-congress/{url_type}/{number}"
    latest = bill.get('latestAction') or {}
    bill_id = f"{bill_type}{number}"

    return CandidateMention(
        title=f"{bill_id}: {bill.get('title') or ''}".strip(),
        link=link,
        summary=latest.get('text') or '',
        source='Congress.gov',
        origin=item.origin or 'congress',
        section=item.section or 'Federal Legislation',
        published_ts=to_epoch(latest.get('actionDate') or bill.get('updateDate')),
        kind='congress',
        extra={
            'bill_number': bill_id,
            'congress_number': congress,
            'bill_type': bill_type,
            'introduced_date': bill.get('introducedDate'),
            'latest_action_date': latest.get('actionDate'),
        },
    )


def adapt_google_alert(item: RawItem) -> CandidateMention:
    data = item.payload
    link = unwrap_redirect(_first(data.get('link')))
    return CandidateMention(
        title=_first(data.get('title')),
        link=link or None,
        summary=strip_html(_first(data.get('summary'), data.get('content'))),
        source=display_source(link, 'Google Alert'),
        origin=item.origin or 'google_alerts',
        section=item.section or 'Other',
        published_ts=to_epoch(data.get('pub') or data.get('published')),
        kind='google_alerts',
        matched=('google-alert',),
        extra={'provider': 'Google Alerts'},
    )


ADAPTERS: Dict[str, Callable[[RawItem], CandidateMention]] = {
    'rss': adapt_rss_entry,
    'newsletter': adapt_newsletter_item,
    'meltwater': adapt_meltwater_document,
    'congress': adapt_congress_bill,
    'google_alerts': adapt_google_alert,
}


def adapt(item: RawItem) -> Union[CandidateMention, ParseFailure]:
    """Normalize one raw item. Never raises."""
    adapter = ADAPTERS.get(item.kind)
    if adapter is None:
        return ParseFailure(origin=item.origin, reason=f"unknown item kind: {item.kind!r}",
                            raw=repr(item.payload))
    if not isinstance(item.payload, dict):
        return ParseFailure(origin=item.origin, reason='payload is not an object',
                            raw=repr(item.payload))
    try:
        candidate = adapter(item)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        return ParseFailure(origin=item.origin, reason=f"{item.kind}: {e}", raw=repr(item.payload))

    if not candidate.title and not candidate.link:
        return ParseFailure(origin=item.origin, reason='item has neither title nor link',
                            raw=repr(item.payload))
    return candidate
