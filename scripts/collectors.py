#!/usr/bin/env python3
"""
RSS/Atom feed collector.

Polls the configured feeds (Google Alerts entity feeds, newsletter feeds,
YouTube channel feeds) and pushes every entry through the admission
pipeline. A failing feed is reported and skipped; the rest still run.
"""

import sys
from typing import Callable, Dict, Iterable, List, Tuple

import requests
from bs4 import BeautifulSoup

from adapters import RawItem
from ingest import BatchReport, MentionPipeline

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Accept": "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8",
}


def _tag_name(tag) -> str:
    return f"{tag.prefix}:{tag.name}" if tag.prefix else tag.name


def _entry_from_tag(node) -> Dict:
    """Flatten an <item>/<entry> element into the dict shape the adapters read."""
    entry = {}
    links = []
    for child in node.find_all(recursive=False):
        name = _tag_name(child)
        if child.name == 'link' and child.get('href'):
            links.append({'href': child['href'], 'rel': child.get('rel', 'alternate')})
            continue
        if name == 'media:group':
            for sub in child.find_all(recursive=False):
                entry.setdefault(_tag_name(sub), sub.get_text(strip=True))
            continue
        entry.setdefault(name, child.get_text(strip=True))

    if links:
        alternates = [link for link in links if link['rel'] == 'alternate']
        entry['links'] = alternates + [link for link in links if link['rel'] != 'alternate']
        entry.pop('link', None)
    if 'guid' in entry and 'id' not in entry:
        entry['id'] = entry['guid']
    return entry


def parse_feed(xml_text: str) -> Tuple[str, List[Dict]]:
    """
    Parse RSS 2.0 or Atom markup.

    Returns:
        (feed title, list of entry dicts)

    Raises:
        ValueError: if the document has no channel or feed element
    """
    soup = BeautifulSoup(xml_text, 'xml')
    root = soup.find('channel') or soup.find('feed')
    if root is None:
        raise ValueError('not an RSS or Atom document')

    title_tag = root.find('title', recursive=False)
    feed_title = title_tag.get_text(strip=True) if title_tag else ''
    nodes = root.find_all('item', recursive=False) or root.find_all('entry', recursive=False)
    if not nodes and soup.find('rss'):
        # RSS 1.0 puts items beside the channel
        nodes = soup.find_all('item')
    return feed_title, [_entry_from_tag(node) for node in nodes]


def fetch_feed(url: str, timeout: int = 10) -> Tuple[str, List[Dict]]:
    """Download and parse one feed. No retries."""
    response = requests.get(url, headers=HEADERS, timeout=timeout)
    response.raise_for_status()
    return parse_feed(response.text)


def feed_items(feed, feed_title: str, entries: Iterable[Dict]) -> List[RawItem]:
    return [
        RawItem(kind=feed.kind, payload=entry, origin=feed.origin, section=feed.section,
                feed_title=feed_title or feed.url)
        for entry in entries
    ]


def run_collectors(pipeline: MentionPipeline, feeds, timeout: int = 10,
                   fetch: Callable[..., Tuple[str, List[Dict]]] = fetch_feed) -> Dict:
    """
    Poll every feed and admit its entries.

    Store failures propagate; feed failures are itemized in ``errors``.
    """
    total = BatchReport()
    errors = []
    for feed in feeds:
        try:
            feed_title, entries = fetch(feed.url, timeout=timeout)
        except (requests.RequestException, ValueError) as e:
            sys.stderr.write(f"Error fetching {feed.url}: {e}\n")
            errors.append({'url': feed.url, 'origin': feed.origin, 'error': str(e)})
            continue

        report = pipeline.ingest(feed_items(feed, feed_title, entries))
        sys.stderr.write(f"{feed.origin}: {report.found} found, {report.stored} stored\n")
        total.merge(report)

    result = {'ok': True, 'feeds': len(feeds)}
    result.update(total.to_dict())
    result['errors'] = errors
    return result
