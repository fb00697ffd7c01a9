#!/usr/bin/env python3
"""
Canonical keys and identifiers for mentions.

Every collector funnels its link (or title, for linkless items) through
``canonicalize`` before touching the ledger, so the same story reached via a
tracking link, an AMP mirror or an alert redirect lands on one key:
1. Unwrap redirect wrappers (Google Alerts, Meltwater click-through)
2. Lowercase scheme/host, strip www./amp. prefixes
3. Drop fragment and tracking params, collapse empty query
4. Strip trailing slash

``id_from_canonical`` then derives the stable mention id from that key.
"""

import re
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode, unquote
from typing import Optional

# Tracking params to strip from URLs
TRACKING_PARAMS = {
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content', 'utm_id',
    'mc_cid', 'mc_eid', 'ref', 'fbclid', 'gclid', 'igshid',
}

# Sub-host noise removed from the front of a hostname
HOST_PREFIXES = ('www.', 'amp.')

# Id prefix per collector type
ID_PREFIXES = {
    'rss': 'm',
    'meltwater': 'mw_api',
    'congress': 'congress',
    'newsletter': 'newsletter_rss',
    'google_alerts': 'ga',
}

_MAX_UNWRAP = 5


def unwrap_redirect(url: str) -> str:
    """Return the target of a known redirect wrapper, or the url unchanged."""
    for _ in range(_MAX_UNWRAP):
        try:
            parsed = urlsplit(url)
        except ValueError:
            return url
        host = (parsed.hostname or '').lower()
        params = dict(parse_qsl(parsed.query, keep_blank_values=False))

        target = None
        if host.endswith('google.com') and parsed.path == '/url':
            target = params.get('q') or params.get('url')
        elif re.search(r't\.notifications\.meltwater\.com', host) and params.get('u'):
            target = unquote(params['u'])

        if not target or target == url:
            return url
        url = target.strip()
    return url


def is_usable_url(value: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not value:
        return False
    try:
        parsed = urlsplit(value.strip())
    except ValueError:
        return False
    return parsed.scheme.lower() in ('http', 'https') and bool(parsed.netloc)


def normalize_host(host: str) -> str:
    """Lowercase a hostname and strip www./amp. prefixes."""
    host = (host or '').lower()
    stripped = True
    while stripped:
        stripped = False
        for prefix in HOST_PREFIXES:
            if host.startswith(prefix):
                host = host[len(prefix):]
                stripped = True
    return host


def host_of(url: str) -> str:
    """Lowercased hostname of ``url``, or "" if it has none."""
    if not url:
        return ''
    try:
        return (urlsplit(url.strip()).hostname or '').lower()
    except ValueError:
        return ''


def display_source(link: str, fallback: str = '') -> str:
    """Human source label: the normalized host, else the fallback."""
    return normalize_host(host_of(link)) or (fallback or '')


def canonicalize_url(url: str) -> str:
    """
    Normalize URL for deduplication.

    Never raises: input that cannot be parsed comes back trimmed.
    """
    if not url:
        return ''

    url = unwrap_redirect(url.strip())

    try:
        parsed = urlsplit(url)
        netloc = parsed.netloc
        # Keep userinfo/port, normalize only the host part
        userinfo, sep, hostport = netloc.rpartition('@')
        host, colon, port = hostport.partition(':')
        if hostport.startswith('['):
            host, colon, port = hostport, '', ''
        netloc = f"{userinfo}{sep}{normalize_host(host)}{colon}{port}"

        if parsed.query:
            params = parse_qsl(parsed.query, keep_blank_values=True)
            filtered = [(k, v) for k, v in params if k.lower() not in TRACKING_PARAMS]
            query = urlencode(filtered) if filtered else ''
        else:
            query = ''

        path = parsed.path.rstrip('/')

        canonical = urlunsplit((
            parsed.scheme.lower(),
            netloc,
            path,
            query,
            '',  # fragment
        ))
    except ValueError:
        return url

    return canonical


def canonicalize(raw_link: Optional[str], raw_title: Optional[str] = None) -> str:
    """
    Canonical key for a raw item.

    Usable URLs are normalized; otherwise the whitespace-trimmed title is the
    key. Returns "" when neither gives anything to key on.
    """
    link = (raw_link or '').strip()
    if is_usable_url(link):
        return canonicalize_url(link)

    title = ' '.join((raw_title or '').split())
    if title:
        return title

    # Best-effort trimmed string for link-like junk with no title
    return '' if link in ('', '#') else link


def id_from_canonical(canonical_key: str, prefix: str = 'm') -> str:
    """
    Stable mention id: 32-bit polynomial hash (base 31) of the key.

    Hashes UTF-16 code units, so ids for non-ASCII keys match the ones
    already stored by earlier collectors. Lone surrogates (valid in decoded
    JSON) hash as single code units.
    """
    data = (canonical_key or '').encode('utf-16-be', 'surrogatepass')
    h = 0
    for i in range(0, len(data), 2):
        unit = (data[i] << 8) | data[i + 1]
        h = (h * 31 + unit) & 0xFFFFFFFF
    return f"{prefix}_{h:x}"


# CLI for testing
if __name__ == '__main__':
    import sys

    for arg in sys.argv[1:] or ['https://www.Example.com/story/?utm_source=x#top']:
        canon = canonicalize(arg)
        print(f"{arg}\n  canon: {canon}\n  id:    {id_from_canonical(canon)}")
