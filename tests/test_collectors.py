"""Tests for feed parsing and the collector loop."""

import pytest
import requests
from collectors import parse_feed, run_collectors
from config import FeedConfig

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Google Alert - Acme</title>
    <item>
      <title>Acme opens plant in Ohio</title>
      <link>https://www.google.com/url?rct=j&amp;url=https://news.example/acme-ohio&amp;ct=ga</link>
      <description>&lt;b&gt;Acme&lt;/b&gt; opened a plant</description>
      <guid>tag:google.com,2026:alert-1</guid>
    </item>
    <item>
      <title>Acme hires new CFO</title>
      <link>https://other.example/acme-cfo?utm_source=alert</link>
    </item>
  </channel>
</rss>
"""

YOUTUBE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom"
      xmlns:yt="http://www.youtube.com/xml/schemas/2015"
      xmlns:media="http://search.yahoo.com/mrss/">
  <title>Acme Channel</title>
  <entry>
    <id>yt:video:dQw4w9WgXcQ</id>
    <yt:videoId>dQw4w9WgXcQ</yt:videoId>
    <title>Acme keynote</title>
    <link rel="alternate" href="https://www.youtube.com/watch?v=dQw4w9WgXcQ"/>
    <media:group>
      <media:title>Acme keynote</media:title>
      <media:description>Full keynote</media:description>
    </media:group>
  </entry>
</feed>
"""


class TestParseFeed:
    """Tests for parse_feed()."""

    def test_rss(self):
        """RSS items become flat dicts; guid doubles as id."""
        title, entries = parse_feed(RSS_FEED)
        assert title == "Google Alert - Acme"
        assert len(entries) == 2
        assert entries[0]["title"] == "Acme opens plant in Ohio"
        assert entries[0]["link"].startswith("https://www.google.com/url")
        assert entries[0]["id"] == "tag:google.com,2026:alert-1"

    def test_atom_youtube(self):
        """Atom links and media groups are flattened."""
        title, entries = parse_feed(YOUTUBE_FEED)
        assert title == "Acme Channel"
        entry = entries[0]
        assert entry["links"][0]["href"] == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert entry["yt:videoId"] == "dQw4w9WgXcQ"
        assert entry["media:description"] == "Full keynote"

    def test_not_a_feed(self):
        """Documents without a channel or feed are rejected."""
        with pytest.raises(ValueError):
            parse_feed("<html><body>nope</body></html>")


class TestRunCollectors:
    """Tests for run_collectors()."""

    def test_failing_feed_isolated(self, pipeline, store):
        """One broken feed is reported; the others are still ingested."""
        feeds = [
            FeedConfig(url="https://down.example/feed", origin="acme", section="Acme"),
            FeedConfig(url="https://alerts.example/feed", origin="acme", section="Acme"),
        ]

        def fetch(url, timeout=10):
            if "down" in url:
                raise requests.ConnectionError("connection refused")
            return parse_feed(RSS_FEED)

        result = run_collectors(pipeline, feeds, fetch=fetch)
        assert result["ok"] is True
        assert result["feeds"] == 2
        assert result["stored"] == 2
        assert [e["url"] for e in result["errors"]] == ["https://down.example/feed"]
        assert store.count() == 2

    def test_second_poll_is_all_duplicates(self, pipeline, store):
        """Polling the same feed again stores nothing new."""
        feeds = [FeedConfig(url="https://alerts.example/feed")]

        def fetch(url, timeout=10):
            return parse_feed(RSS_FEED)

        run_collectors(pipeline, feeds, fetch=fetch)
        again = run_collectors(pipeline, feeds, fetch=fetch)
        assert again["stored"] == 0
        assert again["duplicates"] == 2
        assert store.count() == 2
