"""Pytest configuration and fixtures for mention pipeline tests."""

import pytest
import sys
from pathlib import Path

# Add scripts directory to path for imports
scripts_dir = Path(__file__).parent.parent / "scripts"
sys.path.insert(0, str(scripts_dir))

from filters import FilterChain
from ingest import MentionPipeline
from ledger import IdentityLedger
from models import CandidateMention, Mention
from retention import RetentionPolicy
from store import MemoryBackend, MentionStore

# Fixed clock: Wednesday 2026-01-28 12:00:00 UTC
NOW = 1769601600


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return MentionStore(backend)


@pytest.fixture
def ledger(backend):
    return IdentityLedger(backend)


@pytest.fixture
def pipeline(store, ledger):
    return MentionPipeline(store, ledger, FilterChain(), retention=RetentionPolicy())


@pytest.fixture
def make_candidate(now):
    """Factory for CandidateMention with sensible defaults."""
    def _make(title="Acme Corp Names New Chief Executive", link="https://news.example/a",
              origin="google_alerts", source="news.example", summary="", ts=None, kind="rss",
              **kwargs):
        return CandidateMention(
            title=title,
            link=link,
            summary=summary,
            source=source,
            origin=origin,
            section="Google Alerts",
            published_ts=now - 3600 if ts is None else ts,
            kind=kind,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_record():
    """Factory for serialized stored mentions, as the store holds them."""
    def _make(mention_id, title, link, ts, source="", canon=None):
        return Mention(
            id=mention_id,
            canon=canon if canon is not None else link,
            title=title,
            link=link,
            source=source,
            origin="google_alerts",
            section="Google Alerts",
            summary="",
            published_ts=ts,
        ).to_json()
    return _make


@pytest.fixture
def sample_urls():
    """Sample URLs for canonicalization testing."""
    return {
        # Standard URL with tracking params
        "tracking": "https://example.com/article?utm_source=twitter&utm_medium=social&id=123",
        "tracking_clean": "https://example.com/article?id=123",

        # AMP and www prefixes
        "amp_subdomain": "https://amp.example.com/article",
        "www": "https://www.example.com/article",
        "clean": "https://example.com/article",

        # Trailing slash
        "trailing_slash": "https://example.com/article/",

        # Redirect wrappers
        "google_redirect": "https://www.google.com/url?rct=j&sa=t&url=https%3A%2F%2Fwww.example.com%2Farticle%3Futm_source%3Dalerts&ct=ga",
        "meltwater_redirect": "https://t.notifications.meltwater.com/click?u=https%3A%2F%2Fexample.com%2Farticle%2F",
    }
