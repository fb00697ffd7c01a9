#!/usr/bin/env python3
"""
Configuration loader for the mention pipeline.

Loads settings from config.yaml, then applies environment overrides
(collectors are deployed with env-only configuration).
"""

import os
import sys
import yaml
from pathlib import Path
from dataclasses import dataclass, field
from typing import List, Dict, Optional


# Default config path (relative to this file's parent directory)
CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

# Entity feeds configured as RSS_FEED_<ENTITY>
ENTITY_FEED_PREFIX = "RSS_FEED_"


def _split_list(value: str) -> List[str]:
    return [s.strip() for s in value.replace(';', ',').split(',') if s.strip()]


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_float(environ: Dict[str, str], name: str, current: Optional[float]) -> Optional[float]:
    """Numeric env setting; a malformed value warns and keeps ``current``."""
    try:
        return float(environ[name])
    except ValueError:
        print(f"Warning: Ignoring {name}={environ[name]!r}: not a number", file=sys.stderr)
        return current


@dataclass
class StoreConfig:
    """Store backend settings."""
    backend: str = "sqlite"  # memory, sqlite, redis
    db_path: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"
    timeout_seconds: float = 10.0
    mentions_key: str = "mentions:z"
    seen_id_key: str = "mentions:seen"
    seen_canon_key: str = "mentions:seen:canon"


@dataclass
class RetentionConfig:
    """Retention window settings."""
    days: float = 14
    weekend_days: Optional[float] = None
    timezone: str = "America/New_York"


@dataclass
class DedupConfig:
    """Near-duplicate resolver settings."""
    aggregator_domains: List[str] = field(default_factory=lambda: ['cryptopanic.com'])
    fuzzy_threshold: float = 0.55
    scan_limit: int = 2000


@dataclass
class FilterConfig:
    """Relevance filter settings."""
    enable_shopping_filter: bool = True
    enable_local_crime_filter: bool = True
    enable_blocked_domains: bool = True
    extra_blocked_domains: List[str] = field(default_factory=list)
    bypass_origins: List[str] = field(default_factory=lambda: [
        'nyt_top_news_rss', 'wapo_national_news_rss', 'wapo_politics_rss', 'politico_rss'
    ])
    # origin -> keywords, at least one must appear (word boundaries)
    required_keywords: Dict[str, List[str]] = field(default_factory=dict)
    # origin -> universal rule names skipped for it
    exemptions: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class FeedConfig:
    url: str
    origin: str = "google_alerts"
    section: str = "Google Alerts"
    kind: str = "rss"


@dataclass
class CollectorConfig:
    """Collector settings."""
    feeds: List[FeedConfig] = field(default_factory=list)
    timeout_seconds: int = 10
    enable_sentiment: bool = False


@dataclass
class Config:
    """Main configuration container."""
    version: int = 1
    store: StoreConfig = field(default_factory=StoreConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)
    collectors: CollectorConfig = field(default_factory=CollectorConfig)

    @classmethod
    def load(cls, path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> "Config":
        """
        Load configuration from YAML file, then the environment.

        Args:
            path: Path to config file (defaults to config.yaml in parent dir)
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Config instance
        """
        config_path = path or CONFIG_PATH

        if not config_path.exists():
            config = cls.defaults()
        else:
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}

                config = cls._from_dict(data)
            except (OSError, yaml.YAMLError, TypeError, ValueError, AttributeError) as e:
                print(f"Warning: Failed to load config from {config_path}: {e}", file=sys.stderr)
                config = cls.defaults()

        config.apply_env(os.environ if environ is None else environ)
        return config

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary."""
        store_data = data.get('store', {})
        retention_data = data.get('retention', {})
        dedup_data = data.get('dedup', {})
        filters_data = data.get('filters', {})
        collectors_data = data.get('collectors', {})

        return cls(
            version=data.get('version', 1),
            store=StoreConfig(
                backend=store_data.get('backend', 'sqlite'),
                db_path=store_data.get('db_path'),
                redis_url=store_data.get('redis_url', StoreConfig.redis_url),
                timeout_seconds=float(store_data.get('timeout_seconds', 10.0)),
                mentions_key=store_data.get('mentions_key', StoreConfig.mentions_key),
                seen_id_key=store_data.get('seen_id_key', StoreConfig.seen_id_key),
                seen_canon_key=store_data.get('seen_canon_key', StoreConfig.seen_canon_key),
            ),
            retention=RetentionConfig(
                days=float(retention_data.get('days', 14)),
                weekend_days=retention_data.get('weekend_days'),
                timezone=retention_data.get('timezone', 'America/New_York'),
            ),
            dedup=DedupConfig(
                aggregator_domains=dedup_data.get('aggregator_domains', DedupConfig().aggregator_domains),
                fuzzy_threshold=float(dedup_data.get('fuzzy_threshold', 0.55)),
                scan_limit=int(dedup_data.get('scan_limit', 2000)),
            ),
            filters=FilterConfig(
                enable_shopping_filter=filters_data.get('enable_shopping_filter', True),
                enable_local_crime_filter=filters_data.get('enable_local_crime_filter', True),
                enable_blocked_domains=filters_data.get('enable_blocked_domains', True),
                extra_blocked_domains=filters_data.get('extra_blocked_domains', []),
                bypass_origins=filters_data.get('bypass_origins', FilterConfig().bypass_origins),
                required_keywords=filters_data.get('required_keywords', {}),
                exemptions=filters_data.get('exemptions', {}),
            ),
            collectors=CollectorConfig(
                feeds=[FeedConfig(**feed) for feed in collectors_data.get('feeds', [])],
                timeout_seconds=collectors_data.get('timeout_seconds', 10),
                enable_sentiment=collectors_data.get('enable_sentiment', False),
            ),
        )

    @classmethod
    def defaults(cls) -> "Config":
        """Return default configuration."""
        return cls()

    def apply_env(self, environ: Dict[str, str]):
        """Overlay environment settings onto the loaded configuration."""
        if environ.get('MENTIONS_STORE'):
            self.store.backend = environ['MENTIONS_STORE'].strip().lower()
        if environ.get('MENTIONS_DB_PATH'):
            self.store.db_path = environ['MENTIONS_DB_PATH']
        if environ.get('REDIS_URL'):
            self.store.redis_url = environ['REDIS_URL']
            if not environ.get('MENTIONS_STORE'):
                self.store.backend = 'redis'

        if environ.get('MENTIONS_RETENTION_DAYS'):
            self.retention.days = _env_float(environ, 'MENTIONS_RETENTION_DAYS', self.retention.days)
        if environ.get('MENTIONS_WEEKEND_RETENTION_DAYS'):
            self.retention.weekend_days = _env_float(environ, 'MENTIONS_WEEKEND_RETENTION_DAYS',
                                                     self.retention.weekend_days)

        if environ.get('MENTIONS_AGGREGATOR_DOMAINS'):
            self.dedup.aggregator_domains = _split_list(environ['MENTIONS_AGGREGATOR_DOMAINS'])
        if environ.get('MENTIONS_FUZZY_THRESHOLD'):
            self.dedup.fuzzy_threshold = _env_float(environ, 'MENTIONS_FUZZY_THRESHOLD',
                                                    self.dedup.fuzzy_threshold)

        if environ.get('ENABLE_SENTIMENT'):
            self.collectors.enable_sentiment = _env_bool(environ['ENABLE_SENTIMENT'])

        for name in sorted(environ):
            if name.startswith(ENTITY_FEED_PREFIX) and environ[name].strip():
                entity = name[len(ENTITY_FEED_PREFIX):].lower()
                self.collectors.feeds.append(FeedConfig(
                    url=environ[name].strip(), origin=entity,
                    section=entity.replace('_', ' ').title()))
        for url in _split_list(environ.get('RSS_FEEDS', '')):
            self.collectors.feeds.append(FeedConfig(url=url))
        for url in _split_list(environ.get('NEWSLETTER_RSS_FEEDS', '')):
            self.collectors.feeds.append(FeedConfig(
                url=url, origin='newsletter', section='Newsletter', kind='newsletter'))

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            'version': self.version,
            'store': {
                'backend': self.store.backend,
                'db_path': self.store.db_path,
                'redis_url': self.store.redis_url,
                'timeout_seconds': self.store.timeout_seconds,
                'mentions_key': self.store.mentions_key,
                'seen_id_key': self.store.seen_id_key,
                'seen_canon_key': self.store.seen_canon_key,
            },
            'retention': {
                'days': self.retention.days,
                'weekend_days': self.retention.weekend_days,
                'timezone': self.retention.timezone,
            },
            'dedup': {
                'aggregator_domains': self.dedup.aggregator_domains,
                'fuzzy_threshold': self.dedup.fuzzy_threshold,
                'scan_limit': self.dedup.scan_limit,
            },
            'filters': {
                'enable_shopping_filter': self.filters.enable_shopping_filter,
                'enable_local_crime_filter': self.filters.enable_local_crime_filter,
                'enable_blocked_domains': self.filters.enable_blocked_domains,
                'extra_blocked_domains': self.filters.extra_blocked_domains,
                'bypass_origins': self.filters.bypass_origins,
                'required_keywords': self.filters.required_keywords,
                'exemptions': self.filters.exemptions,
            },
            'collectors': {
                'feeds': [
                    {'url': f.url, 'origin': f.origin, 'section': f.section, 'kind': f.kind}
                    for f in self.collectors.feeds
                ],
                'timeout_seconds': self.collectors.timeout_seconds,
                'enable_sentiment': self.collectors.enable_sentiment,
            },
        }


# Global config instance (lazy loaded)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def reload_config() -> Config:
    """Reload configuration from file."""
    global _config
    _config = Config.load()
    return _config


# CLI for testing
if __name__ == '__main__':
    import json

    print(json.dumps(get_config().to_dict(), indent=2))
