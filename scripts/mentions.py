#!/usr/bin/env python3
"""
Mention pipeline command line.

Usage:
  python3 mentions.py collect                 # poll configured feeds
  python3 mentions.py dedupe                  # preview near-duplicate removals
  python3 mentions.py dedupe --commit --hours 48
  python3 mentions.py trim
  python3 mentions.py stats
  python3 mentions.py list --limit 20
  python3 mentions.py remove m_1a2b3c4d
"""

import argparse
import json
import sys

from collectors import run_collectors
from config import get_config
from filters import build_filter_chain
from ingest import MentionPipeline
from ledger import IdentityLedger
from resolver import NearDuplicateResolver
from retention import RetentionPolicy, trim
from store import MentionStore, StoreUnavailableError, open_backend


def build_pipeline(config, verbose: bool = False):
    """Wire store, ledger, filters and retention from configuration."""
    backend = open_backend(config.store)
    store = MentionStore(backend, key=config.store.mentions_key)
    ledger = IdentityLedger(backend, canon_key=config.store.seen_canon_key,
                            id_key=config.store.seen_id_key)
    pipeline = MentionPipeline(
        store, ledger, build_filter_chain(config.filters, verbose=verbose),
        retention=RetentionPolicy.from_config(config.retention),
        enable_sentiment=config.collectors.enable_sentiment,
        verbose=verbose,
    )
    return pipeline


def cmd_collect(pipeline, config, args):
    if not config.collectors.feeds:
        return {'ok': True, 'message': 'no feeds configured', 'feeds': 0, 'found': 0, 'stored': 0,
                'errors': []}
    return run_collectors(pipeline, config.collectors.feeds,
                          timeout=config.collectors.timeout_seconds)


def cmd_dedupe(pipeline, config, args):
    resolver = NearDuplicateResolver(
        pipeline.store, pipeline.ledger,
        aggregator_domains=config.dedup.aggregator_domains,
        fuzzy_threshold=config.dedup.fuzzy_threshold,
        verbose=args.verbose,
    )
    report = resolver.run(commit=args.commit, hours=args.hours,
                          limit=args.limit or config.dedup.scan_limit)
    return report.to_dict()


def cmd_trim(pipeline, config, args):
    window = pipeline.retention.window_seconds()
    result = trim(pipeline.store, window)
    return {'ok': True, 'removed': result.removed, 'cutoff': result.cutoff,
            'window_seconds': window}


def cmd_stats(pipeline, config, args):
    stats = {'ok': True, 'backend': config.store.backend, 'mentions': pipeline.store.count()}
    stats.update(pipeline.ledger.stats())
    return stats


def cmd_list(pipeline, config, args):
    raws = pipeline.store.recent(args.limit or 20)
    records = pipeline.store.mentions(raws)
    return {
        'ok': True,
        'count': len(records),
        'mentions': [r.to_wire() if hasattr(r, 'to_wire') else r.to_dict() for r in records],
    }


def cmd_remove(pipeline, config, args):
    return pipeline.remove_mention(args.id)


COMMANDS = {
    'collect': cmd_collect,
    'dedupe': cmd_dedupe,
    'trim': cmd_trim,
    'stats': cmd_stats,
    'list': cmd_list,
    'remove': cmd_remove,
}


def main(argv=None):
    parser = argparse.ArgumentParser(description='Mention ingestion and maintenance')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log filter and removal reasons')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('collect', help='Poll configured feeds and admit new mentions')

    dedupe = sub.add_parser('dedupe', help='Find near-duplicate mentions (preview unless --commit)')
    dedupe.add_argument('--commit', action='store_true', help='Actually remove duplicates')
    dedupe.add_argument('--hours', type=float, help='Only scan the last N hours')
    dedupe.add_argument('--limit', type=int, help='Scan at most N newest mentions')

    sub.add_parser('trim', help='Evict mentions older than the retention window')
    sub.add_parser('stats', help='Show store and ledger sizes')

    list_cmd = sub.add_parser('list', help='Show the newest mentions')
    list_cmd.add_argument('--limit', type=int, default=20)

    remove = sub.add_parser('remove', help='Remove one mention by id')
    remove.add_argument('id')

    args = parser.parse_args(argv)
    config = get_config()

    try:
        pipeline = build_pipeline(config, verbose=args.verbose)
        result = COMMANDS[args.command](pipeline, config, args)
    except StoreUnavailableError as e:
        print(json.dumps({'ok': False, 'error': str(e)}, indent=2))
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0 if result.get('ok', True) else 1


if __name__ == '__main__':
    sys.exit(main())
