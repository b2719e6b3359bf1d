"""
rodcache command-line interface.

Usage:
    rodcache sync [--workers N]
    rodcache dump-keys [--pattern P]
    rodcache get-key --key NSN+NRN [--deserialize] [--products]
    rodcache clear-cache [--pattern P]

Settings come from config/default.yaml (or --config / ROD_CONFIG) with
ROD_* environment overrides.
"""
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rodcache.accelerator.keys import split_key
from rodcache.accelerator.redis_cache import RedisAcceleratorCache
from rodcache.core.config import DB_PREFIX, DatabaseSettings, RedisSettings, Settings, set_settings
from rodcache.core.exceptions import RodCacheError
from rodcache.core.sync import SynchronizationEngine
from rodcache.data.database import create_store_engine
from rodcache.data.product_source import ProductSource
from rodcache.models.accelerator import deserialize
from rodcache.utils.logger import get_logger, set_level

logger = get_logger("cli")


def open_cache(settings: Settings) -> RedisAcceleratorCache:
    cache = RedisAcceleratorCache.from_settings(RedisSettings.from_settings(settings))
    cache.ensure_available()
    return cache


def open_products(settings: Settings) -> ProductSource:
    products = ProductSource(create_store_engine(DatabaseSettings.from_settings(settings, DB_PREFIX)))
    products.ensure_available()
    return products


def cmd_sync(args: argparse.Namespace, settings: Settings) -> int:
    engine = SynchronizationEngine.from_settings(settings, max_workers=args.workers)
    stats = engine.run()
    print(stats.summary())
    return 0


def cmd_dump_keys(args: argparse.Namespace, settings: Settings) -> int:
    with open_cache(settings) as cache:
        keys = sorted(cache.list_keys(args.pattern))
    for key in keys:
        print(key)
    print(f"Number of keys in cache: {len(keys)}")
    return 0


def cmd_get_key(args: argparse.Namespace, settings: Settings) -> int:
    with open_cache(settings) as cache:
        value = cache.get(args.key)
    if value is None:
        print(f"Key [ {args.key} ] is not in the cache.")
        return 0

    print(f"Key => [ {args.key} ], Value => [ {value} ]")
    if args.deserialize:
        record = deserialize(value)
        print(f"Deserialized => {record}" if record is not None else "Value could not be deserialized.")

    if args.products:
        nsn, nrn = split_key(args.key)
        if nsn is None:
            print(f"Key [ {args.key} ] is not of the form NSN+NRN.  Product lookup skipped.")
            return 0
        products = open_products(settings)
        try:
            batch = products.fetch(nrn, nsn)
        finally:
            products.close()
        print(f"Number of products for NSN [ {nsn} ] NRN [ {nrn} ]: {len(batch)}")
        for product in batch.products:
            print(f"  {product}")
    return 0


def cmd_clear_cache(args: argparse.Namespace, settings: Settings) -> int:
    removed = 0
    with open_cache(settings) as cache:
        keys = cache.list_keys(args.pattern)
        logger.info("Removing [ %d ] keys matching [ %s ].", len(keys), args.pattern)
        for key in keys:
            if cache.delete(key):
                removed += 1
    print(f"Removed {removed} of {len(keys)} keys.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rodcache", description="Two-tier accelerator cache for product files")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file (default: config/default.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Synchronize accelerator records for every product")
    sync.add_argument("--workers", type=int, default=None, help="Worker threads (default: sync.workers)")
    sync.set_defaults(func=cmd_sync)

    dump = sub.add_parser("dump-keys", help="List keys in the accelerator cache")
    dump.add_argument("--pattern", default="*", help="Key pattern (default: *)")
    dump.set_defaults(func=cmd_dump_keys)

    get_key = sub.add_parser("get-key", help="Show the cached value for one key")
    get_key.add_argument("--key", required=True, help="Cache key (NSN+NRN)")
    get_key.add_argument("--deserialize", action="store_true", help="Decode the value into an accelerator record")
    get_key.add_argument("--products", action="store_true", help="Also list the matching catalog products")
    get_key.set_defaults(func=cmd_get_key)

    clear = sub.add_parser("clear-cache", help="Delete keys from the accelerator cache")
    clear.add_argument("--pattern", default="*", help="Key pattern (default: *)")
    clear.set_defaults(func=cmd_clear_cache)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_level("DEBUG")

    try:
        settings = Settings.from_yaml(args.config)
        set_settings(settings)
        return args.func(args, settings)
    except RodCacheError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
