"""
Synchronization engine.

Walks the product catalog and makes sure every product has a current
accelerator record in both tiers:

    Tier-1 (Redis)  ->  Tier-2 (accelerator table)  ->  recompute from disk

A record is current when its size matches the size of the file on disk.
Every product ends in exactly one ItemStatus; failures of one product never
stop the rest of the batch.
"""
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

from rodcache.accelerator.factory import AcceleratorRecordFactory, actual_file_size
from rodcache.accelerator.hashing import HashType
from rodcache.accelerator.redis_cache import RedisAcceleratorCache
from rodcache.core.config import (
    ACCELERATOR_DB_PREFIX,
    DB_PREFIX,
    DatabaseSettings,
    RedisSettings,
    Settings,
    SyncSettings,
)
from rodcache.core.exceptions import (
    CacheError,
    ConfigurationError,
    ConnectivityError,
    RecordValidationError,
    StoreError,
)
from rodcache.data.accelerator_store import AcceleratorStore
from rodcache.data.database import create_store_engine
from rodcache.data.product_source import ProductSource, RejectedRow
from rodcache.models.accelerator import AcceleratorRecord, deserialize, serialize
from rodcache.models.product import Product
from rodcache.utils.logger import get_logger

logger = get_logger("core.sync")

# Errors that fail a single product without aborting the batch
ITEM_ERRORS = (ConnectivityError, CacheError, StoreError, RecordValidationError, OSError)


class ItemStatus(str, Enum):
    UNCHANGED = "unchanged"        # Tier-1 already current
    CACHE_FILLED = "cache_filled"  # Tier-2 current, copied into Tier-1
    INSERTED = "inserted"          # recomputed, first Tier-2 row
    UPDATED = "updated"            # recomputed, Tier-2 row overwritten
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not ItemStatus.FAILED


@dataclass(frozen=True)
class ItemOutcome:
    """Result of synchronizing one product."""
    product: Optional[Product]
    status: ItemStatus
    key: str = ""
    reason: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status.succeeded


@dataclass
class SyncStats:
    """Summary of one synchronization pass."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    elapsed_seconds: float = 0.0
    outcomes: Counter = field(default_factory=Counter)

    def record(self, outcome: ItemOutcome) -> None:
        self.total += 1
        self.outcomes[outcome.status] += 1
        if outcome.succeeded:
            self.succeeded += 1
        else:
            self.failed += 1

    def record_rejected(self, rejected: RejectedRow) -> None:
        """Catalog rows that never became a Product count as attempted and failed."""
        self.total += 1
        self.failed += 1
        self.outcomes[ItemStatus.FAILED] += 1

    def summary(self) -> str:
        breakdown = ", ".join(f"{status.value}={self.outcomes.get(status, 0)}" for status in ItemStatus)
        return (
            f"Processed [ {self.total} ] products in [ {self.elapsed_seconds:.3f} ] s: "
            f"[ {self.succeeded} ] succeeded, [ {self.failed} ] failed ({breakdown})."
        )


class KeyLockRegistry:
    """Hands out one lock per (NSN, NRN) identity, case-insensitively."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[str, str], threading.Lock] = {}

    def lock_for(self, identity: Tuple[str, str]) -> threading.Lock:
        normalized = tuple(part.upper() for part in identity)
        with self._guard:
            lock = self._locks.get(normalized)
            if lock is None:
                lock = threading.Lock()
                self._locks[normalized] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)


def is_stale(product: Product, record: AcceleratorRecord) -> bool:
    """
    True when the on-disk file no longer matches ``record``.

    An unreadable file counts as stale so the product goes on to the
    recompute step, which then fails without writing anything.
    """
    try:
        size = actual_file_size(product.path)
    except OSError as e:
        logger.debug("Unable to stat [ %s ] while checking record staleness: %s", product.path, e)
        return True
    if size != record.size:
        logger.debug(
            "On-disk size [ %d ] of [ %s ] differs from recorded size [ %d ].",
            size, product.path, record.size,
        )
        return True
    return False


class SynchronizationEngine:
    """
    Keeps the Tier-1 cache and Tier-2 table in step with the product catalog.

    All collaborators are injected; ``from_settings`` builds the production
    set from configuration.
    """

    def __init__(
        self,
        products: ProductSource,
        cache: RedisAcceleratorCache,
        store: AcceleratorStore,
        factory: Optional[AcceleratorRecordFactory] = None,
        *,
        max_workers: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.products = products
        self.cache = cache
        self.store = store
        self.factory = factory or AcceleratorRecordFactory()
        self.max_workers = max_workers
        self.clock = clock
        self._locks = KeyLockRegistry()

    @classmethod
    def from_settings(cls, settings: Settings, max_workers: Optional[int] = None) -> "SynchronizationEngine":
        """Wire the engine from configuration. Configuration errors raise here."""
        sync_settings = SyncSettings.from_settings(settings)
        if max_workers is None:
            max_workers = sync_settings.workers
        elif max_workers < 1:
            raise ConfigurationError(f"Worker count must be at least 1, got [ {max_workers} ].")
        hash_type = HashType.from_text(sync_settings.hash_type)
        product_db = DatabaseSettings.from_settings(settings, DB_PREFIX)
        accelerator_db = DatabaseSettings.from_settings(settings, ACCELERATOR_DB_PREFIX)
        redis_settings = RedisSettings.from_settings(settings)

        return cls(
            ProductSource(create_store_engine(product_db)),
            RedisAcceleratorCache.from_settings(redis_settings),
            AcceleratorStore(create_store_engine(accelerator_db)),
            AcceleratorRecordFactory(hash_type),
            max_workers=max_workers,
        )

    def sync_product(self, product: Product) -> ItemOutcome:
        """Bring one product's accelerator record up to date in both tiers."""
        key = self.factory.get_key(product)
        if not key:
            logger.error("Unable to derive a cache key for product [ %s ].  Product skipped.", product)
            return ItemOutcome(product, ItemStatus.FAILED, key, "empty key")

        with self._locks.lock_for(product.identity):
            try:
                return self._sync_locked(product, key)
            except ITEM_ERRORS as e:
                logger.error(
                    "Synchronization failed for NSN [ %s ] NRN [ %s ] (key [ %s ]): %s",
                    product.nsn, product.nrn, key, e,
                )
                return ItemOutcome(product, ItemStatus.FAILED, key, str(e))
            except Exception as e:
                logger.exception(
                    "Unexpected error while synchronizing NSN [ %s ] NRN [ %s ] (key [ %s ]).",
                    product.nsn, product.nrn, key,
                )
                return ItemOutcome(product, ItemStatus.FAILED, key, f"unexpected error: {e!r}")

    def _sync_locked(self, product: Product, key: str) -> ItemOutcome:
        cached = deserialize(self.cache.get(key))
        if cached is not None and not is_stale(product, cached):
            logger.debug("Tier-1 record for key [ %s ] is current.", key)
            return ItemOutcome(product, ItemStatus.UNCHANGED, key)

        lookup = self.store.lookup_product(product)
        if lookup.record is not None and not is_stale(product, lookup.record):
            self.cache.put(key, serialize(lookup.record))
            logger.debug("Tier-2 record for key [ %s ] copied into the cache.", key)
            return ItemOutcome(product, ItemStatus.CACHE_FILLED, key)

        record = self.factory.build(product)
        if record is None:
            return ItemOutcome(product, ItemStatus.FAILED, key, f"unable to build a record for [ {product.path} ]")

        self.cache.put(key, serialize(record))
        if lookup.exists:
            self.store.update(record)
            status = ItemStatus.UPDATED
        else:
            self.store.insert(record)
            status = ItemStatus.INSERTED
        logger.info("Accelerator record %s for key [ %s ]: %s", status.value, key, record)
        return ItemOutcome(product, status, key)

    def process(self, products: Iterable[Product]) -> Iterator[ItemOutcome]:
        """Synchronize ``products`` sequentially or on the worker pool, yielding outcomes as they finish."""
        if self.max_workers == 1:
            for product in products:
                yield self.sync_product(product)
            return
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="rodcache-sync") as executor:
            yield from executor.map(self.sync_product, products)

    def _open(self) -> None:
        self.cache.ensure_available()
        self.store.ensure_available()
        self.products.ensure_available()

    def close(self) -> None:
        """Release all three tiers; a failing close does not stop the others."""
        with ExitStack() as stack:
            stack.callback(self.products.close)
            stack.callback(self.store.close)
            stack.callback(self.cache.close)

    def run(self) -> SyncStats:
        """
        Run one full synchronization pass.

        Raises ConnectivityError (or StoreError / CacheError) when a tier
        cannot be opened or the catalog cannot be read; per-product failures
        are only counted.
        """
        stats = SyncStats()
        start = self.clock()
        logger.info("Accelerator synchronization started (workers=%d).", self.max_workers)
        try:
            self._open()
            batch = self.products.fetch_all()
            for rejected in batch.rejected:
                stats.record_rejected(rejected)
            for outcome in self.process(batch.products):
                stats.record(outcome)
        finally:
            stats.elapsed_seconds = self.clock() - start
            try:
                self.close()
            except Exception:
                logger.exception("Error while releasing synchronization connections.")
            logger.info("Accelerator synchronization finished.  %s", stats.summary())
        return stats
