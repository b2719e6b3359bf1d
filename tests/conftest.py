"""Pytest configuration and shared fixtures for rodcache tests."""

import fnmatch
import threading
from datetime import datetime

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine

from rodcache.accelerator.redis_cache import RedisAcceleratorCache
from rodcache.data.accelerator_store import AcceleratorStore
from rodcache.data.product_source import ProductSource
from rodcache.data.tables import product_table
from rodcache.models.product import Product


# ---------------------------------------------------------------------------
# In-memory stand-in for a redis.Redis client (decode_responses=True).
# Only the commands the cache adapter issues are implemented.
# ---------------------------------------------------------------------------

class InMemoryRedis:
    def __init__(self):
        self.data = {}
        self.writes = 0
        self.closed = False
        self.down = False
        self._lock = threading.Lock()

    def _check(self):
        if self.down:
            raise RedisConnectionError("Connection refused")

    def ping(self):
        self._check()
        return True

    def get(self, key):
        self._check()
        return self.data.get(key)

    def set(self, key, value):
        self._check()
        with self._lock:
            self.data[key] = value
            self.writes += 1
        return True

    def delete(self, *keys):
        self._check()
        with self._lock:
            return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def scan_iter(self, match=None, count=None):
        self._check()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    def close(self):
        self.closed = True


@pytest.fixture
def redis_double():
    return InMemoryRedis()


@pytest.fixture
def cache(redis_double):
    return RedisAcceleratorCache(client=redis_double)


# ---------------------------------------------------------------------------
# SQLite-backed stores (file based so they survive engine.dispose())
# ---------------------------------------------------------------------------

def _sqlite_engine(path):
    return create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})


@pytest.fixture
def product_engine(tmp_path):
    engine = _sqlite_engine(tmp_path / "products.db")
    product_table.create(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def accelerator_engine(tmp_path):
    engine = _sqlite_engine(tmp_path / "accelerator.db")
    yield engine
    engine.dispose()


@pytest.fixture
def products(product_engine):
    return ProductSource(product_engine)


@pytest.fixture
def store(accelerator_engine):
    store = AcceleratorStore(accelerator_engine)
    store.create_schema()
    return store


def insert_product_rows(engine, *rows):
    """Insert catalog rows given as dicts keyed by column key."""
    with engine.begin() as conn:
        conn.execute(product_table.insert(), list(rows))


@pytest.fixture
def add_rows(product_engine):
    def _add(*rows):
        insert_product_rows(product_engine, *rows)
    return _add


# ---------------------------------------------------------------------------
# Product factories
# ---------------------------------------------------------------------------

def product_row(nsn="7644012312312", nrn="CB01USC512L", path="/data/rod/product.iso", **overrides):
    row = {
        "nsn": nsn,
        "nrn": nrn,
        "path": str(path) if path is not None else None,
        "url": "https://rod.example.mil/products/" + nrn if nrn is not None else None,
        "aor_code": "CENTCOM",
        "country_name": "Kuwait",
        "product_type": "CADRG",
        "edition": 3,
        "size": 0,
        "iso3char": "KWT",
        "media_name": "CD 1 of 1",
        "classification": "U",
        "file_date": datetime(2024, 5, 1, 12, 0, 0),
        "load_date": datetime(2024, 5, 2, 8, 30, 0),
    }
    row.update(overrides)
    return row


def make_product(**kwargs):
    return Product.build(**product_row(**kwargs)).unwrap()


@pytest.fixture
def product_file(tmp_path):
    """Factory for on-disk product files with a given size."""
    def _make(name="product.iso", size=1500, content=None):
        path = tmp_path / "files" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content if content is not None else bytes(i % 251 for i in range(size)))
        return path
    return _make
