"""
Redis cache layer for accelerator records (Tier-1).

Redis is ONLY a cache, never the source of truth.  The accelerator table
(Tier-2) and ultimately the on-disk files are authoritative.

Keys are ``{NSN}+{NRN}``; values are JSON-serialized AcceleratorRecord
objects.  This adapter is a pure string store: serialization happens in the
engine.  Entries are written without a TTL because they only change when the
underlying file changes.

Supports both a plain host/port connection and a full URL (``redis.url``,
e.g. ``rediss://`` for TLS-terminated hosted Redis).
"""

from typing import Optional, Set

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from rodcache.core.config import DEFAULT_REDIS_HOST, DEFAULT_REDIS_PORT, RedisSettings
from rodcache.core.exceptions import CacheError, CacheUnavailableError
from rodcache.utils.logger import get_logger

logger = get_logger("accelerator.redis_cache")


class RedisAcceleratorCache:
    """
    Redis client for the accelerator cache.

    Connection failures surface as CacheUnavailableError so the engine can
    tell them apart from relational store failures.
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        *,
        host: str = DEFAULT_REDIS_HOST,
        port: int = DEFAULT_REDIS_PORT,
        db: int = 0,
        url: Optional[str] = None,
    ):
        """
        Initialize Redis connection.

        Connection priority:
        1. An injected client (tests, callers sharing a pool)
        2. ``url`` (redis:// or rediss://)
        3. ``host`` + ``port`` + ``db``
        """
        if client is not None:
            self.client = client
            self.location = "<injected client>"
        elif url:
            self.client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.location = url
        else:
            self.client = redis.Redis(
                host=host,
                port=port,
                db=db,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=5,
            )
            self.location = f"{host}:{port}/{db}"

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisAcceleratorCache":
        return cls(host=settings.host, port=settings.port, db=settings.db, url=settings.url)

    def _unavailable(self, action: str, e: Exception) -> CacheUnavailableError:
        return CacheUnavailableError(
            f"Unable to {action}: Redis cache at [ {self.location} ] is unavailable ({e})."
        )

    def ping(self) -> bool:
        """Check if Redis is reachable."""
        try:
            return bool(self.client.ping())
        except RedisError:
            return False

    def ensure_available(self) -> None:
        """Raise CacheUnavailableError unless Redis answers a PING."""
        try:
            self.client.ping()
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise self._unavailable("open the cache", e) from e
        except RedisError as e:
            raise CacheError(f"Redis cache at [ {self.location} ] rejected PING: {e}") from e

    def get(self, key: str) -> Optional[str]:
        """Return the cached value for ``key``, or None on a miss."""
        if not key:
            logger.warning("The input key is null or empty.  It will not be used to query the cache.")
            return None
        try:
            return self.client.get(key)
        except UnicodeDecodeError as e:
            # Undecodable value reads as a miss
            logger.error("Cached value for key [ %s ] is not valid UTF-8 and will be ignored: %s", key, e)
            return None
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise self._unavailable(f"read key [ {key} ]", e) from e
        except RedisError as e:
            raise CacheError(f"Cache read error for [ {key} ]: {e}") from e

    def put(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key``, overwriting any previous value."""
        if not key:
            logger.error("The input key is null or empty.  It will not be used to identify a record in the cache.")
            return False
        if not value:
            logger.error("The input value for key [ %s ] is null or empty.  It will not be stored in the cache.", key)
            return False
        try:
            self.client.set(key, value)
            return True
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise self._unavailable(f"write key [ {key} ]", e) from e
        except RedisError as e:
            raise CacheError(f"Cache write error for [ {key} ]: {e}") from e

    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True when a key was actually deleted."""
        if not key:
            logger.error("The input key is null or empty.  No attempt will be made to remove the key.")
            return False
        logger.debug("Removing key [ %s ].", key)
        try:
            return bool(self.client.delete(key))
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise self._unavailable(f"delete key [ {key} ]", e) from e
        except RedisError as e:
            raise CacheError(f"Cache delete error for [ {key} ]: {e}") from e

    def list_keys(self, pattern: str = "*") -> Set[str]:
        """Return every key matching ``pattern`` (incremental SCAN, not a blocking KEYS)."""
        try:
            return set(self.client.scan_iter(match=pattern, count=500))
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise self._unavailable("list keys", e) from e
        except RedisError as e:
            raise CacheError(f"Cache key listing error: {e}") from e

    def close(self) -> None:
        """Release the connection pool."""
        logger.info("Closing the Redis connection pool.")
        try:
            self.client.close()
        except RedisError as e:
            logger.warning("Error while closing Redis connection pool: %s", e)

    def __enter__(self) -> "RedisAcceleratorCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
