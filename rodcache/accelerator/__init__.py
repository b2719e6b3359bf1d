"""
Accelerator record construction and the Tier-1 cache.
"""

from rodcache.accelerator.factory import AcceleratorRecordFactory
from rodcache.accelerator.hashing import HashType, compute_digest
from rodcache.accelerator.keys import derive_key, split_key
from rodcache.accelerator.redis_cache import RedisAcceleratorCache

__all__ = [
    'AcceleratorRecordFactory',
    'HashType',
    'RedisAcceleratorCache',
    'compute_digest',
    'derive_key',
    'split_key',
]
