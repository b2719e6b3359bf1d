"""
rodcache - two-tier accelerator cache for published product files

Keeps a per-file digest, size and modification date for every catalog
product in:
- Tier-1: a Redis key/value cache keyed by NSN+NRN
- Tier-2: a relational accelerator table keyed by (NRN, NSN)
"""

from rodcache.core.config import Settings, get_settings, set_settings
from rodcache.core.sync import ItemStatus, SyncStats, SynchronizationEngine

__all__ = [
    'ItemStatus',
    'Settings',
    'SyncStats',
    'SynchronizationEngine',
    'get_settings',
    'set_settings',
]

__version__ = '0.1.0'
