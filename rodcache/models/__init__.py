from rodcache.models.accelerator import AcceleratorRecord, deserialize, serialize
from rodcache.models.product import Product
from rodcache.models.results import BuildResult

__all__ = [
    'AcceleratorRecord',
    'BuildResult',
    'Product',
    'deserialize',
    'serialize',
]
