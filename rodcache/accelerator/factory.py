"""
Accelerator record construction.

Builds an AcceleratorRecord from the file a product points at. Size and
modification date always come from the filesystem, never from the catalog
row, which may be stale.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from rodcache.accelerator.hashing import DEFAULT_HASH_TYPE, HashType, compute_digest
from rodcache.accelerator.keys import derive_key
from rodcache.models.accelerator import AcceleratorRecord, serialize
from rodcache.models.product import Product
from rodcache.utils.logger import get_logger

logger = get_logger("accelerator.factory")

PathLike = Union[str, Path]


def actual_file_size(path: PathLike) -> int:
    """Size of the file in bytes. Raises OSError if it cannot be read."""
    return Path(path).stat().st_size


def actual_file_date(path: PathLike) -> datetime:
    """Modification time of the file in UTC, whole seconds. Raises OSError if it cannot be read."""
    mtime = Path(path).stat().st_mtime
    return datetime.fromtimestamp(int(mtime), tz=timezone.utc)


class AcceleratorRecordFactory:
    """Generates the key/value pair stored for each product."""

    def __init__(self, hash_type: HashType = DEFAULT_HASH_TYPE):
        self.hash_type = hash_type

    def get_key(self, product: Optional[Product]) -> str:
        return derive_key(product)

    def get_value(self, record: Optional[AcceleratorRecord]) -> Optional[str]:
        if record is None:
            return None
        return serialize(record)

    def build(self, product: Optional[Product]) -> Optional[AcceleratorRecord]:
        """
        Generate a record for ``product``.

        Returns None (after logging the cause) when the path is empty, the
        file is missing or unreadable, the digest fails, or the resulting
        record does not validate.
        """
        if product is None:
            logger.error("The input product object is null.  Nothing to store.")
            return None

        path = product.path
        if not path:
            logger.error(
                "Target file name is null or empty for NSN [ %s ] NRN [ %s ].  "
                "Unable to generate an accelerator record.",
                product.nsn, product.nrn,
            )
            return None

        if not Path(path).is_file():
            logger.error(
                "Target file [ %s ] does not exist.  Unable to generate an accelerator record.",
                path,
            )
            return None

        try:
            size = actual_file_size(path)
            file_date = actual_file_date(path)
        except OSError as e:
            logger.error(
                "Unexpected error raised while attempting to access file [ %s ]: %s.  "
                "Accelerator record not created.",
                path, e,
            )
            return None

        digest = compute_digest(path, self.hash_type)
        if digest is None:
            logger.error(
                "Unable to generate a hash for file [ %s ].  See previous error messages for more information.",
                path,
            )
            return None

        result = AcceleratorRecord.for_product(product, file_date=file_date, size=size, hash=digest)
        if not result.ok:
            logger.error("Accelerator record for file [ %s ] failed validation: %s", path, result.error)
            return None
        return result.value
