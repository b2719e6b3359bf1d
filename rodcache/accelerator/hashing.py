"""
File digest computation.

Files are streamed through the digest in fixed-size chunks so memory use does
not grow with file size (the ISO images behind products run to many GB).
Failures are logged and reported as a None digest; they never propagate.
"""
import hashlib
import time
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from rodcache.core.exceptions import UnknownHashTypeError
from rodcache.utils.logger import get_logger

logger = get_logger("accelerator.hashing")

CHUNK_SIZE = 1024 * 1024


class HashType(Enum):
    """Supported digest algorithms: (display text, hashlib name)."""

    MD5 = ("MD5", "md5")
    SHA1 = ("SHA-1", "sha1")
    SHA256 = ("SHA-256", "sha256")
    SHA384 = ("SHA-384", "sha384")
    SHA512 = ("SHA-512", "sha512")

    @property
    def text(self) -> str:
        return self.value[0]

    @property
    def algorithm(self) -> str:
        return self.value[1]

    @classmethod
    def from_text(cls, text: str) -> "HashType":
        """Parse ``MD5``, ``sha-256``, ``SHA256`` ... into a HashType."""
        normalized = (text or "").strip().upper().replace("-", "").replace("_", "")
        for member in cls:
            if member.name == normalized:
                return member
        raise UnknownHashTypeError(text)


# MD5 is used for change detection, not security
DEFAULT_HASH_TYPE = HashType.MD5


def compute_digest(
    path: Union[str, Path, None],
    hash_type: HashType = DEFAULT_HASH_TYPE,
    chunk_size: int = CHUNK_SIZE,
) -> Optional[str]:
    """Return the lowercase hex digest of the file at ``path``, or None on failure."""
    if not isinstance(hash_type, HashType):
        logger.error("Client requested hash type [ %s ] which is not implemented.", hash_type)
        return None
    if not path:
        logger.error("The input file name is null or empty.  The returned hash will be null.")
        return None

    file_path = Path(path)
    if not file_path.is_file():
        logger.error("The input file [ %s ] does not exist.  Unable to generate the file hash.", file_path)
        return None

    start = time.perf_counter()
    digest = hashlib.new(hash_type.algorithm, usedforsecurity=False)
    try:
        with file_path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        logger.error(
            "Unexpected error encountered while generating the [ %s ] hash for file [ %s ]: %s.  "
            "Method will return a null hash.",
            hash_type.text, file_path, e,
        )
        return None

    logger.debug(
        "Hash type [ %s ] for file [ %s ] created in [ %.1f ] ms.",
        hash_type.text, file_path, (time.perf_counter() - start) * 1000,
    )
    return digest.hexdigest()
