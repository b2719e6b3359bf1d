"""
AcceleratorRecord - cached, precomputed metadata for one product's backing file.

Records are linked to their product through the (NSN, NRN) identity; the
Tier-2 table uses the same pair as its primary key. A record is never edited
in place: a changed file produces a new record that replaces the old one.

Wire format (Tier-1 value)::

    {"nsn": "7644012312312", "nrn": "CB01USC512L",
     "fileDate": "2024-03-01T12:30:45Z", "size": 1500, "hash": "9e107d9d..."}
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from rodcache.models.product import Product
from rodcache.models.results import BuildResult, describe_validation_error
from rodcache.utils.logger import get_logger

logger = get_logger("models.accelerator")

FILE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def normalize_file_date(value: datetime) -> datetime:
    """Coerce a datetime to UTC at whole-second precision (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).replace(microsecond=0)


class AcceleratorRecord(BaseModel):
    """Digest, size and modification date of a product's on-disk file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    nsn: str = Field(..., min_length=1)
    nrn: str = Field(..., min_length=1)
    file_date: datetime = Field(..., alias="fileDate")
    size: int = Field(..., ge=0)
    hash: str = Field(..., min_length=1)

    @field_validator("file_date")
    @classmethod
    def _normalize_file_date(cls, value: datetime) -> datetime:
        return normalize_file_date(value)

    @field_serializer("file_date")
    def _serialize_file_date(self, value: datetime) -> str:
        return value.strftime(FILE_DATE_FORMAT)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.nsn, self.nrn)

    def __str__(self) -> str:
        return (
            f"NSN => [ {self.nsn} ], NRN => [ {self.nrn} ], "
            f"On-disk file data:  Size => [ {self.size} ], Hash => [ {self.hash} ], "
            f"File Date => [ {self.file_date:%Y-%m-%d %H:%M:%S} ]"
        )

    @classmethod
    def build(cls, **fields: Any) -> BuildResult["AcceleratorRecord"]:
        """Validate ``fields`` and return either a record or the failure reason."""
        try:
            return BuildResult(value=cls(**fields))
        except ValidationError as e:
            return BuildResult(error=describe_validation_error("AcceleratorRecord", e))

    @classmethod
    def for_product(cls, product: Product, *, file_date: datetime, size: int, hash: Optional[str]) -> BuildResult["AcceleratorRecord"]:
        return cls.build(nsn=product.nsn, nrn=product.nrn, file_date=file_date, size=size, hash=hash)


def serialize(record: AcceleratorRecord) -> str:
    """Serialize a record into the JSON string stored in Tier-1."""
    return record.model_dump_json(by_alias=True)


def deserialize(value: Optional[str]) -> Optional[AcceleratorRecord]:
    """
    Parse a Tier-1 value back into a record.

    Returns None for an empty value or a value that is not a valid record;
    the latter is logged so a corrupt cache entry can be located.
    """
    if not value:
        return None
    try:
        return AcceleratorRecord.model_validate_json(value)
    except ValidationError as e:
        logger.error(
            "Unable to deserialize cached accelerator record [ %s ]: %s",
            value[:200],
            describe_validation_error("AcceleratorRecord", e),
        )
        return None
