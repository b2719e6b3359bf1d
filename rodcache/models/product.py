"""
Product - immutable snapshot of one row from the system-of-record.

Identity is the (NSN, NRN) pair. Equality is case-insensitive over that pair
and ignores every other attribute.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rodcache.models.results import BuildResult, describe_validation_error

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Product(BaseModel):
    """A published on-disk artifact and its catalog metadata."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    nsn: str = Field(..., min_length=1, description="National stock number")
    nrn: str = Field(..., min_length=1, description="NGA reference number")
    path: str = Field(..., min_length=1, description="On-disk location of the artifact")
    url: str = Field(..., min_length=1, description="Hyperlink to the artifact")
    aor_code: str = Field(..., min_length=1)
    country_name: str = Field(..., min_length=1)
    product_type: str = Field(..., min_length=1)

    edition: int = Field(0, ge=0)
    size: int = Field(0, ge=0, description="Catalog size in bytes (may be stale)")

    classification: Optional[str] = None
    classification_description: Optional[str] = None
    iso3char: Optional[str] = None
    media_name: Optional[str] = None
    notes: Optional[str] = None
    releasability: Optional[str] = None
    releasability_description: Optional[str] = None

    file_date: datetime = EPOCH
    load_date: datetime = EPOCH

    @field_validator("file_date", "load_date", mode="before")
    @classmethod
    def _default_missing_dates(cls, value: Any) -> Any:
        return EPOCH if value is None else value

    @field_validator("edition", "size", mode="before")
    @classmethod
    def _default_missing_numbers(cls, value: Any) -> Any:
        return 0 if value is None else value

    @property
    def identity(self) -> tuple[str, str]:
        return (self.nsn, self.nrn)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Product):
            return NotImplemented
        return (
            self.nsn.upper() == other.nsn.upper()
            and self.nrn.upper() == other.nrn.upper()
        )

    def __hash__(self) -> int:
        return hash((self.nrn.upper(), self.nsn.upper()))

    def __str__(self) -> str:
        return (
            f"AOR => [ {self.aor_code} ], Country Name => [ {self.country_name} ], "
            f"NSN => [ {self.nsn} ], NRN => [ {self.nrn} ], Edition => [ {self.edition} ], "
            f"ISO => [ {self.iso3char} ], Media Name => [ {self.media_name} ], "
            f"Path => [ {self.path} ], File Date => [ {self.file_date:%Y-%m-%d} ]"
        )

    @classmethod
    def build(cls, **fields: Any) -> BuildResult["Product"]:
        """Validate ``fields`` and return either a Product or the failure reason."""
        try:
            return BuildResult(value=cls(**fields))
        except ValidationError as e:
            return BuildResult(error=describe_validation_error("Product", e))
