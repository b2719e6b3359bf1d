"""
Read-only access to the product system-of-record.

Every row is validated into an immutable Product.  Rows that fail validation
do not abort the read: they are returned as RejectedRow entries so the
caller can count and report them.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rodcache.data.database import check_connection, translate_error
from rodcache.data.tables import PRODUCT_TABLE_NAME, product_table
from rodcache.models.product import Product
from rodcache.utils.logger import get_logger

logger = get_logger("data.product_source")


@dataclass(frozen=True)
class RejectedRow:
    """A catalog row that could not be turned into a Product."""

    row_number: int
    nsn: Optional[str]
    nrn: Optional[str]
    path: Optional[str]
    reason: str


@dataclass
class ProductBatch:
    products: List[Product] = field(default_factory=list)
    rejected: List[RejectedRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.products)


def _row_values(row: Mapping[Any, Any]) -> dict:
    return {column.key: row[column] for column in product_table.columns}


class ProductSource:
    """Query surface over the ISO_ROD_CC_AOR_PUB catalog table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def ensure_available(self) -> None:
        check_connection(self.engine, f"product store {PRODUCT_TABLE_NAME}")

    def _load(self, stmt, action: str) -> ProductBatch:
        batch = ProductBatch()
        start = time.perf_counter()
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise translate_error(e, action) from e

        for row_number, row in enumerate(rows, start=1):
            values = _row_values(row)
            result = Product.build(**values)
            if result.ok:
                batch.products.append(result.value)
                continue
            rejected = RejectedRow(
                row_number=row_number,
                nsn=values["nsn"],
                nrn=values["nrn"],
                path=values["path"],
                reason=result.error,
            )
            logger.warning(
                "Skipping [ %s ] row %d (NSN [ %s ], NRN [ %s ], path [ %s ]): %s",
                PRODUCT_TABLE_NAME, row_number, rejected.nsn, rejected.nrn, rejected.path, rejected.reason,
            )
            batch.rejected.append(rejected)

        logger.debug(
            "[ %d ] records selected in [ %.1f ] ms.  Of the records selected [ %d ] contained data errors.",
            len(rows), (time.perf_counter() - start) * 1000, len(batch.rejected),
        )
        return batch

    def fetch_all(self) -> ProductBatch:
        """All products, newest file date first."""
        stmt = select(product_table).order_by(product_table.c.file_date.desc())
        return self._load(stmt, f"retrieve all [ {PRODUCT_TABLE_NAME} ] records")

    def fetch(self, nrn: Optional[str], nsn: Optional[str]) -> ProductBatch:
        """Products matching one (NRN, NSN) identity, newest file date first."""
        if not nrn:
            logger.warning("Input NRN is null.  Query wasn't executed.")
            return ProductBatch()
        if not nsn:
            logger.warning("Input NSN is null.  Query wasn't executed.")
            return ProductBatch()
        stmt = (
            select(product_table)
            .where(product_table.c.nrn == nrn, product_table.c.nsn == nsn)
            .order_by(product_table.c.file_date.desc())
        )
        return self._load(stmt, f"retrieve [ {PRODUCT_TABLE_NAME} ] records for NRN [ {nrn} ] NSN [ {nsn} ]")

    def _distinct(self, column, order: bool = False) -> List[str]:
        stmt = select(column).distinct().where(column.is_not(None))
        if order:
            stmt = stmt.order_by(column)
        try:
            with self.engine.connect() as conn:
                values = conn.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            raise translate_error(e, f"list distinct {column.name} values") from e
        logger.debug("[ %d ] distinct %s values selected.", len(values), column.name)
        return list(values)

    def aor_codes(self) -> List[str]:
        return self._distinct(product_table.c.aor_code)

    def country_names(self) -> List[str]:
        return self._distinct(product_table.c.country_name, order=True)

    def product_types(self) -> List[str]:
        return self._distinct(product_table.c.product_type)

    def close(self) -> None:
        logger.info("Closing product store connections.")
        self.engine.dispose()
