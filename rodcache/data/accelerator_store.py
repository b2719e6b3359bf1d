"""
Tier-2 accelerator store: persistent table of AcceleratorRecords keyed by
(NRN, NSN).

Callers decide between insert (first write for an identity) and update
(overwrite of an existing row) based on whether ``lookup`` found a row.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rodcache.core.exceptions import StoreError
from rodcache.data.database import check_connection, make_session_factory, translate_error
from rodcache.data.tables import ACCELERATOR_TABLE_NAME, AcceleratorRow
from rodcache.models.accelerator import AcceleratorRecord
from rodcache.models.product import Product
from rodcache.utils.logger import get_logger

logger = get_logger("data.accelerator_store")


@dataclass(frozen=True)
class Tier2Lookup:
    exists: bool
    record: Optional[AcceleratorRecord] = None


def _to_storage_date(record: AcceleratorRecord):
    """FILE_DATE is stored as naive UTC."""
    return record.file_date.astimezone(timezone.utc).replace(tzinfo=None)


class AcceleratorStore:
    """Lookup/insert/update of accelerator records in ROD_QUERY_REQUEST_ACCELERATOR."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = make_session_factory(engine)

    def ensure_available(self) -> None:
        check_connection(self.engine, f"accelerator store {ACCELERATOR_TABLE_NAME}")

    def create_schema(self) -> None:
        """Create the accelerator table if it does not exist."""
        try:
            AcceleratorRow.__table__.create(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            raise translate_error(e, f"create [ {ACCELERATOR_TABLE_NAME} ]") from e

    def lookup(self, nsn: Optional[str], nrn: Optional[str]) -> Tier2Lookup:
        """
        Look up the row for (nsn, nrn).

        ``exists`` reports whether a row is present at all; ``record`` is None
        when the row is absent or fails validation.
        """
        if not nsn or not nrn:
            logger.warning(
                "Product NSN [ %s ] / NRN [ %s ] is null or empty.  Accelerator record lookup skipped.",
                nsn, nrn,
            )
            return Tier2Lookup(exists=False)
        try:
            with self._sessions() as session:
                row = session.get(AcceleratorRow, {"nrn": nrn, "nsn": nsn})
                if row is None:
                    return Tier2Lookup(exists=False)
                values = dict(nsn=row.nsn, nrn=row.nrn, file_date=row.file_date, size=row.file_size, hash=row.hash)
        except SQLAlchemyError as e:
            raise translate_error(e, f"retrieve accelerator record for NRN [ {nrn} ] NSN [ {nsn} ]") from e

        result = AcceleratorRecord.build(**values)
        if not result.ok:
            logger.error(
                "Stored accelerator record for NRN [ %s ] NSN [ %s ] is invalid and will be ignored: %s",
                nrn, nsn, result.error,
            )
            return Tier2Lookup(exists=True)
        return Tier2Lookup(exists=True, record=result.value)

    def lookup_product(self, product: Product) -> Tier2Lookup:
        return self.lookup(product.nsn, product.nrn)

    def get(self, nsn: Optional[str], nrn: Optional[str]) -> Optional[AcceleratorRecord]:
        """Return the stored record for (nsn, nrn), or None when there is no usable row."""
        return self.lookup(nsn, nrn).record

    def get_for_product(self, product: Product) -> Optional[AcceleratorRecord]:
        return self.get(product.nsn, product.nrn)

    def insert(self, record: AcceleratorRecord) -> None:
        """Insert a first record for an identity."""
        row = AcceleratorRow(
            nrn=record.nrn,
            nsn=record.nsn,
            file_date=_to_storage_date(record),
            file_size=record.size,
            hash=record.hash,
        )
        try:
            with self._sessions() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise translate_error(
                e, f"insert a single [ {ACCELERATOR_TABLE_NAME} ] record for NRN [ {record.nrn} ] NSN [ {record.nsn} ]"
            ) from e

    def update(self, record: AcceleratorRecord) -> None:
        """Overwrite the existing record for an identity."""
        try:
            with self._sessions() as session, session.begin():
                row = session.get(AcceleratorRow, {"nrn": record.nrn, "nsn": record.nsn})
                if row is None:
                    raise StoreError(
                        f"No [ {ACCELERATOR_TABLE_NAME} ] record exists for NRN [ {record.nrn} ] "
                        f"NSN [ {record.nsn} ]; nothing to update."
                    )
                row.file_date = _to_storage_date(record)
                row.file_size = record.size
                row.hash = record.hash
        except SQLAlchemyError as e:
            raise translate_error(
                e, f"update a single [ {ACCELERATOR_TABLE_NAME} ] record for NRN [ {record.nrn} ] NSN [ {record.nsn} ]"
            ) from e

    def close(self) -> None:
        logger.info("Closing accelerator store connections.")
        self.engine.dispose()
