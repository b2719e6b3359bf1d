"""
SQLAlchemy table definitions.

ISO_ROD_CC_AOR_PUB      - product catalog (system-of-record, read-only here)
ROD_QUERY_REQUEST_ACCELERATOR - Tier-2 accelerator records, keyed by (NRN, NSN)

Sample DDL for the accelerator table (Oracle)::

    create table ROD_QUERY_REQUEST_ACCELERATOR (
        NRN        VARCHAR2(20) NOT NULL,
        NSN        VARCHAR2(20) NOT NULL,
        FILE_DATE  TIMESTAMP    NOT NULL,
        FILE_SIZE  NUMBER       NOT NULL,
        HASH       VARCHAR2(200) NOT NULL,
        PRIMARY KEY (NRN, NSN)
    );
"""

from sqlalchemy import BigInteger, Column, DateTime, String, Table, Text

from rodcache.data.database import Base

PRODUCT_TABLE_NAME = "ISO_ROD_CC_AOR_PUB"
ACCELERATOR_TABLE_NAME = "ROD_QUERY_REQUEST_ACCELERATOR"


# Catalog rows are not unique per (NRN, NSN) so the table is mapped with Core,
# not as an ORM entity.
product_table = Table(
    PRODUCT_TABLE_NAME,
    Base.metadata,
    Column("PROD_TYPE", String(100), key="product_type"),
    Column("MEDIA_NAME", String(255), key="media_name"),
    Column("NRN", String(20), key="nrn"),
    Column("NSN", String(20), key="nsn"),
    Column("EDITION", BigInteger, key="edition"),
    Column("LOAD_DATE", DateTime, key="load_date"),
    Column("FILE_DATE", DateTime, key="file_date"),
    Column("SEC_CLASS", String(10), key="classification"),
    Column("CLASS_DESC", String(100), key="classification_description"),
    Column("SEC_REL", String(10), key="releasability"),
    Column("REL_DESC", String(255), key="releasability_description"),
    Column("UNIX_PATH", String(1024), key="path"),
    Column("HYPERLINK_URL", String(1024), key="url"),
    Column("ALL_NOTES", Text, key="notes"),
    Column("ISO3CHR", String(3), key="iso3char"),
    Column("AOR_CODE", String(20), key="aor_code"),
    Column("COUNTRY_NAME", String(255), key="country_name"),
    Column("PRODUCT_SIZE_BYTES", BigInteger, key="size"),
)


class AcceleratorRow(Base):
    """One Tier-2 accelerator record."""
    __tablename__ = ACCELERATOR_TABLE_NAME

    nrn = Column("NRN", String(20), primary_key=True)
    nsn = Column("NSN", String(20), primary_key=True)
    file_date = Column("FILE_DATE", DateTime, nullable=False)
    file_size = Column("FILE_SIZE", BigInteger, nullable=False)
    hash = Column("HASH", String(200), nullable=False)

    def __repr__(self) -> str:
        return f"AcceleratorRow(nrn={self.nrn!r}, nsn={self.nsn!r}, size={self.file_size}, hash={self.hash!r})"
