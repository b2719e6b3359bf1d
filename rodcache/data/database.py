"""
Database connection management.
Uses SQLAlchemy for both the product system-of-record and the accelerator table.
"""

from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from rodcache.core.config import DatabaseSettings
from rodcache.core.exceptions import ConfigurationError, StoreError, StoreUnavailableError
from rodcache.utils.logger import get_logger

logger = get_logger("data.database")

# Base class for all our database models
Base = declarative_base()

# Connection-level failures; everything else from SQLAlchemy is a StoreError
UNAVAILABLE_ERRORS = (OperationalError, InterfaceError)


def create_store_engine(settings: DatabaseSettings, **kwargs) -> Engine:
    """
    Build an Engine for a relational store.

    When the settings name a schema, unqualified tables are mapped onto it
    through ``schema_translate_map``.
    """
    try:
        engine = create_engine(settings.url(), pool_pre_ping=True, **kwargs)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database settings {settings!r}: {e}") from e
    except ImportError as e:
        raise ConfigurationError(
            f"Database driver [ {settings.driver} ] is not installed: {e}"
        ) from e
    if settings.schema:
        engine = engine.execution_options(schema_translate_map={None: settings.schema})
    logger.debug("Created engine for %r", settings)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def translate_error(e: SQLAlchemyError, action: str) -> Exception:
    """Map a SQLAlchemy error onto the rodcache taxonomy."""
    if isinstance(e, UNAVAILABLE_ERRORS):
        return StoreUnavailableError(f"Unable to {action}: data store unavailable ({e}).")
    return StoreError(f"Unexpected database error while attempting to {action}: {e}")


def check_connection(engine: Engine, name: Optional[str] = None) -> None:
    """Run ``SELECT 1``; raise StoreUnavailableError if the store cannot be reached."""
    label = name or str(engine.url)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise StoreUnavailableError(f"Unable to obtain a connection to [ {label} ]: {e}") from e
