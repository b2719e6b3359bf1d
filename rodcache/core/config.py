"""
Configuration management for rodcache.

Loads settings from a YAML config file, then lets environment variables
(including a local .env file) override individual properties.

Property names use the dotted form of the deployment properties
(``redis.host``, ``accelerator.db.password``, ...).  The environment override
for a property is ``ROD_`` + the upper-cased name with dots replaced by
underscores, e.g. ``ROD_ACCELERATOR_DB_PASSWORD``.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from rodcache.core.exceptions import ConfigurationError, PropertyNotFoundError


def _project_root() -> Path:
    """Return project root (parent of rodcache package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"
CONFIG_PATH_ENV = "ROD_CONFIG"
ENV_PREFIX = "ROD_"

DEFAULT_REDIS_HOST = "localhost"
DEFAULT_REDIS_PORT = 6379

# Property names
REDIS_HOST_PROPERTY = "redis.host"
REDIS_PORT_PROPERTY = "redis.port"
REDIS_DB_PROPERTY = "redis.db"
REDIS_URL_PROPERTY = "redis.url"

DB_PREFIX = "db"
ACCELERATOR_DB_PREFIX = "accelerator.db"

HASH_TYPE_PROPERTY = "sync.hash_type"
WORKERS_PROPERTY = "sync.workers"


def env_name(name: str) -> str:
    """Return the environment variable that overrides property ``name``."""
    return ENV_PREFIX + name.upper().replace(".", "_")


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested YAML mappings into dotted property names."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


class Settings:
    """Named key/value settings with environment overrides."""

    def __init__(self, properties: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None):
        self._properties = dict(properties or {})
        self._environ = os.environ if environ is None else environ

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Load settings from a YAML file. A missing file yields empty settings."""
        env = os.environ if environ is None else environ
        path = config_path or Path(env.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))
        if not path.exists():
            return cls({}, environ=environ)

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Config file [ {path} ] must contain a mapping.")
        return cls(_flatten(data), environ=environ)

    def get(self, name: str, default: Any = None) -> Any:
        """Return the property value, or ``default`` when it is absent or empty."""
        value = self._environ.get(env_name(name))
        if value is None or value == "":
            value = self._properties.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return default
        return value.strip() if isinstance(value, str) else value

    def require(self, name: str) -> Any:
        """Return the property value or raise PropertyNotFoundError."""
        value = self.get(name)
        if value is None:
            raise PropertyNotFoundError(name)
        return value

    def get_int(self, name: str, default: int) -> int:
        value = self.get(name, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Property [ {name} ] must be an integer, got [ {value} ].")


@dataclass(frozen=True)
class RedisSettings:
    """Connection settings for the Tier-1 cache."""

    host: str = DEFAULT_REDIS_HOST
    port: int = DEFAULT_REDIS_PORT
    db: int = 0
    url: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisSettings":
        return cls(
            host=settings.get(REDIS_HOST_PROPERTY, DEFAULT_REDIS_HOST),
            port=settings.get_int(REDIS_PORT_PROPERTY, DEFAULT_REDIS_PORT),
            db=settings.get_int(REDIS_DB_PROPERTY, 0),
            url=settings.get(REDIS_URL_PROPERTY),
        )


@dataclass(frozen=True)
class DatabaseSettings:
    """
    Connection settings for a relational store.

    ``connection_string`` is a SQLAlchemy URL; ``driver`` replaces its
    drivername (e.g. ``oracle+oracledb``) and ``user``/``password`` replace
    its credentials.
    """

    driver: str
    connection_string: str
    user: str
    password: str
    schema: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings, prefix: str = DB_PREFIX) -> "DatabaseSettings":
        return cls(
            driver=settings.require(f"{prefix}.driver"),
            connection_string=settings.require(f"{prefix}.connection_string"),
            user=settings.require(f"{prefix}.user"),
            password=settings.require(f"{prefix}.password"),
            schema=settings.get(f"{prefix}.schema"),
        )

    def url(self) -> URL:
        try:
            base = make_url(self.connection_string)
        except ArgumentError as e:
            raise ConfigurationError(f"Invalid connection string [ {self.connection_string} ]: {e}")
        return base.set(drivername=self.driver, username=self.user, password=self.password)

    def __repr__(self) -> str:
        return (
            f"DatabaseSettings(driver={self.driver!r}, connection_string={self.connection_string!r}, "
            f"user={self.user!r}, password='<hidden>', schema={self.schema!r})"
        )


@dataclass(frozen=True)
class SyncSettings:
    """Settings consumed by the synchronization engine."""

    hash_type: str = "MD5"
    workers: int = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncSettings":
        workers = settings.get_int(WORKERS_PROPERTY, 1)
        if workers < 1:
            raise ConfigurationError(f"Property [ {WORKERS_PROPERTY} ] must be at least 1, got [ {workers} ].")
        return cls(
            hash_type=str(settings.get(HASH_TYPE_PROPERTY, "MD5")),
            workers=workers,
        )


# Global settings instance (used by the CLI only)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_yaml()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings
