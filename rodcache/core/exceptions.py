"""
Error taxonomy for the accelerator cache.

Configuration errors are fatal and raised before any batch work starts.
Connectivity errors are fatal while a batch is being opened and scoped to the
current product afterwards. Everything else is scoped to a single product.
"""


class RodCacheError(Exception):
    """Base class for all rodcache errors."""


class ConfigurationError(RodCacheError):
    """A required setting is missing or invalid."""


class PropertyNotFoundError(ConfigurationError):
    """Raised when a required configuration property was not supplied."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Required property [ {name} ] was not supplied.")


class UnknownHashTypeError(ConfigurationError):
    """Raised when a digest algorithm outside HashType is requested."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unknown hash type [ {value} ].")


class ConnectivityError(RodCacheError):
    """A backing service could not be reached."""


class CacheUnavailableError(ConnectivityError):
    """The Tier-1 key/value cache is unreachable."""


class StoreUnavailableError(ConnectivityError):
    """A relational store (product source or Tier-2) is unreachable."""


class CacheError(RodCacheError):
    """Tier-1 cache rejected an operation for a reason other than connectivity."""


class StoreError(RodCacheError):
    """A relational store rejected an operation for a reason other than connectivity."""


class RecordValidationError(RodCacheError):
    """A Product or AcceleratorRecord failed its required-field checks."""
