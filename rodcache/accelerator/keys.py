"""
Cache key derivation.

A key is ``NSN + "+" + NRN``. An empty key means "do not cache this record";
callers must check for it before touching either tier.
"""
from typing import Optional, Tuple

from rodcache.models.product import Product
from rodcache.utils.logger import get_logger

logger = get_logger("accelerator.keys")

KEY_SEPARATOR = "+"


def derive_key(product: Optional[Product]) -> str:
    """Return the Tier-1 key for ``product``, or "" when it cannot be derived."""
    if product is None:
        logger.error("The input product object is null.  Nothing to store.")
        return ""
    nsn = (product.nsn or "").strip()
    nrn = (product.nrn or "").strip()
    if not nsn:
        logger.error("The input product object contains a null (or empty) value for the NSN.")
        return ""
    if not nrn:
        logger.error("The input product object contains a null (or empty) value for the NRN.")
        return ""
    if KEY_SEPARATOR in nsn or KEY_SEPARATOR in nrn:
        logger.error(
            "Product NSN [ %s ] / NRN [ %s ] contains the key separator [ %s ].  "
            "The key would not be reversible.",
            nsn, nrn, KEY_SEPARATOR,
        )
        return ""
    return f"{nsn}{KEY_SEPARATOR}{nrn}"


def split_key(key: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Decompose a key into ``(nsn, nrn)``.

    Malformed keys (not exactly two non-empty segments) yield ``(None, None)``.
    """
    if not key:
        return (None, None)
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return (None, None)
    return (parts[0], parts[1])
