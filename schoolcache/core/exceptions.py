class CacheError(Exception):
    """Base class for errors raised by the cache layer itself."""


class InvalidKeyError(CacheError, ValueError):
    """A cache key part would make the key ambiguous."""
