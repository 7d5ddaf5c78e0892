"""Cache key construction.

Keys look like ``type:param1:param2``. The user and school always come right
after the type so a scope prefix captures every query variant stored for it.
"""
import json
import hashlib
from typing import Any, Mapping

from schoolcache.core.exceptions import InvalidKeyError

KEY_DELIMITER = ":"


def query_param(obj: Any) -> str:
    """Canonical, delimiter-free form of a query/filter object."""
    serialized = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(serialized.encode()).hexdigest()


def _key_part(param: Any) -> str:
    if param is None:
        raise InvalidKeyError("Cache key params cannot be None")
    if isinstance(param, (Mapping, list, tuple, set, frozenset)):
        if isinstance(param, (set, frozenset)):
            param = sorted(param, key=str)
        return query_param(param)

    part = str(param)
    if KEY_DELIMITER in part:
        raise InvalidKeyError(
            f"Cache key param {part!r} contains the reserved delimiter {KEY_DELIMITER!r}"
        )
    return part


def build_key(type_name: str, *params: Any) -> str:
    if not type_name or KEY_DELIMITER in type_name:
        raise InvalidKeyError(f"Invalid cache type name: {type_name!r}")
    parts = [type_name]
    parts.extend(_key_part(param) for param in params)
    return KEY_DELIMITER.join(parts)


def type_of(key: str) -> str:
    return key.split(KEY_DELIMITER, 1)[0]


def key_params(key: str) -> str:
    """Everything after the type, e.g. ``u1:s1:ADMIN``."""
    return key.partition(KEY_DELIMITER)[2]
