"""
Token counting for provider responses.

Providers report usage in different shapes; this module reduces them
to a single non-negative integer.
"""

from collections.abc import Mapping
from typing import Any, Optional, Tuple

# (container, field) pairs checked in order
USAGE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("usage_metadata", "total_token_count"),
    ("usage", "total_tokens"),
    ("usage", "totalTokens"),
    ("metadata", "tokenCount"),
)


def read_field(obj: Any, name: str) -> Any:
    """Read a field from either a mapping or an attribute object."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_token_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        count = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        count = int(value.strip())
    else:
        return None
    return count if count >= 0 else None


def extract_total_tokens(raw: Any) -> int:
    """Total tokens reported by a provider response.

    Args:
        raw: Raw provider response (SDK object or mapping)

    Returns:
        Reported total, or 0 if the provider reported no usage
    """
    for container, field in USAGE_FIELDS:
        count = _as_token_count(read_field(read_field(raw, container), field))
        if count is not None:
            return count
    return 0
