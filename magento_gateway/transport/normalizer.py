from collections.abc import Mapping
from typing import Any, Optional

CACHE_ID_HEADERS = ("x-magento-cache-id", "X-Magento-Cache-Id")


def get_response_cache_id(headers: Optional[Mapping]) -> str:
    """Return the Magento cache id advertised by the upstream, or ``""``."""
    if not isinstance(headers, Mapping):
        return ""
    for name in CACHE_ID_HEADERS:
        value = headers.get(name)
        if value:
            return value
    return ""


def merge_cache_id(data: Any, cache_id: str) -> dict:
    """Copy the upstream payload and add ``cacheId`` to it.

    Non-object payloads contribute no keys of their own.
    """
    merged = dict(data) if isinstance(data, Mapping) else {}
    merged["cacheId"] = cache_id
    return merged
