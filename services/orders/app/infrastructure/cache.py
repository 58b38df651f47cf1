"""Short-lived cache for fetched order pages and order details.

Keys are namespaced by scope so a mutation can purge everything under
`orders:list` or `orders:detail:<id>` without knowing the exact keys.
"""

from typing import Any, Iterable, Optional
from cachetools import TTLCache

from shared.core import get_logger

logger = get_logger(__name__)

LIST_SCOPE = "orders:list"
DETAIL_SCOPE = "orders:detail"


def detail_scope(order_id: str) -> str:
    return f"{DETAIL_SCOPE}:{order_id}"


class OrderCache:
    def __init__(self, maxsize: int = 256, ttl: float = 60):
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl)

    def get(self, key: str) -> Optional[Any]:
        return self._cache.get(key)

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value

    def invalidate(self, scopes: Iterable[str]) -> int:
        """Delete every entry whose key starts with one of `scopes`."""
        removed = 0
        for prefix in scopes:
            for key in tuple(self._cache.keys()):  # snapshot, we mutate below
                if key == prefix or key.startswith(f"{prefix}:"):
                    self._cache.pop(key, None)
                    removed += 1
        if removed:
            logger.debug(f"Invalidated {removed} cached entries", extra={'extra_fields': {'scopes': list(scopes)}})
        return removed

    def __len__(self) -> int:
        return len(self._cache)
