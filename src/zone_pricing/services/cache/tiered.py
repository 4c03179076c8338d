"""Two-tier cache: shared primary with an in-process fallback."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...errors import CacheUnavailable
from .backends import CacheBackend, TTLCache

logger = logging.getLogger(__name__)


class TwoTierCache(CacheBackend[Any]):
    """Reads and writes go to the primary first.

    When the primary raises ``CacheUnavailable`` the failure is logged and the
    in-process tier serves the call instead, so callers never see it. A
    primary miss also consults the in-process tier, which holds whatever was
    written while the primary was down.
    """

    def __init__(self, primary: CacheBackend[Any] | None, fallback: TTLCache[Any]) -> None:
        self.primary = primary
        self.fallback = fallback

    def _primary_failed(self, operation: str, exc: CacheUnavailable) -> None:
        logger.warning(f"cache_unavailable op={operation}, using in-process cache: {exc}")

    def get(self, key: str) -> Optional[Any]:
        if self.primary is not None:
            try:
                value = self.primary.get(key)
            except CacheUnavailable as exc:
                self._primary_failed("get", exc)
            else:
                if value is not None:
                    logger.debug("cache hit (primary) %s", key)
                    return value
        value = self.fallback.get(key)
        if value is not None:
            logger.debug("cache hit (in-process) %s", key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if self.primary is not None:
            try:
                self.primary.set(key, value, ttl_seconds)
                return
            except CacheUnavailable as exc:
                self._primary_failed("set", exc)
        self.fallback.set(key, value, ttl_seconds)

    def delete(self, key: str) -> None:
        if self.primary is not None:
            try:
                self.primary.delete(key)
            except CacheUnavailable as exc:
                self._primary_failed("delete", exc)
        self.fallback.delete(key)

    def invalidate(self, prefix: str) -> int:
        """Clear the prefix in the primary, then in the in-process map."""
        removed = 0
        if self.primary is not None:
            try:
                removed += self.primary.invalidate(prefix)
            except CacheUnavailable as exc:
                self._primary_failed("invalidate", exc)
        removed += self.fallback.invalidate(prefix)
        return removed

    def sweep(self) -> int:
        return self.fallback.sweep()
