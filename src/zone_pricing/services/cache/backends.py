"""Cache backends: an in-process TTL map and a Redis-backed tier."""

from __future__ import annotations

import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

import redis

from ...errors import CacheUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class CacheBackend(ABC, Generic[T]):
    """get/set/invalidate contract shared by every cache tier.

    ``get`` returns ``None`` on a miss and never returns an entry past its
    expiry, whatever the backing store does with its own TTLs.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[T]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: T, ttl_seconds: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def invalidate(self, prefix: str) -> int:
        raise NotImplementedError


@dataclass(slots=True)
class _Entry(Generic[T]):
    value: T
    expires_at: float


class TTLCache(CacheBackend[T]):
    """Thread-safe in-process map with per-entry expiry."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry[T]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[T]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: T, ttl_seconds: float) -> None:
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._entries[key] = _Entry(value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def count(self, prefix: str = "") -> int:
        """Number of live entries whose key starts with ``prefix``."""
        now = self._clock()
        with self._lock:
            return sum(
                1 for key, entry in self._entries.items() if key.startswith(prefix) and now < entry.expires_at
            )

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _escape_glob(prefix: str) -> str:
    return "".join(f"\\{char}" if char in "*?[]\\" else char for char in prefix)


class RedisCache(CacheBackend[Any]):
    """JSON envelopes ``{"data": ..., "expires_at": ...}`` stored in Redis.

    Any Redis, network or serialization failure is raised as
    ``CacheUnavailable``.
    """

    _ERRORS = (redis.RedisError, OSError)

    def __init__(self, client: redis.Redis, clock: Clock = time.time, scan_batch: int = 500) -> None:
        self.client = client
        self._clock = clock
        self.scan_batch = scan_batch

    def get(self, key: str) -> Any:
        try:
            raw = self.client.get(key)
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis get failed: {exc}") from exc
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise CacheUnavailable(f"redis value for {key} is not valid JSON: {exc}") from exc
        if not isinstance(envelope, dict) or "data" not in envelope or "expires_at" not in envelope:
            self.delete(key)
            return None

        if self._clock() >= float(envelope["expires_at"]):
            self.delete(key)
            return None
        return envelope["data"]

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        expires_at = self._clock() + ttl_seconds
        try:
            payload = json.dumps({"data": value, "expires_at": expires_at})
        except (TypeError, ValueError) as exc:
            raise CacheUnavailable(f"value for {key} is not JSON serializable: {exc}") from exc
        try:
            self.client.set(key, payload, ex=max(1, int(ttl_seconds + 0.999)))
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis set failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis delete failed: {exc}") from exc

    def invalidate(self, prefix: str) -> int:
        removed = 0
        try:
            batch: list[str] = []
            for key in self.client.scan_iter(match=f"{_escape_glob(prefix)}*", count=self.scan_batch):
                batch.append(key)
                if len(batch) >= self.scan_batch:
                    removed += self.client.delete(*batch)
                    batch = []
            if batch:
                removed += self.client.delete(*batch)
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis invalidate failed: {exc}") from exc
        return removed

    def count(self, prefix: str = "") -> int:
        try:
            return sum(1 for _ in self.client.scan_iter(match=f"{_escape_glob(prefix)}*", count=self.scan_batch))
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis scan failed: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except self._ERRORS as exc:
            raise CacheUnavailable(f"redis ping failed: {exc}") from exc
