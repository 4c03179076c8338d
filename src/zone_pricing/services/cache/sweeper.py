"""Periodic purge of expired in-process cache entries."""

from __future__ import annotations

import logging
import threading

from .tiered import TwoTierCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    """Daemon timer that calls ``sweep()`` every ``interval_seconds``.

    A failing sweep is logged and the next cycle is still scheduled.
    """

    def __init__(self, cache: TwoTierCache, interval_seconds: float) -> None:
        self.cache = cache
        self.interval_seconds = interval_seconds
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._running = False

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self) -> None:
        timer = threading.Timer(self.interval_seconds, self._run)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def run_once(self) -> int:
        removed = self.cache.sweep()
        if removed:
            logger.debug("Swept %d expired cache entries", removed)
        return removed

    def _run(self) -> None:
        try:
            self.run_once()
        except Exception:
            logger.exception("Cache sweep failed")
        finally:
            with self._lock:
                if self._running:
                    self._schedule()
