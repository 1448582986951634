# ysba_ticker/refresher.py
"""
Periodic refresh of every partition.

Each cycle force-refreshes standings, then pre-warms the team schedules for
the same partition. A failing partition is logged and the cycle moves on.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

from .errors import YSBAError
from .services.cache_manager import CacheManager

logger = logging.getLogger(__name__)


class PeriodicRefresher:
    """Runs refresh cycles on a daemon thread every interval_seconds."""

    def __init__(
        self,
        manager: CacheManager,
        interval_seconds: float,
        partitions: Optional[Iterable[Tuple[str, str]]] = None,
    ) -> None:
        self.manager = manager
        self.interval_seconds = interval_seconds
        self.partitions = list(partitions) if partitions is not None else list(manager.partition_keys())
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> Dict[str, int]:
        """
        Refresh every partition once.

        Returns {"refreshed": n, "failed": m}.
        """
        refreshed = failed = 0
        for division_key, tier_key in self.partitions:
            try:
                snapshot = self.manager.get_standings(division_key, tier_key, force_refresh=True)
                self.manager.prewarm_entity_schedules(division_key, tier_key, force_refresh=True)
                logger.info(f"Refreshed {division_key}/{tier_key} ({len(snapshot.rows)} teams)")
                refreshed += 1
            except YSBAError as exc:
                logger.error(f"Scheduled refresh failed for {division_key}/{tier_key}: {exc}")
                failed += 1
            except Exception:
                # The refresher thread must outlive a single bad partition.
                logger.exception(f"Unexpected error refreshing {division_key}/{tier_key}")
                failed += 1
        logger.info(f"Scheduled refresh complete: {refreshed} refreshed, {failed} failed")
        return {"refreshed": refreshed, "failed": failed}

    def _loop(self, run_immediately: bool) -> None:
        if run_immediately:
            self.run_once()
        while not self._stop.wait(self.interval_seconds):
            self.run_once()

    def start(self, run_immediately: bool = True) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(run_immediately,),
            name="partition-refresher",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Refresher started (every {self.interval_seconds / 60:.0f} minutes, {len(self.partitions)} partitions)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
