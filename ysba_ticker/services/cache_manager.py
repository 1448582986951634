# ysba_ticker/services/cache_manager.py
"""
Three-level cache over the scrape orchestrator.

Tables (one TTL for all):
  - standings by partition
  - comprehensive schedule by partition
  - derived team schedule by (partition, team)

Every read returns a fresh entry, attaches to an in-flight refresh of the same
key, or refreshes; a failed refresh falls back to the last good entry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
import time
from typing import Any, Dict, Tuple

from ..cache import TTLCache
from ..errors import YSBAError
from ..models import EntitySchedule, Partition, ScheduleSnapshot, StandingsSnapshot
from ..partitions import PartitionTable
from ..scraper import ScrapeOrchestrator
from .games_service import GamesService

logger = logging.getLogger(__name__)


class _UnknownTeam(LookupError):
    """Raised inside a team-schedule load when the code is not in the partition."""

    def __init__(self, schedule: EntitySchedule) -> None:
        super().__init__(schedule.team_code)
        self.schedule = schedule


@dataclass
class CacheManager:
    """Owns every cache table; the only caller of the orchestrator."""

    partitions: PartitionTable
    orchestrator: ScrapeOrchestrator
    games: GamesService
    ttl_seconds: int = 30 * 60

    standings_cache: TTLCache = field(default_factory=lambda: TTLCache("standings"))
    schedule_cache: TTLCache = field(default_factory=lambda: TTLCache("schedule"))
    team_schedule_cache: TTLCache = field(default_factory=lambda: TTLCache("team-schedule"))

    # --- Standings ---

    def get_standings(self, division_key: str, tier_key: str, force_refresh: bool = False) -> StandingsSnapshot:
        """
        Return standings for a partition.

        Raises:
            ConfigurationError: unknown division/tier.
            ScrapeError: the scrape failed and nothing was ever cached for this partition.
        """
        partition = self.partitions.require(division_key, tier_key)
        entry = self.standings_cache.get_or_refresh(
            key=partition.key,
            ttl_seconds=self.ttl_seconds,
            loader=lambda: self.orchestrator.scrape_partition_standings(partition),
            force=force_refresh,
        )
        return entry.value

    # --- Comprehensive schedule ---

    def _load_schedule(self, partition: Partition) -> ScheduleSnapshot:
        games = self.orchestrator.scrape_partition_schedule(partition)
        return ScheduleSnapshot(
            partition_key=partition.key,
            games=tuple(games),
            captured_at=datetime.now(tz=self.games.app_tz),
        )

    def _schedule(self, partition: Partition, force_refresh: bool = False) -> ScheduleSnapshot:
        entry = self.schedule_cache.get_or_refresh(
            key=partition.key,
            ttl_seconds=self.ttl_seconds,
            loader=lambda: self._load_schedule(partition),
            force=force_refresh,
        )
        return entry.value

    def get_partition_schedule(self, division_key: str, tier_key: str, force_refresh: bool = False) -> ScheduleSnapshot:
        """Return every game of a partition."""
        partition = self.partitions.require(division_key, tier_key)
        return self._schedule(partition, force_refresh=force_refresh)

    # --- Derived team schedule ---

    def _derive_team_schedule(self, partition: Partition, team_code: str) -> EntitySchedule:
        snapshot = self._schedule(partition)
        now = datetime.now(tz=self.games.app_tz)
        schedules = self.games.process_schedule(snapshot.games, now=now)
        if team_code not in schedules:
            raise _UnknownTeam(self.games.empty_schedule(team_code, now=now))
        return schedules[team_code]

    def get_entity_schedule(
        self,
        team_code: str,
        division_key: str,
        tier_key: str,
        force_refresh: bool = False,
    ) -> EntitySchedule:
        """
        Return one team's schedule.

        Lookup order: team cache, then the partition's schedule cache, then a
        schedule scrape. force_refresh only bypasses the team cache.

        A team code missing from the partition schedule gets an empty schedule
        that is never cached, so arbitrary codes cannot grow the team table.
        """
        partition = self.partitions.require(division_key, tier_key)
        try:
            entry = self.team_schedule_cache.get_or_refresh(
                key=(partition.key, team_code),
                ttl_seconds=self.ttl_seconds,
                loader=lambda: self._derive_team_schedule(partition, team_code),
                force=force_refresh,
            )
        except _UnknownTeam as exc:
            logger.warning(f"No schedule data found for team {team_code} in {partition.key}")
            return exc.schedule
        return entry.value

    def _store_team_schedule(self, key: Tuple[str, str], schedule: EntitySchedule) -> None:
        """
        Write a derived schedule through the key's single-flight slot.

        If the write joined a reader's derivation, that result may come from an
        older partition snapshot, so the write is repeated once the reader's
        flight has finished.
        """
        for _ in range(2):
            try:
                entry = self.team_schedule_cache.get_or_refresh(
                    key=key,
                    ttl_seconds=self.ttl_seconds,
                    loader=lambda: schedule,
                    force=True,
                )
            except (YSBAError, _UnknownTeam):
                continue
            if entry.value is schedule:
                return

    def prewarm_entity_schedules(self, division_key: str, tier_key: str, force_refresh: bool = False) -> int:
        """
        Derive and store every team's schedule from one partition schedule.

        Returns the number of team schedules stored.
        """
        partition = self.partitions.require(division_key, tier_key)
        snapshot = self._schedule(partition, force_refresh=force_refresh)
        schedules = self.games.process_schedule(snapshot.games)
        for code, schedule in schedules.items():
            self._store_team_schedule((partition.key, code), schedule)
        logger.info(f"Pre-warmed {len(schedules)} team schedules for {partition.key}")
        return len(schedules)

    # --- Status ---

    def _table_status(self, cache: TTLCache, count_fn) -> Dict[str, Any]:
        now = time.time()
        out: Dict[str, Any] = {}
        for key, entry in cache.items():
            name = "/".join(key) if isinstance(key, tuple) else str(key)
            out[name] = {
                "cacheAge": int(entry.age(now)),
                "fresh": entry.is_fresh(self.ttl_seconds, now),
                "refreshing": cache.in_flight(key),
                "lastUpdated": datetime.fromtimestamp(entry.ts, tz=self.games.app_tz).isoformat(),
                "count": count_fn(entry.value),
            }
        return out

    def status(self) -> Dict[str, Any]:
        """Cache ages and sizes for the operational status endpoint."""
        return {
            "cacheDuration": self.ttl_seconds,
            "standings": self._table_status(self.standings_cache, lambda v: len(v.rows)),
            "schedules": self._table_status(self.schedule_cache, lambda v: len(v.games)),
            "teamSchedules": self._table_status(self.team_schedule_cache, lambda v: len(v.all_games)),
        }

    def partition_keys(self) -> Tuple[Tuple[str, str], ...]:
        return tuple((p.division_key, p.tier_key) for p in self.partitions.all())
