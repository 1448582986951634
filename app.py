# app.py
"""
Flask entrypoint for the YSBA standings service.

Routes (JSON):
  - /api/divisions
  - /api/standings/<division>/<tier>              (?refresh=1 forces a scrape)
  - /api/schedule/<division>/<tier>               (every game in the partition)
  - /api/schedule/<division>/<tier>/<team_code>   (one team's played/upcoming games)
  - /api/status
  - /health

Notes:
  - The app owns the single browser session; run it with ONE gunicorn worker
    (threads are fine), via the factory: gunicorn -w 1 --threads 8 "app:create_app()"
  - Unknown division/tier -> 404. A partition that has never been scraped
    successfully and fails to scrape -> 503; afterwards stale data is served.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from ysba_ticker.browser import BrowserSession, SessionCoordinator
from ysba_ticker.config import AppConfig
from ysba_ticker.errors import ConfigurationError, ScrapeError
from ysba_ticker.models import EntitySchedule, GameRecord, StandingRow, TeamGame
from ysba_ticker.partitions import DIVISIONS, PartitionTable
from ysba_ticker.refresher import PeriodicRefresher
from ysba_ticker.scraper import ScrapeOrchestrator
from ysba_ticker.services import GamesService, StandingsService
from ysba_ticker.services.cache_manager import CacheManager
from ysba_ticker.teams import team_name_table

logger = logging.getLogger(__name__)


def build_manager(cfg: AppConfig) -> CacheManager:
    """
    Wire the engine: browser session -> coordinator -> orchestrator -> cache manager.

    Built once per process.
    """
    partitions = PartitionTable.from_mapping(cfg.partitions or DIVISIONS)
    games = GamesService(tz_name=cfg.tz, year_rollover_days=cfg.year_rollover_days)
    standings = StandingsService(team_names=team_name_table(cfg.team_names))

    coordinator = SessionCoordinator(BrowserSession(cfg), maxsize=cfg.queue_size)
    atexit.register(coordinator.close, 10)

    orchestrator = ScrapeOrchestrator(cfg, coordinator, standings, games)
    return CacheManager(
        partitions=partitions,
        orchestrator=orchestrator,
        games=games,
        ttl_seconds=cfg.cache_ttl_seconds,
    )


def _refresh_targets(cfg: AppConfig, manager: CacheManager):
    """Parse REFRESH_PARTITIONS ("division/tier" strings), keeping only known partitions."""
    targets = []
    for item in cfg.refresh_partitions:
        div, _, tier = item.partition("/")
        if manager.partitions.resolve(div, tier) is None:
            logger.warning(f"Ignoring unknown refresh partition: {item}")
            continue
        targets.append((div, tier))
    return targets


def create_app(cfg: Optional[AppConfig] = None, manager: Optional[CacheManager] = None) -> Flask:
    """
    App factory.

    Builds the shared engine once per process and, unless disabled, starts the
    periodic refresher.
    """
    cfg = cfg or AppConfig()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if manager is None:
        manager = build_manager(cfg)
        if cfg.refresh_enabled:
            refresher = PeriodicRefresher(
                manager,
                interval_seconds=cfg.refresh_interval_minutes * 60,
                partitions=_refresh_targets(cfg, manager),
            )
            refresher.start(run_immediately=cfg.refresh_on_start)

    app = Flask(__name__)

    # -------------------------
    # Shared parsing helpers
    # -------------------------

    def parse_bool(name: str, default: bool = False) -> bool:
        """
        Parse a boolean-ish query param.

        Treats these as false: 0, false, no, off
        """
        raw = request.args.get(name)
        if raw is None:
            return default
        return raw.strip().lower() not in ("0", "false", "no", "off")

    # -------------------------
    # Serializers
    # -------------------------

    def standings_row_to_dict(s: StandingRow) -> Dict[str, Any]:
        """Serialize a StandingRow model into JSON-safe primitives."""
        return {
            "position": s.position,
            "team": s.team,
            "teamCode": s.team_code,
            "gamesPlayed": s.games_played,
            "wins": s.wins,
            "losses": s.losses,
            "ties": s.ties,
            "points": s.points,
            "runsFor": s.runs_for,
            "runsAgainst": s.runs_against,
            "runDifferential": s.run_differential,
            "winPercentage": s.win_percentage,
        }

    def game_to_dict(g: GameRecord) -> Dict[str, Any]:
        """Serialize a GameRecord model into JSON-safe primitives."""
        return {
            "date": g.date.isoformat() if g.date else None,
            "dateText": g.date_text,
            "time": g.time_text,
            "homeTeam": g.home_team,
            "homeTeamCode": g.home_code,
            "awayTeam": g.away_team,
            "awayTeamCode": g.away_code,
            "homeScore": g.home_score,
            "awayScore": g.away_score,
            "location": g.venue,
            "division": g.division,
            "gameTier": g.tier,
            "isCompleted": g.completed,
            "scoreText": g.score_text,
        }

    def team_game_to_dict(t: TeamGame) -> Dict[str, Any]:
        out = game_to_dict(t.game)
        out.update(
            {
                "opponent": t.opponent,
                "opponentCode": t.opponent_code,
                "isHome": t.is_home,
                "teamScore": t.team_score,
                "opponentScore": t.opponent_score,
                "result": t.result,
            }
        )
        return out

    def team_schedule_to_dict(s: EntitySchedule) -> Dict[str, Any]:
        return {
            "teamCode": s.team_code,
            "allGames": [team_game_to_dict(g) for g in s.all_games],
            "playedGames": [team_game_to_dict(g) for g in s.played_games],
            "upcomingGames": [team_game_to_dict(g) for g in s.upcoming_games],
            "lastUpdated": s.generated_at.isoformat(),
        }

    # -------------------------
    # Errors
    # -------------------------

    @app.errorhandler(ConfigurationError)
    def handle_configuration_error(exc: ConfigurationError):
        return jsonify({"error": "Invalid division/tier", "message": str(exc)}), 404

    @app.errorhandler(ScrapeError)
    def handle_scrape_error(exc: ScrapeError):
        logger.error(f"Request failed with no cached data: {exc}")
        return jsonify({"error": "Failed to fetch data", "message": str(exc)}), 503

    # -------------------------
    # JSON routes
    # -------------------------

    @app.get("/api/divisions")
    def api_divisions():
        """List configured divisions and their tiers."""
        return jsonify({"divisions": manager.partitions.divisions()})

    @app.get("/api/standings/<division>/<tier>")
    def api_standings(division: str, tier: str):
        """
        Standings for one division/tier.

        Query:
          - refresh=1 (bypass the cache)
        """
        partition = manager.partitions.require(division, tier)
        snapshot = manager.get_standings(division, tier, force_refresh=parse_bool("refresh"))
        return jsonify(
            {
                "division": division,
                "tier": tier,
                "displayName": partition.display_name,
                "lastUpdated": snapshot.captured_at.isoformat(),
                "teams": [standings_row_to_dict(r) for r in snapshot.rows],
            }
        )

    @app.get("/api/schedule/<division>/<tier>")
    def api_schedule(division: str, tier: str):
        """Every game in the division's schedule."""
        snapshot = manager.get_partition_schedule(division, tier, force_refresh=parse_bool("refresh"))
        return jsonify(
            {
                "division": division,
                "tier": tier,
                "lastUpdated": snapshot.captured_at.isoformat(),
                "totalGames": len(snapshot.games),
                "allGames": [game_to_dict(g) for g in snapshot.games],
            }
        )

    @app.get("/api/schedule/<division>/<tier>/<team_code>")
    def api_team_schedule(division: str, tier: str, team_code: str):
        """One team's schedule split into played and upcoming games."""
        schedule = manager.get_entity_schedule(team_code, division, tier, force_refresh=parse_bool("refresh"))
        out = team_schedule_to_dict(schedule)
        out.update({"division": division, "tier": tier})
        return jsonify(out)

    @app.get("/api/status")
    def api_status():
        """Cache ages and queue depth."""
        out = manager.status()
        coordinator = manager.orchestrator.coordinator
        out["browser"] = {"state": coordinator.state.value, "pending": coordinator.pending}
        return jsonify(out)

    # -------------------------
    # Health
    # -------------------------

    @app.get("/health")
    def health():
        """Simple health endpoint for Docker/monitoring checks."""
        return {"ok": True}

    return app


if __name__ == "__main__":
    # Dev server (not for production).
    create_app().run(host="0.0.0.0", port=int(os.getenv("PORT", "8000")), debug=False, threaded=True)
