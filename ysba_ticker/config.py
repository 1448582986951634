# ysba_ticker/config.py
"""
Configuration for the YSBA standings ticker.

This module centralizes all tunable settings (timezone, source URLs, cache TTL,
browser timeouts, retry policy, and the optional partition / team-name overrides).
Production deployments (APP_ENV=production) run on small containers, so page
timeouts are longer and settle delays shorter there.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from typing import Any, Dict, List, Optional, Tuple


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, returning default on missing/invalid values."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, returning default on missing/invalid values."""
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    """
    Read a boolean-ish environment variable.

    Treats these as false: 0, false, no, off
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off")


def _env_json(name: str, default):
    """
    Read a JSON environment variable and parse it.

    Intended for:
      - PARTITIONS_JSON: {"9U-select": {"displayName": "9U Select", "value": "13",
                          "tiers": {"all-tiers": {"displayName": "All Teams", "value": "__ALL__"}}}}
      - TEAM_NAMES_JSON: {"511113": "Richmond Hill Phoenix 9U DS", ...}

    Returns default on missing/invalid JSON.
    """
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return json.loads(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    """
    Read a comma-delimited string list from the environment.

    Example:
      BROWSER_ARGS="--single-process,--disable-features=site-per-process"
    """
    raw = os.getenv(name)
    if not raw:
        return default
    out = [x.strip() for x in raw.split(",") if x.strip()]
    return out or default


IS_PRODUCTION = os.getenv("APP_ENV", os.getenv("NODE_ENV", "")).strip().lower() == "production"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

# Chromium flags for running inside a container.
DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
]

# Page structure of the YSBA ASP.NET forms.
DIVISION_SELECT = 'select[name="ddlDivision"]'
TIER_SELECT = 'select[name="ddlTier"]'
CATEGORY_SELECT = 'select[name="ddlCategory"]'
SEARCH_BUTTON = "#cmdSearch"
RESULTS_TABLE = "#dgGrid"
NEXT_PAGE_LINK = 'a[href*="dgGrid$ctl104$ctl02"]'


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable app configuration.

    Notes on overrides:
      - partitions: optional replacement for the built-in division table.
      - team_names: merged over the built-in team-code -> name table.
    """

    # Core settings
    tz: str = os.getenv("TZ", "America/Toronto")
    production: bool = IS_PRODUCTION
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Source
    standings_url: str = os.getenv("YSBA_STANDINGS_URL", "https://www.yorksimcoebaseball.com/Club/xStanding.aspx")
    schedule_url: str = os.getenv("YSBA_SCHEDULE_URL", "https://www.yorksimcoebaseball.com/Club/xScheduleMM.aspx")
    schedule_category: str = os.getenv("SCHEDULE_CATEGORY", "1")  # Regular season

    # Cache controls (one TTL for all three tables)
    cache_ttl_seconds: int = _env_int("CACHE_TTL_SECONDS", 30 * 60)

    # Browser
    headless: bool = _env_bool("HEADLESS", True)
    user_agent: str = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)
    viewport: Tuple[int, int] = (1366, 768)
    block_assets: bool = _env_bool("BLOCK_ASSETS", IS_PRODUCTION)
    queue_size: int = _env_int("QUEUE_SIZE", 64)

    # Timeouts / delays (milliseconds)
    navigation_timeout_ms: int = _env_int("NAVIGATION_TIMEOUT_MS", 60000 if IS_PRODUCTION else 30000)
    selector_timeout_ms: int = _env_int("SELECTOR_TIMEOUT_MS", 10000)
    results_timeout_ms: int = _env_int("RESULTS_TIMEOUT_MS", 20000 if IS_PRODUCTION else 15000)
    settle_delay_ms: int = _env_int("SETTLE_DELAY_MS", 500 if IS_PRODUCTION else 1000)
    pagination_delay_ms: int = _env_int("PAGINATION_DELAY_MS", 1000 if IS_PRODUCTION else 2000)

    # Retry policy
    max_retries: int = _env_int("MAX_RETRIES", 3)
    retry_backoff_seconds: float = _env_float("RETRY_BACKOFF_SECONDS", 2.0)

    # Periodic refresh
    refresh_interval_minutes: int = _env_int("REFRESH_INTERVAL_MINUTES", 30)
    refresh_enabled: bool = _env_bool("REFRESH_ENABLED", True)
    refresh_on_start: bool = _env_bool("REFRESH_ON_START", True)
    refresh_partitions: List[str] = field(
        default_factory=lambda: _env_list("REFRESH_PARTITIONS", ["9U-select/all-tiers"])
    )

    # Dates without a year more than this many days in the past roll to next year
    year_rollover_days: int = _env_int("YEAR_ROLLOVER_DAYS", 182)

    browser_args: List[str] = field(default_factory=lambda: list(DEFAULT_BROWSER_ARGS))
    partitions: Optional[Dict[str, Any]] = None
    team_names: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """
        Override defaults from optional env vars.

        Supported env options:
          - BROWSER_ARGS (comma list, appended to the default Chromium flags)
          - PARTITIONS_JSON (JSON division table)
          - TEAM_NAMES_JSON (JSON dict of team code -> display name)
        """
        # dataclass frozen => use object.__setattr__
        extra_args = _env_list("BROWSER_ARGS", [])
        if extra_args:
            object.__setattr__(self, "browser_args", list(self.browser_args) + extra_args)

        if self.partitions is None:
            partitions_json = _env_json("PARTITIONS_JSON", None)
            if isinstance(partitions_json, dict) and partitions_json:
                object.__setattr__(self, "partitions", partitions_json)

        names_json = _env_json("TEAM_NAMES_JSON", None)
        if isinstance(names_json, dict) and all(isinstance(k, str) and isinstance(v, str) for k, v in names_json.items()):
            merged = dict(names_json)
            merged.update(self.team_names)
            object.__setattr__(self, "team_names", merged)
