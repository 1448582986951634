# ysba_ticker/scraper.py
"""
YSBA scrape orchestration.

Each scrape attempt is one queued browser operation: navigate, select the
division and the second form value, search, wait for the grid, and pull the
grid's HTML into raw rows. Normalization runs after the operation returns, off
the browser thread.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
import logging
import time
from typing import Any, Callable, Iterator, List, Tuple, TypeVar

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .browser import SessionCoordinator
from .config import (
    CATEGORY_SELECT,
    DIVISION_SELECT,
    NEXT_PAGE_LINK,
    RESULTS_TABLE,
    SEARCH_BUTTON,
    TIER_SELECT,
    AppConfig,
)
from .errors import NavigationError, ScrapeError, ScrapeTimeoutError
from .extract import extract_game_rows, extract_standings_rows
from .models import GameRecord, Partition, RawGameRow, RawStandingRow, StandingsSnapshot
from .services.games_service import GamesService
from .services.standings_service import StandingsService

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOCKED_RESOURCE_TYPES = ("image", "stylesheet", "font")


def _block_assets(route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        route.abort()
    else:
        route.continue_()


def dedupe_games(games: List[GameRecord]) -> List[GameRecord]:
    """Keep the last record for each (date, home, away) key, in first-seen order."""
    by_key = {}
    for g in games:
        by_key[g.key] = g
    seen = set()
    out: List[GameRecord] = []
    for g in games:
        if g.key in seen:
            continue
        seen.add(g.key)
        out.append(by_key[g.key])
    return out


class ScrapeOrchestrator:
    """Runs partition scrapes through the coordinator, with retries."""

    def __init__(
        self,
        cfg: AppConfig,
        coordinator: SessionCoordinator,
        standings: StandingsService,
        games: GamesService,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cfg = cfg
        self.coordinator = coordinator
        self.standings = standings
        self.games = games
        self._sleep = sleep

    # --- Main entry points ---

    def scrape_partition_standings(self, partition: Partition) -> StandingsSnapshot:
        """Scrape and normalize one partition's standings grid."""
        logger.info(
            f"Scraping standings for {partition.key} "
            f"(YSBA: {partition.division_value}/{partition.tier_value})"
        )
        label = f"scrape-standings-{partition.division_key}-{partition.tier_key}"
        raw = self._with_retries(
            label,
            lambda: self.coordinator.submit(
                lambda browser: self._standings_operation(browser, partition),
                label,
            ).result(),
        )
        rows = self.standings.normalize(raw)
        logger.info(f"Successfully scraped {len(rows)} teams for {partition.key}")
        return StandingsSnapshot(
            partition_key=partition.key,
            rows=tuple(rows),
            captured_at=datetime.now(tz=self.games.app_tz),
        )

    def scrape_partition_schedule(self, partition: Partition) -> List[GameRecord]:
        """Scrape and normalize every game on one division's schedule (both grid pages)."""
        logger.info(f"Scraping schedule for {partition.key} (YSBA: {partition.division_value})")
        label = f"scrape-schedule-{partition.division_key}-{partition.tier_key}"
        raw = self._with_retries(
            label,
            lambda: self.coordinator.submit(
                lambda browser: self._schedule_operation(browser, partition),
                label,
            ).result(),
        )
        games = dedupe_games(self.games.normalize_games(raw))
        logger.info(f"Successfully scraped {len(games)} games for {partition.key}")
        return games

    # --- Retry policy ---

    def _with_retries(self, label: str, attempt_fn: Callable[[], T]) -> T:
        """
        Run attempt_fn up to max_retries times with a linearly increasing delay.

        Only ScrapeError is retried; the last one propagates.
        """
        attempts = max(1, self.cfg.max_retries)
        attempt = 1
        while True:
            try:
                return attempt_fn()
            except ScrapeError as exc:
                logger.warning(f"[{label}] attempt {attempt}/{attempts} failed: {exc}")
                if attempt >= attempts:
                    raise
            self._sleep(self.cfg.retry_backoff_seconds * attempt)
            attempt += 1

    # --- Browser operations (run on the coordinator's worker thread) ---

    def _standings_operation(self, browser, partition: Partition) -> List[RawStandingRow]:
        with self._page(browser) as page:
            self._search(
                page,
                self.cfg.standings_url,
                first=(DIVISION_SELECT, partition.division_value),
                second=(TIER_SELECT, partition.tier_value),
            )
            logger.info("Extracting standings data...")
            return extract_standings_rows(page.content())

    def _schedule_operation(self, browser, partition: Partition) -> List[RawGameRow]:
        with self._page(browser) as page:
            # The schedule form has a category select where the standings form has a tier select.
            self._search(
                page,
                self.cfg.schedule_url,
                first=(DIVISION_SELECT, partition.division_value),
                second=(CATEGORY_SELECT, self.cfg.schedule_category),
            )
            logger.info("Extracting games from page 1...")
            rows = extract_game_rows(page.content())
            rows.extend(self._next_page_rows(page))
            return rows

    def _next_page_rows(self, page) -> List[RawGameRow]:
        """Rows from the grid's second page, or [] when there is none or it fails to load."""
        try:
            link = page.query_selector(NEXT_PAGE_LINK)
            if link is None:
                logger.info("No page 2 found, continuing with page 1 data")
                return []
            logger.info("Found page 2, clicking to load more games...")
            link.click()
            page.wait_for_selector(RESULTS_TABLE, timeout=self.cfg.selector_timeout_ms)
            page.wait_for_timeout(self.cfg.pagination_delay_ms)
            logger.info("Extracting games from page 2...")
            return extract_game_rows(page.content())
        except (PlaywrightError, ScrapeError) as exc:
            logger.warning(f"Error handling pagination, continuing with page 1 data: {exc}")
            return []

    def _search(self, page, url: str, first: Tuple[str, str], second: Tuple[str, str]) -> None:
        """Navigate, fill both selects (the second is populated by the first's postback), and search."""
        logger.info(f"Navigating to {url}...")
        page.goto(
            url,
            wait_until="domcontentloaded" if self.cfg.production else "networkidle",
            timeout=self.cfg.navigation_timeout_ms,
        )
        page.wait_for_selector(DIVISION_SELECT, timeout=self.cfg.selector_timeout_ms)

        logger.info(f"Selecting {first[0]} = {first[1]}...")
        page.select_option(first[0], first[1])
        page.wait_for_timeout(self.cfg.settle_delay_ms)

        logger.info(f"Selecting {second[0]} = {second[1]}...")
        page.select_option(second[0], second[1])

        logger.info("Clicking search button...")
        page.click(SEARCH_BUTTON)
        page.wait_for_selector(RESULTS_TABLE, timeout=self.cfg.results_timeout_ms)

    @contextmanager
    def _page(self, browser) -> Iterator[Any]:
        """
        A fresh browser context + page, closed on exit.

        Playwright errors raised inside the block surface as NavigationError /
        ScrapeTimeoutError.
        """
        width, height = self.cfg.viewport
        try:
            context = browser.new_context(
                user_agent=self.cfg.user_agent,
                viewport={"width": width, "height": height},
            )
        except PlaywrightError as exc:
            raise NavigationError(f"Could not open browser context: {exc}") from exc

        try:
            page = context.new_page()
            page.set_default_timeout(self.cfg.navigation_timeout_ms)
            if self.cfg.block_assets:
                page.route("**/*", _block_assets)
            yield page
        except PlaywrightTimeoutError as exc:
            raise ScrapeTimeoutError(f"Timed out: {exc}") from exc
        except PlaywrightError as exc:
            raise NavigationError(f"Navigation failed: {exc}") from exc
        finally:
            try:
                context.close()
            except PlaywrightError as exc:
                logger.warning(f"Error closing browser context: {exc}")
