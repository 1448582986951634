# tests/helpers.py

from concurrent.futures import Future
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from dateutil import tz

from ysba_ticker.config import AppConfig
from ysba_ticker.errors import NavigationError
from ysba_ticker.models import GameRecord, StandingRow, StandingsSnapshot

TORONTO = tz.gettz("America/Toronto")


def make_config(**overrides) -> AppConfig:
    """AppConfig with fast, deterministic scrape settings."""
    values = dict(
        max_retries=3,
        retry_backoff_seconds=0.0,
        settle_delay_ms=0,
        pagination_delay_ms=0,
        block_assets=False,
        refresh_enabled=False,
        refresh_on_start=False,
    )
    values.update(overrides)
    return AppConfig(**values)


def local(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=TORONTO)


# -------------------------
# HTML builders
# -------------------------

STANDINGS_HEADER = "<tr><th>Pos</th><th>Team</th><th>GP</th><th>W</th><th>L</th><th>T</th><th>PTS</th><th>RF</th><th>RA</th></tr>"
SCHEDULE_HEADER = (
    "<tr><td>Date</td><td>Time</td><td>Division</td><td>Game Tier</td>"
    "<td>Visitor</td><td>Home</td><td>Location</td><td>Result</td></tr>"
)


def standings_row(pos, code, name, gp, w, l, t, pts, rf, ra) -> str:
    team = f'<a href="TeamPage.aspx?tmcd={code}">{name}</a>' if code else name
    values = "".join(f"<td>{v}</td>" for v in (gp, w, l, t, pts, rf, ra))
    return f"<tr><td>{pos}</td><td>{team}</td>{values}</tr>"


def standings_html(rows: Sequence[str], header: str = STANDINGS_HEADER) -> str:
    return f'<html><body><table id="dgGrid">{header}{"".join(rows)}</table></body></html>'


def game_row(date, time, away, home, result="", venue="Bond Lake Park") -> str:
    cells = (date, time, "9U", "Select", away, home, venue, result)
    return "<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>"


def schedule_html(rows: Sequence[str], pager: bool = False) -> str:
    pager_row = '<tr><td colspan="8"><a href="javascript:__doPostBack(\'dgGrid$ctl104$ctl02\',\'\')">2</a></td></tr>' if pager else ""
    return f'<html><body><table id="dgGrid">{SCHEDULE_HEADER}{"".join(rows)}{pager_row}</table></body></html>'


# -------------------------
# Playwright fakes
# -------------------------

class FakeLink:
    def __init__(self, page: "FakePage") -> None:
        self.page = page

    def click(self) -> None:
        self.page.calls.append(("click-next",))
        self.page.page_index += 1


class FakePage:
    """
    Records form interactions and serves one HTML document per grid page.

    A page-2 link exists while there are more documents left to serve.
    """

    def __init__(self, pages: Sequence[str], fail_on: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.pages = list(pages)
        self.page_index = 0
        self.calls: List[tuple] = []
        self.fail_on = fail_on
        self.error = error

    def _maybe_fail(self, name: str) -> None:
        if self.fail_on == name:
            raise self.error

    def set_default_timeout(self, ms) -> None:
        self.calls.append(("set_default_timeout", ms))

    def route(self, pattern, handler) -> None:
        self.calls.append(("route", pattern))

    def goto(self, url, wait_until=None, timeout=None) -> None:
        self.calls.append(("goto", url))
        self._maybe_fail("goto")

    def wait_for_selector(self, selector, timeout=None) -> None:
        self.calls.append(("wait_for_selector", selector))
        self._maybe_fail("wait_for_selector")

    def select_option(self, selector, value) -> None:
        self.calls.append(("select_option", selector, value))

    def wait_for_timeout(self, ms) -> None:
        self.calls.append(("wait_for_timeout", ms))

    def click(self, selector) -> None:
        self.calls.append(("click", selector))

    def content(self) -> str:
        return self.pages[self.page_index]

    def query_selector(self, selector):
        if self.page_index + 1 < len(self.pages):
            return FakeLink(self)
        return None


class FakeContext:
    def __init__(self, page: FakePage) -> None:
        self.page = page
        self.closed = False

    def new_page(self) -> FakePage:
        return self.page

    def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Hands out a fresh FakePage per context from a factory."""

    def __init__(self, page_factory=None) -> None:
        self.page_factory = page_factory
        self.contexts: List[FakeContext] = []
        self.connected = True
        self.closed = False

    def new_context(self, **kwargs) -> FakeContext:
        ctx = FakeContext(self.page_factory())
        self.contexts.append(ctx)
        return ctx

    def is_connected(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.closed = True
        self.connected = False


class InlineCoordinator:
    """Runs each operation immediately on the calling thread."""

    def __init__(self, browser: FakeBrowser) -> None:
        self.browser = browser
        self.labels: List[str] = []

    def submit(self, op, label="browser operation") -> Future:
        self.labels.append(label)
        fut: Future = Future()
        try:
            fut.set_result(op(self.browser))
        except Exception as exc:
            fut.set_exception(exc)
        return fut


# -------------------------
# Cache manager fakes
# -------------------------

def standing(code):
    return StandingRow(
        position=1,
        team=f"Team {code}",
        team_code=code,
        games_played=1,
        wins=1,
        losses=0,
        ties=0,
        points=2,
        runs_for=5,
        runs_against=1,
        win_percentage="1.000",
    )


def scheduled(home, away, days_from_now):
    return GameRecord(
        date=datetime.now(tz=TORONTO) + timedelta(days=days_from_now),
        date_text="",
        time_text="",
        home_team=f"Team {home}",
        home_code=home,
        away_team=f"Team {away}",
        away_code=away,
        home_score=None,
        away_score=None,
        completed=False,
        venue="",
        score_text="",
    )


class FakeOrchestrator:
    def __init__(self, games=None, coordinator=None):
        self.coordinator = coordinator
        self.standings_calls = 0
        self.schedule_calls = 0
        self.fail = False
        self.gate = None
        self.games = games if games is not None else [
            scheduled("511112", "511113", -7),
            scheduled("511113", "511108", 7),
        ]

    def scrape_partition_standings(self, partition):
        self.standings_calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail:
            raise NavigationError("site unreachable")
        return StandingsSnapshot(
            partition_key=partition.key,
            rows=(standing("511113"),),
            captured_at=datetime.now(tz=TORONTO),
        )

    def scrape_partition_schedule(self, partition):
        self.schedule_calls += 1
        if self.fail:
            raise NavigationError("site unreachable")
        return list(self.games)
