# ysba_ticker/services/games_service.py
"""
Game schedule logic.

Responsibilities:
  - normalize raw schedule rows into GameRecord (team codes, dates, scores)
  - group games per team from each team's point of view
  - order each team's games and split them into played / upcoming
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from dateutil import parser as date_parser
from dateutil import tz

from ..models import EntitySchedule, GameRecord, RawGameRow, TeamGame

logger = logging.getLogger(__name__)

TEAM_TEXT_RE = re.compile(r"^\((\d+)\)\s*(.+)$")
SCORE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
YEAR_RE = re.compile(r"\b\d{4}\b")
BLANK_MARKERS = ("", "-")
_NO_DATE = datetime.min.replace(tzinfo=timezone.utc)


def split_team_text(text: str) -> Tuple[Optional[str], str]:
    """
    Split "(511108) Bradford Tigers 9U DS" into ("511108", "Bradford Tigers 9U DS").

    Returns (None, text) when there is no leading code.
    """
    t = (text or "").strip()
    m = TEAM_TEXT_RE.match(t)
    if not m:
        return None, t
    return m.group(1), m.group(2).strip()


def parse_score(score_text: str) -> Tuple[Optional[int], Optional[int], bool]:
    """
    Parse "A-B" (visitor first) into (away, home, completed).

    Anything else, including "-" and not-yet-played markers, is (None, None, False).
    """
    m = SCORE_RE.match(score_text or "")
    if not m:
        return None, None, False
    return int(m.group(1)), int(m.group(2)), True


def _try_parse(text: str) -> Optional[datetime]:
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


@dataclass
class GamesService:
    """Service responsible for game normalization and per-team schedules."""

    tz_name: str = "America/Toronto"
    year_rollover_days: int = 182

    @property
    def app_tz(self):
        """Return the configured timezone object used for all local conversions."""
        return tz.gettz(self.tz_name)

    def _now_local(self) -> datetime:
        """Return the current time in the app timezone."""
        return datetime.now(tz=self.app_tz)

    def _localize(self, dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self.app_tz)
        return dt.astimezone(self.app_tz)

    def _with_year(self, date_text: str, now: datetime) -> str:
        """
        Append a year to "Sat, May 3"-style text.

        The current year is used unless that puts the date more than
        year_rollover_days in the past, in which case the schedule has wrapped
        into next year.

        Rolling over as soon as a bare date is in the past would move every game
        already played this season into next year, so only dates older than the
        rollover window (default 182 days, about half a season cycle) wrap.
        """
        if YEAR_RE.search(date_text):
            return date_text

        this_year = f"{date_text}, {now.year}"
        candidate = _try_parse(this_year)
        if candidate is not None and (now.date() - candidate.date()).days > self.year_rollover_days:
            return f"{date_text}, {now.year + 1}"
        return this_year

    def parse_game_date(self, date_text: str, time_text: str, now: Optional[datetime] = None) -> Optional[datetime]:
        """
        Parse the grid's date (and time, when usable) into an aware datetime.

        Returns None when the date text cannot be parsed.
        """
        d = (date_text or "").strip()
        if d in BLANK_MARKERS:
            return None

        now = now or self._now_local()
        full = self._with_year(d, now)
        date_only = _try_parse(full)
        if date_only is None:
            logger.debug(f"Could not parse date: {date_text!r}")
            return None

        t = (time_text or "").strip()
        if t not in BLANK_MARKERS:
            with_time = _try_parse(f"{full} {t}")
            if with_time is not None:
                return self._localize(with_time)

        return self._localize(date_only)

    def normalize_game(self, raw: RawGameRow, now: Optional[datetime] = None) -> Optional[GameRecord]:
        """
        Normalize one schedule row.

        Returns None when either side lacks a "(code) Name" team text. Never raises.
        """
        away_code, away_name = split_team_text(raw.away_text)
        home_code, home_name = split_team_text(raw.home_text)
        if not away_code or not home_code:
            return None

        away_score, home_score, completed = parse_score(raw.score_text)

        return GameRecord(
            date=self.parse_game_date(raw.date_text, raw.time_text, now=now),
            date_text=raw.date_text.strip(),
            time_text=raw.time_text.strip(),
            home_team=home_name,
            home_code=home_code,
            away_team=away_name,
            away_code=away_code,
            home_score=home_score,
            away_score=away_score,
            completed=completed,
            venue=raw.venue.strip(),
            score_text=raw.score_text.strip(),
            division=raw.division.strip(),
            tier=raw.tier.strip(),
        )

    def normalize_games(self, raw_rows: Iterable[RawGameRow], now: Optional[datetime] = None) -> List[GameRecord]:
        """Normalize every row, dropping (and counting) the ones without team codes."""
        now = now or self._now_local()
        out: List[GameRecord] = []
        dropped = 0
        for raw in raw_rows:
            game = self.normalize_game(raw, now=now)
            if game is None:
                dropped += 1
                continue
            out.append(game)
        if dropped:
            logger.debug(f"Dropped {dropped} schedule rows without team codes")
        return out

    def process_schedule(self, games: Sequence[GameRecord], now: Optional[datetime] = None) -> Dict[str, EntitySchedule]:
        """
        Build every team's schedule from a flat game list.

        A single `now` is used for the whole call. Games are ordered by date;
        undated games keep their input order after the dated ones.
        """
        now = now or self._now_local()
        by_team: Dict[str, List[TeamGame]] = {}

        for g in games:
            by_team.setdefault(g.home_code, []).append(
                TeamGame(
                    game=g,
                    opponent=g.away_team,
                    opponent_code=g.away_code,
                    is_home=True,
                    team_score=g.home_score,
                    opponent_score=g.away_score,
                )
            )
            by_team.setdefault(g.away_code, []).append(
                TeamGame(
                    game=g,
                    opponent=g.home_team,
                    opponent_code=g.home_code,
                    is_home=False,
                    team_score=g.away_score,
                    opponent_score=g.home_score,
                )
            )

        out: Dict[str, EntitySchedule] = {}
        for code, team_games in by_team.items():
            team_games.sort(key=lambda x: (x.game.date is None, x.game.date or _NO_DATE))

            played = [x for x in team_games if is_played(x.game, now)]
            upcoming = [x for x in team_games if is_upcoming(x.game, now)]

            out[code] = EntitySchedule(
                team_code=code,
                all_games=tuple(team_games),
                played_games=tuple(played),
                upcoming_games=tuple(upcoming),
                generated_at=now,
            )

        return out

    def empty_schedule(self, team_code: str, now: Optional[datetime] = None) -> EntitySchedule:
        return EntitySchedule(
            team_code=team_code,
            all_games=(),
            played_games=(),
            upcoming_games=(),
            generated_at=now or self._now_local(),
        )


def is_played(game: GameRecord, now: datetime) -> bool:
    """Completed games are played regardless of date; otherwise a past date means played."""
    if game.completed:
        return True
    return game.date is not None and game.date < now


def is_upcoming(game: GameRecord, now: datetime) -> bool:
    return not game.completed and game.date is not None and game.date >= now


def normalize_game(raw: RawGameRow, now: Optional[datetime] = None) -> Optional[GameRecord]:
    """Module-level shortcut using the default timezone."""
    return GamesService().normalize_game(raw, now=now)


def process_schedule(games: Sequence[GameRecord], now: Optional[datetime] = None) -> Dict[str, EntitySchedule]:
    """Module-level shortcut using the default timezone."""
    return GamesService().process_schedule(games, now=now)
