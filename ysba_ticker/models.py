# ysba_ticker/models.py
"""
Domain models for the standings/schedule engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class Partition:
    """One (division, tier) table on the YSBA site and the form values that select it."""
    division_key: str
    tier_key: str
    division_value: str
    tier_value: str
    display_name: str

    @property
    def key(self) -> str:
        return f"{self.division_key}/{self.tier_key}"


@dataclass(frozen=True)
class StandingRow:
    """A single team row for standings display."""
    position: int
    team: str
    team_code: str
    games_played: int
    wins: int
    losses: int
    ties: int
    points: int
    runs_for: int
    runs_against: int
    win_percentage: str

    @property
    def run_differential(self) -> int:
        return self.runs_for - self.runs_against


@dataclass(frozen=True)
class StandingsSnapshot:
    """Standings for one partition as captured by one scrape."""
    partition_key: str
    rows: Sequence[StandingRow]
    captured_at: datetime


@dataclass(frozen=True)
class GameRecord:
    """
    A normalized schedule row.

    `date` is None when the source date text could not be parsed; the raw text
    is always kept in `date_text`.
    """
    date: Optional[datetime]
    date_text: str
    time_text: str
    home_team: str
    home_code: str
    away_team: str
    away_code: str
    home_score: Optional[int]
    away_score: Optional[int]
    completed: bool
    venue: str
    score_text: str
    division: str = ""
    tier: str = ""

    @property
    def key(self) -> Tuple[str, str, str]:
        """Identity used when a later record supersedes an earlier one (no game id on the source)."""
        when = self.date.isoformat() if self.date else f"{self.date_text} {self.time_text}".strip()
        return (when, self.home_code, self.away_code)


@dataclass(frozen=True)
class TeamGame:
    """A game from one team's point of view."""
    game: GameRecord
    opponent: str
    opponent_code: str
    is_home: bool
    team_score: Optional[int]
    opponent_score: Optional[int]

    @property
    def result(self) -> str:
        """Return "W", "L" or "T" for completed games, otherwise ""."""
        if not self.game.completed or self.team_score is None or self.opponent_score is None:
            return ""
        if self.team_score > self.opponent_score:
            return "W"
        if self.team_score < self.opponent_score:
            return "L"
        return "T"


@dataclass(frozen=True)
class EntitySchedule:
    """All of one team's games, split into played and upcoming."""
    team_code: str
    all_games: Sequence[TeamGame]
    played_games: Sequence[TeamGame]
    upcoming_games: Sequence[TeamGame]
    generated_at: datetime


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Every game of one partition as captured by one scrape."""
    partition_key: str
    games: Sequence[GameRecord]
    captured_at: datetime


@dataclass(frozen=True)
class RawStandingRow:
    """Cell texts of one standings table row, plus the href of the first anchor in each cell."""
    cells: Sequence[str]
    hrefs: Sequence[Optional[str]] = field(default_factory=tuple)


@dataclass(frozen=True)
class RawGameRow:
    """Cell texts of one schedule table row."""
    date_text: str = ""
    time_text: str = ""
    division: str = ""
    tier: str = ""
    away_text: str = ""
    home_text: str = ""
    venue: str = ""
    score_text: str = ""

    @classmethod
    def from_cells(cls, cells: Sequence[str]) -> "RawGameRow":
        """
        Build from the schedule grid's column order:
          Date | Time | Division | Game Tier | Visitor | Home | Location | Result
        """
        padded = [c.strip() for c in cells] + [""] * max(0, 8 - len(cells))
        return cls(
            date_text=padded[0],
            time_text=padded[1],
            division=padded[2],
            tier=padded[3],
            away_text=padded[4],
            home_text=padded[5],
            venue=padded[6],
            score_text=padded[7],
        )
