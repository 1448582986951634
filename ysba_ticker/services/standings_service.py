# ysba_ticker/services/standings_service.py
"""
Standings logic.

Responsibilities:
  - resolve a team code for each raw grid row
  - pick a display name (canonical table first, site text second)
  - compute win percentage (ties count as half a win)
  - sort and assign positions
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
import logging
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..models import RawStandingRow, StandingRow

logger = logging.getLogger(__name__)

MIN_STANDINGS_CELLS = 7
HREF_CODE_RE = re.compile(r"tmcd=(\d+)")
TEXT_CODE_RE = re.compile(r"\b(5\d{5})\b")
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

SortKey = Callable[[StandingRow], Tuple]


def safe_int(v, default: Optional[int] = 0) -> Optional[int]:
    """Parse the leading integer of a cell's text; return default on failures."""
    if isinstance(v, int):
        return v
    m = LEADING_INT_RE.match(str(v or ""))
    return int(m.group(1)) if m else default


def win_percentage(wins: int, losses: int, ties: int, games_played: Optional[int] = None) -> str:
    """
    Win percentage with ties counted as half a win, formatted to 3 decimals.

    The denominator is the larger of W+L+T and the site's GP column; "0.000" when
    W+L+T is zero. Rounds half up (0.0625 -> "0.063").
    """
    total = wins + losses + ties
    if total <= 0:
        return "0.000"
    denominator = max(total, games_played or 0)
    pct = Decimal(2 * wins + ties) / Decimal(2 * denominator)
    return str(pct.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))


def default_sort_key(row: StandingRow) -> Tuple:
    """Points, then win %, then run differential (all descending)."""
    return (row.points, float(row.win_percentage), row.run_differential)


@dataclass
class StandingsService:
    """Turns raw standings grid rows into ranked StandingRow values."""

    team_names: Mapping[str, str] = field(default_factory=dict)

    def _team_code(self, raw: RawStandingRow, index: int) -> str:
        """
        Team code lookup order:
          1) tmcd=NNN in the first cell's link
          2) tmcd=NNN in the second cell's link
          3) a 5xxxxx code anywhere in the first three cells' text
          4) unknown-{index}
        """
        for href in list(raw.hrefs[:2]):
            m = HREF_CODE_RE.search(href or "")
            if m:
                return m.group(1)

        for text in raw.cells[:3]:
            m = TEXT_CODE_RE.search(text or "")
            if m:
                return m.group(1)

        return f"unknown-{index}"

    def _team_name(self, raw: RawStandingRow, code: Optional[str], index: int) -> str:
        """Canonical table, then second cell, then first cell, then a placeholder."""
        if code and code in self.team_names:
            return self.team_names[code]
        for i in (1, 0):
            if len(raw.cells) > i and raw.cells[i].strip():
                return raw.cells[i].strip()
        return f"Team {code or index}"

    def _normalize_row(self, raw: RawStandingRow, index: int) -> Optional[StandingRow]:
        cells = list(raw.cells)
        if len(cells) < MIN_STANDINGS_CELLS:
            return None

        code = self._team_code(raw, index)
        known_code = None if code.startswith("unknown-") else code

        # GP, W, L, T, PTS, RF, RA
        values = cells[2:9] + [""] * (9 - len(cells))
        gp_source = safe_int(values[0], None)
        wins = safe_int(values[1])
        losses = safe_int(values[2])
        ties = safe_int(values[3])
        total = wins + losses + ties

        return StandingRow(
            position=index,
            team=self._team_name(raw, known_code, index),
            team_code=code,
            games_played=gp_source if gp_source is not None else total,
            wins=wins,
            losses=losses,
            ties=ties,
            points=safe_int(values[4]),
            runs_for=safe_int(values[5]),
            runs_against=safe_int(values[6]),
            win_percentage=win_percentage(wins, losses, ties, gp_source),
        )

    def normalize(self, raw_rows: Sequence[RawStandingRow], sort_key: Optional[SortKey] = None) -> List[StandingRow]:
        """
        Normalize, sort (descending by sort_key, stable) and re-number positions from 1.

        Rows with too few cells are dropped; nothing here raises.
        """
        rows: List[StandingRow] = []
        skipped = 0
        for i, raw in enumerate(raw_rows, start=1):
            row = self._normalize_row(raw, i)
            if row is None:
                skipped += 1
                continue
            rows.append(row)

        if skipped:
            logger.debug(f"Skipped {skipped} standings rows with fewer than {MIN_STANDINGS_CELLS} cells")

        rows.sort(key=sort_key or default_sort_key, reverse=True)
        return [
            replace(r, position=pos)
            for pos, r in enumerate(rows, start=1)
        ]


def normalize_standings(
    raw_rows: Sequence[RawStandingRow],
    team_names: Optional[Dict[str, str]] = None,
    sort_key: Optional[SortKey] = None,
) -> List[StandingRow]:
    """Module-level shortcut for StandingsService(team_names).normalize(...)."""
    return StandingsService(team_names=team_names or {}).normalize(raw_rows, sort_key=sort_key)
