# ysba_ticker/extract.py
"""
HTML -> raw row extraction.

This is the only parsing that looks at markup. It runs on `page.content()`
while the browser operation still owns the session and returns plain
RawStandingRow / RawGameRow values; all interpretation (codes, dates, scores,
win %) happens later in the services package.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from .errors import ExtractionError
from .models import RawGameRow, RawStandingRow

logger = logging.getLogger(__name__)

RESULTS_TABLE_ID = "dgGrid"
HEADER_WORDS = ("team", "gp", "wins", "name")
NON_DATA_WORDS = ("team", "name", "standing")
MIN_SCHEDULE_CELLS = 8


def _text(cell) -> str:
    """Cell text with whitespace collapsed."""
    return " ".join(cell.get_text().split())


def _results_table(html: str):
    soup = BeautifulSoup(html, "html.parser")
    table = soup.find(id=RESULTS_TABLE_ID)
    if table is None:
        raise ExtractionError("Results table not found")
    return table


def extract_standings_rows(html: str) -> List[RawStandingRow]:
    """
    Pull the standings grid into RawStandingRow values.

    Raises ExtractionError when the grid, its header row, or any data row is missing.
    """
    table = _results_table(html)
    rows = table.find_all("tr")
    if not rows:
        raise ExtractionError("No rows found in standings table")

    header = next(
        (
            r for r in rows
            if any(w in _text(c).lower() for c in r.find_all(["th", "td"]) for w in HEADER_WORDS)
        ),
        None,
    )
    if header is None:
        raise ExtractionError("Header row not found")

    out: List[RawStandingRow] = []
    for row in rows:
        first = row.find("td")
        if first is None:
            continue
        first_text = _text(first).lower()
        if not first_text or any(w in first_text for w in NON_DATA_WORDS):
            continue

        cells = row.find_all("td")
        hrefs: List[Optional[str]] = []
        for c in cells:
            a = c.find("a")
            hrefs.append(a.get("href") if a is not None else None)
        out.append(RawStandingRow(cells=tuple(_text(c) for c in cells), hrefs=tuple(hrefs)))

    if not out:
        raise ExtractionError("No data rows found in standings table")

    logger.debug(f"Extracted {len(out)} standings rows")
    return out


def extract_game_rows(html: str) -> List[RawGameRow]:
    """
    Pull the schedule grid into RawGameRow values.

    The first row is the header; rows with fewer than 8 cells (pager, spacers)
    are skipped. An empty schedule is not an error.
    """
    table = _results_table(html)
    rows = table.find_all("tr")

    out: List[RawGameRow] = []
    skipped = 0
    for row in rows[1:]:
        cells = row.find_all("td")
        if len(cells) < MIN_SCHEDULE_CELLS:
            skipped += 1
            continue
        out.append(RawGameRow.from_cells([_text(c) for c in cells]))

    logger.debug(f"Extracted {len(out)} schedule rows ({skipped} skipped)")
    return out
