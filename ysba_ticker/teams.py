# ysba_ticker/teams.py
"""
Canonical team names.

The site's own team text is inconsistent between pages, so standings prefer
these names whenever the team code is known.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

TEAM_NAMES: Dict[str, str] = {
    "511105": "Midland Penetang Twins 9U DS",
    "511106": "Aurora-King Jays 9U DS",
    "511107": "Barrie Baycats 9U DS",
    "511108": "Bradford Tigers 9U DS",
    "511109": "Collingwood Jays 9U DS",
    "511110": "Innisfil Cardinals 9U DS",
    "511111": "Markham Mariners 9U DS",
    "511112": "Newmarket Hawks 9U DS",
    "511113": "Richmond Hill Phoenix 9U DS",
    "511114": "Thornhill Reds 9U DS",
    "511115": "TNT Thunder 9U DS",
    "511116": "Caledon Nationals 9U HS",
    "518965": "Vaughan Vikings 8U DS",  # 8U team playing up
    "518966": "Vaughan Vikings 9U DS",
}


def team_name_table(overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return the built-in table with configured overrides applied on top."""
    table = dict(TEAM_NAMES)
    if overrides:
        table.update(overrides)
    return table
