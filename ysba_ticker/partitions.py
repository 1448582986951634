# ysba_ticker/partitions.py
"""
Division/tier lookup.

Maps a logical (division, tier) key such as ("9U-select", "all-tiers") to the
values the YSBA ASP.NET form expects in its ddlDivision / ddlTier selects.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .models import Partition

ALL_TIERS = "__ALL__"

REP_TIERS: Dict[str, Dict[str, str]] = {
    "no-tier": {"displayName": "No Tier", "value": "-10"},
    "tier-1": {"displayName": "Tier 1", "value": "1"},
    "tier-2": {"displayName": "Tier 2", "value": "2"},
    "tier-3": {"displayName": "Tier 3", "value": "3"},
    "all-tiers": {"displayName": "All Tiers", "value": ALL_TIERS},
}

SELECT_TIERS: Dict[str, Dict[str, str]] = {
    "all-tiers": {"displayName": "All Teams", "value": ALL_TIERS},
}


def _rep(display: str, value: str) -> Dict[str, Any]:
    return {"displayName": display, "value": value, "tiers": REP_TIERS}


def _select(display: str, value: str) -> Dict[str, Any]:
    return {"displayName": display, "value": value, "tiers": SELECT_TIERS}


# Values are the option values of the site's division dropdown.
DIVISIONS: Dict[str, Dict[str, Any]] = {
    "8U-rep": _rep("Rep 8U", "1"),
    "9U-rep": _rep("Rep 9U", "2"),
    "10U-rep": _rep("Rep 10U", "3"),
    "11U-rep": _rep("Rep 11U", "4"),
    "12U-rep": _rep("Rep 12U", "5"),
    "13U-rep": _rep("Rep 13U", "6"),
    "14U-rep": _rep("Rep 14U", "7"),
    "15U-rep": _rep("Rep 15U", "8"),
    "16U-rep": _rep("Rep 16U", "9"),
    "18U-rep": _rep("Rep 18U", "10"),
    "22U-rep": _rep("Rep 22U", "11"),
    "senior-rep": _rep("Rep Senior", "12"),
    "9U-select": _select("9U Select", "13"),
    "11U-select": _select("11U Select", "15"),
    "13U-select": _select("13U Select", "16"),
    "15U-select": _select("15U Select", "18"),
}


class PartitionTable:
    """Immutable lookup table of every configured partition."""

    def __init__(self, partitions: Dict[Tuple[str, str], Partition], division_names: Dict[str, str]) -> None:
        self._partitions = dict(partitions)
        self._division_names = dict(division_names)

    @classmethod
    def from_mapping(cls, divisions: Mapping[str, Any]) -> "PartitionTable":
        """
        Build a table from a DIVISIONS-shaped mapping.

        Entries missing a value, or tiers missing a value, are skipped.
        """
        partitions: Dict[Tuple[str, str], Partition] = {}
        names: Dict[str, str] = {}
        for div_key, div in divisions.items():
            if not isinstance(div, Mapping) or div.get("value") is None:
                continue
            div_name = str(div.get("displayName") or div_key)
            names[div_key] = div_name
            for tier_key, tier in (div.get("tiers") or {}).items():
                if not isinstance(tier, Mapping) or tier.get("value") is None:
                    continue
                tier_name = str(tier.get("displayName") or tier_key)
                partitions[(div_key, tier_key)] = Partition(
                    division_key=div_key,
                    tier_key=tier_key,
                    division_value=str(div["value"]),
                    tier_value=str(tier["value"]),
                    display_name=f"{div_name} - {tier_name}",
                )
        return cls(partitions, names)

    def resolve(self, division_key: str, tier_key: str) -> Optional[Partition]:
        """Return the partition for (division, tier), or None when unknown."""
        return self._partitions.get((division_key, tier_key))

    def require(self, division_key: str, tier_key: str) -> Partition:
        """Like resolve(), but raise ConfigurationError for an unknown key."""
        partition = self.resolve(division_key, tier_key)
        if partition is None:
            raise ConfigurationError(f"Invalid division/tier combination: {division_key}/{tier_key}")
        return partition

    def all(self) -> List[Partition]:
        return list(self._partitions.values())

    def divisions(self) -> List[Dict[str, Any]]:
        """Division keys with display names and their tier keys, in table order."""
        out: List[Dict[str, Any]] = []
        for div_key, name in self._division_names.items():
            tiers = [p.tier_key for (d, _), p in self._partitions.items() if d == div_key]
            out.append({"key": div_key, "displayName": name, "tiers": tiers})
        return out


DEFAULT_TABLE = PartitionTable.from_mapping(DIVISIONS)


def resolve(division_key: str, tier_key: str) -> Optional[Partition]:
    """Resolve against the built-in division table."""
    return DEFAULT_TABLE.resolve(division_key, tier_key)
