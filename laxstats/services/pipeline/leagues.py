"""League registry: source leagues, their reliability priority and known seasons.

Priority orders sources by how much we trust their biographical data. When
the same player appears in several leagues, the lowest priority number
becomes the canonical player's primary source.
"""
from dataclasses import dataclass
from typing import Dict, List

from laxstats.core.errors import UnknownLeagueError


@dataclass(frozen=True)
class LeagueConfig:
    key: str
    abbreviation: str
    name: str
    priority: int
    output_dir: str  # subdirectory of EXTRACT_OUTPUT_DIR


LEAGUE_CONFIGS: Dict[str, LeagueConfig] = {
    "pll": LeagueConfig("pll", "PLL", "Premier Lacrosse League", 1, "pll"),
    "nll": LeagueConfig("nll", "NLL", "National Lacrosse League", 2, "nll"),
    "msl": LeagueConfig("msl", "MSL", "Major Series Lacrosse", 3, "msl"),
    "mll": LeagueConfig("mll", "MLL", "Major League Lacrosse", 4, "mll"),
    "wla": LeagueConfig("wla", "WLA", "Western Lacrosse Association", 5, "wla"),
    "wayback": LeagueConfig("wayback", "WAYBACK", "Wayback Machine Archive", 6, "wayback"),
}

# Seasons as the extractor names its output directories.
# NLL and MSL use their API's season ids rather than calendar years.
LEAGUE_SEASONS: Dict[str, List[str]] = {
    "pll": [str(y) for y in range(2019, 2026)],
    "nll": [str(s) for s in range(201, 226)],
    "msl": ["3246", "6007", "9567"],
    "mll": [str(y) for y in range(2001, 2021)],
    "wla": [str(y) for y in range(2005, 2026)],
    "wayback": [],
}


def get_league_config(key: str) -> LeagueConfig:
    """Look up a league by its key (case-insensitive)."""
    config = LEAGUE_CONFIGS.get(key.lower())
    if config is None:
        raise UnknownLeagueError(key)
    return config


def get_league_seasons(key: str) -> List[str]:
    return list(LEAGUE_SEASONS.get(get_league_config(key).key, []))
