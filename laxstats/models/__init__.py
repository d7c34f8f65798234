"""
Models for the lacrosse stats pipeline.

Usage:
    from laxstats.models import SourcePlayer, CanonicalPlayer, PlayerStat
"""
from laxstats.models.models import (
    Base,
    League,
    Season,
    Team,
    TeamSeason,
    SourcePlayer,
    CanonicalPlayer,
    PlayerIdentity,
    PlayerStat,
    Standing,
    Game,
    ScrapeRun,
)

__all__ = [
    "Base",
    "League",
    "Season",
    "Team",
    "TeamSeason",
    "SourcePlayer",
    "CanonicalPlayer",
    "PlayerIdentity",
    "PlayerStat",
    "Standing",
    "Game",
    "ScrapeRun",
]
