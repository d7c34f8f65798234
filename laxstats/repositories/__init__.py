"""
Repository layer for data access.

Usage:
    from laxstats.repositories import PlayerRepository, StatsRepository
    from laxstats.core.database import get_session_factory

    db = get_session_factory()()
    players = PlayerRepository(db).search_players("thompson")
    db.close()
"""

from laxstats.repositories.base import BaseRepository
from laxstats.repositories.player_repository import PlayerRepository
from laxstats.repositories.reference_repository import ReferenceRepository
from laxstats.repositories.stats_repository import StatsRepository

__all__ = [
    "BaseRepository",
    "PlayerRepository",
    "ReferenceRepository",
    "StatsRepository",
]
