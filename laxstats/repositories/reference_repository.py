"""
Reference (dimension) data access: leagues, seasons and team-season links.

ensure_* methods are get-or-create on the natural key and commit immediately.
They do check-then-insert with no locking, so only one pipeline may write a
given league/season at a time; a concurrent duplicate insert surfaces as a
ConstraintViolation from the unique constraint.

Usage:
    refs = ReferenceRepository(db)
    league_id = refs.ensure_league("pll")
    season_id = refs.ensure_season(league_id, 2024)
    teams = refs.build_team_map(league_id)   # {"CHA": 12, ...}
"""
import logging
from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from laxstats.core.errors import ConstraintViolation, DatabaseError
from laxstats.models import League, Season, Team, TeamSeason, SourcePlayer
from laxstats.repositories.base import BaseRepository
from laxstats.services.pipeline.leagues import get_league_config

logger = logging.getLogger(__name__)


class ReferenceRepository(BaseRepository[League]):
    """Get-or-create for dimension rows and external id lookup maps."""

    def __init__(self, db: Session):
        super().__init__(League, db)

    # ========================================================================
    # Get-or-create
    # ========================================================================

    def ensure_league(self, key: str) -> int:
        """
        Return the id of the league for a registry key, inserting it if absent.

        Raises:
            UnknownLeagueError: key is not in the league registry
        """
        config = get_league_config(key)

        league = self.where_first(League.abbreviation == config.abbreviation)
        if league is not None:
            return league.id

        league = self._commit_new(
            "ensure_league",
            League(
                name=config.name,
                abbreviation=config.abbreviation,
                priority=config.priority,
                active=True,
            ),
        )
        logger.info(f"Created league: {config.abbreviation}")
        return league.id

    def ensure_season(self, league_id: int, year: int, source_season_id: Optional[str] = None) -> int:
        """Return the id of (league, year), inserting the season if absent."""
        season = self.db.query(Season).filter(
            Season.league_id == league_id,
            Season.year == year,
        ).first()
        if season is not None:
            return season.id

        season = self._commit_new(
            "ensure_season",
            Season(
                league_id=league_id,
                year=year,
                name=str(year),
                source_season_id=source_season_id or str(year),
                active=True,
            ),
        )
        logger.info(f"Created season: {year}", extra={"league_id": league_id})
        return season.id

    def ensure_team_season(
        self,
        team_id: int,
        season_id: int,
        division: Optional[str] = None,
        conference: Optional[str] = None,
    ) -> int:
        """Link a team to a season. Existing links are left untouched."""
        link = self.db.query(TeamSeason).filter(
            TeamSeason.team_id == team_id,
            TeamSeason.season_id == season_id,
        ).first()
        if link is not None:
            return link.id

        link = self._commit_new(
            "ensure_team_season",
            TeamSeason(team_id=team_id, season_id=season_id, division=division, conference=conference),
        )
        return link.id

    def find_league_by_abbreviation(self, abbreviation: str) -> Optional[League]:
        return self.where_first(League.abbreviation == abbreviation.upper())

    # ========================================================================
    # Lookup maps (external id -> internal id)
    # ========================================================================

    def build_team_map(self, league_id: int) -> Dict[str, int]:
        rows = self.db.query(Team.source_id, Team.id).filter(Team.league_id == league_id).all()
        return {source_id: team_id for source_id, team_id in rows}

    def build_player_map(self, league_id: int) -> Dict[str, int]:
        rows = self.db.query(SourcePlayer.source_id, SourcePlayer.id).filter(
            SourcePlayer.league_id == league_id,
        ).all()
        return {source_id: player_id for source_id, player_id in rows}

    # ========================================================================
    # Internals
    # ========================================================================

    def _commit_new(self, operation: str, instance):
        try:
            self.db.add(instance)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConstraintViolation(operation, e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(operation, e) from e
        return instance
