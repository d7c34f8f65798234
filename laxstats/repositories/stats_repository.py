"""
Stats Repository for player_stat reads.

All queries exclude soft-deleted source players.

Leaderboards use keyset pagination over (sort column DESC, id DESC):

    WHERE col < :value OR (col = :value AND id < :id)

The sort column is coalesced to 0 in both the ORDER BY and the cursor
condition so NULL counters cannot break the ordering.

Usage:
    repo = StatsRepository(db)
    page = repo.get_leaderboard(LeaderboardFilters(season_id=3), sort_by="goals", limit=25)
    next_page = repo.get_leaderboard(filters, sort_by="goals", limit=25, cursor=page.next_cursor)
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, distinct, func, or_
from sqlalchemy.orm import Session

from laxstats.core.errors import InvalidInputError, NotFoundError
from laxstats.models import League, PlayerStat, Season, SourcePlayer, Team
from laxstats.repositories.base import BaseRepository

SORT_COLUMNS = {
    'points': PlayerStat.points,
    'goals': PlayerStat.goals,
    'assists': PlayerStat.assists,
}

STAT_TYPES = ('regular', 'playoff', 'career')

# Counter columns returned for a stat line (all coalesced to 0)
COUNTER_COLUMNS = (
    'goals', 'assists', 'points', 'shots', 'shots_on_goal', 'ground_balls', 'turnovers',
    'caused_turnovers', 'faceoff_wins', 'faceoff_losses', 'saves', 'goals_against', 'games_played',
)


@dataclass(frozen=True)
class StatsCursor:
    value: int
    id: int


@dataclass
class LeaderboardFilters:
    league_ids: Optional[List[int]] = None
    season_id: Optional[int] = None
    season_year: Optional[int] = None
    stat_type: Optional[str] = None


@dataclass
class LeaderboardEntry:
    stat_id: int
    rank: int
    source_player_id: int
    player_name: Optional[str]
    position: Optional[str]
    team_name: str
    team_abbreviation: Optional[str]
    league_abbreviation: str
    season_year: int
    goals: int
    assists: int
    points: int
    games_played: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LeaderboardPage:
    entries: List[LeaderboardEntry] = field(default_factory=list)
    next_cursor: Optional[StatsCursor] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def _player_name_expr():
    return func.coalesce(
        SourcePlayer.full_name,
        SourcePlayer.first_name + ' ' + SourcePlayer.last_name,
    )


class StatsRepository(BaseRepository[PlayerStat]):
    """Read-only queries over player_stat."""

    def __init__(self, db: Session):
        super().__init__(PlayerStat, db)

    # ========================================================================
    # Leaderboard
    # ========================================================================

    def get_leaderboard(
        self,
        filters: Optional[LeaderboardFilters] = None,
        sort_by: str = 'points',
        limit: int = 25,
        cursor: Optional[StatsCursor] = None,
    ) -> LeaderboardPage:
        """
        One page of the leaderboard.

        Fetches limit + 1 rows; the extra row only signals that another page
        exists. rank is the position within this page (index + 1), not a
        global rank.

        Raises:
            InvalidInputError: unknown sort_by / stat_type or limit < 1
        """
        if sort_by not in SORT_COLUMNS:
            raise InvalidInputError(f"sort_by must be one of {', '.join(SORT_COLUMNS)}", {"sort_by": sort_by})
        if limit < 1:
            raise InvalidInputError("limit must be at least 1", {"limit": limit})
        filters = filters or LeaderboardFilters()
        if filters.stat_type is not None and filters.stat_type not in STAT_TYPES:
            raise InvalidInputError(f"stat_type must be one of {', '.join(STAT_TYPES)}", {"stat_type": filters.stat_type})

        sort_col = func.coalesce(SORT_COLUMNS[sort_by], 0)

        query = (
            self.db.query(
                PlayerStat.id,
                sort_col.label('sort_value'),
                PlayerStat.source_player_id,
                _player_name_expr().label('player_name'),
                SourcePlayer.position,
                Team.name.label('team_name'),
                Team.abbreviation.label('team_abbreviation'),
                League.abbreviation.label('league_abbreviation'),
                Season.year.label('season_year'),
                func.coalesce(PlayerStat.goals, 0).label('goals'),
                func.coalesce(PlayerStat.assists, 0).label('assists'),
                func.coalesce(PlayerStat.points, 0).label('points'),
                func.coalesce(PlayerStat.games_played, 0).label('games_played'),
            )
            .join(SourcePlayer, SourcePlayer.id == PlayerStat.source_player_id)
            .join(Team, Team.id == PlayerStat.team_id)
            .join(Season, Season.id == PlayerStat.season_id)
            .join(League, League.id == SourcePlayer.league_id)
            .filter(SourcePlayer.deleted_at.is_(None))
        )

        if filters.league_ids:
            query = query.filter(SourcePlayer.league_id.in_(filters.league_ids))
        if filters.season_id is not None:
            query = query.filter(PlayerStat.season_id == filters.season_id)
        if filters.season_year is not None:
            query = query.filter(Season.year == filters.season_year)
        if filters.stat_type is not None:
            query = query.filter(PlayerStat.stat_type == filters.stat_type)

        if cursor is not None:
            query = query.filter(
                or_(
                    sort_col < cursor.value,
                    and_(sort_col == cursor.value, PlayerStat.id < cursor.id),
                )
            )

        rows = query.order_by(sort_col.desc(), PlayerStat.id.desc()).limit(limit + 1).all()

        has_more = len(rows) > limit
        rows = rows[:limit]

        entries = [
            LeaderboardEntry(
                stat_id=row.id,
                rank=index + 1,
                source_player_id=row.source_player_id,
                player_name=row.player_name,
                position=row.position,
                team_name=row.team_name,
                team_abbreviation=row.team_abbreviation,
                league_abbreviation=row.league_abbreviation,
                season_year=row.season_year,
                goals=row.goals,
                assists=row.assists,
                points=row.points,
                games_played=row.games_played,
            )
            for index, row in enumerate(rows)
        ]

        next_cursor = None
        if has_more:
            last = rows[-1]
            next_cursor = StatsCursor(value=last.sort_value, id=last.id)

        return LeaderboardPage(entries=entries, next_cursor=next_cursor)

    # ========================================================================
    # Player stat lines
    # ========================================================================

    def get_player_stats(self, source_player_id: int, season_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Every stat line of a source player, newest season first."""
        query = self._detail_query().filter(PlayerStat.source_player_id == source_player_id)
        if season_id is not None:
            query = query.filter(PlayerStat.season_id == season_id)
        rows = query.order_by(Season.year.desc(), PlayerStat.id.desc()).all()
        return [self._detail_to_dict(row) for row in rows]

    def get_stat(self, stat_id: int) -> Dict[str, Any]:
        row = self._detail_query().filter(PlayerStat.id == stat_id).first()
        if row is None:
            raise NotFoundError("player_stat", stat_id)
        return self._detail_to_dict(row)

    # ========================================================================
    # Team summaries
    # ========================================================================

    def get_team_stats(
        self,
        team_id: Optional[int] = None,
        season_id: Optional[int] = None,
        league_id: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Per (team, season) totals of goals/assists/points and distinct player count."""
        query = (
            self.db.query(
                Team.id.label('team_id'),
                Team.name.label('team_name'),
                Team.abbreviation.label('team_abbreviation'),
                Season.id.label('season_id'),
                Season.year.label('season_year'),
                League.abbreviation.label('league_abbreviation'),
                func.coalesce(func.sum(PlayerStat.goals), 0).label('total_goals'),
                func.coalesce(func.sum(PlayerStat.assists), 0).label('total_assists'),
                func.coalesce(func.sum(PlayerStat.points), 0).label('total_points'),
                func.count(distinct(PlayerStat.source_player_id)).label('player_count'),
            )
            .join(Team, Team.id == PlayerStat.team_id)
            .join(Season, Season.id == PlayerStat.season_id)
            .join(League, League.id == Team.league_id)
            .join(SourcePlayer, SourcePlayer.id == PlayerStat.source_player_id)
            .filter(SourcePlayer.deleted_at.is_(None))
        )
        if team_id is not None:
            query = query.filter(Team.id == team_id)
        if season_id is not None:
            query = query.filter(Season.id == season_id)
        if league_id is not None:
            query = query.filter(Team.league_id == league_id)

        rows = (
            query.group_by(Team.id, Team.name, Team.abbreviation, Season.id, Season.year, League.abbreviation)
            .order_by(Season.year.desc(), Team.name)
            .all()
        )
        return [dict(row._mapping) for row in rows]

    # ========================================================================
    # Internals
    # ========================================================================

    def _detail_query(self):
        return (
            self.db.query(
                PlayerStat,
                _player_name_expr().label('player_name'),
                Team.name.label('team_name'),
                Season.year.label('season_year'),
                League.abbreviation.label('league_abbreviation'),
            )
            .join(SourcePlayer, SourcePlayer.id == PlayerStat.source_player_id)
            .join(Team, Team.id == PlayerStat.team_id)
            .join(Season, Season.id == PlayerStat.season_id)
            .join(League, League.id == SourcePlayer.league_id)
            .filter(SourcePlayer.deleted_at.is_(None))
        )

    @staticmethod
    def _detail_to_dict(row) -> Dict[str, Any]:
        stat = row[0]
        data = {
            'stat_id': stat.id,
            'source_player_id': stat.source_player_id,
            'season_id': stat.season_id,
            'team_id': stat.team_id,
            'game_id': stat.game_id,
            'stat_type': stat.stat_type,
            'player_name': row.player_name,
            'team_name': row.team_name,
            'season_year': row.season_year,
            'league_abbreviation': row.league_abbreviation,
        }
        for column in COUNTER_COLUMNS:
            data[column] = getattr(stat, column) or 0
        return data
