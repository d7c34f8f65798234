"""Stats read service: leaderboards, canonical player stats and comparisons.

Wraps StatsRepository / PlayerRepository with the bits the API needs:
opaque cursor encoding, league abbreviation resolution, limit clamping and
per-canonical-player aggregation.

Stats are never merged across leagues when comparing players; totals for a
canonical player are summed over its linked sources only on request.
"""
import base64
import binascii
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from laxstats.core import metrics
from laxstats.core.config import settings
from laxstats.core.errors import InvalidCursorError, UnknownLeagueError
from laxstats.repositories.player_repository import PlayerRepository
from laxstats.repositories.reference_repository import ReferenceRepository
from laxstats.repositories.stats_repository import LeaderboardFilters, StatsCursor, StatsRepository

logger = logging.getLogger(__name__)

TOTAL_FIELDS = (
    'goals', 'assists', 'points', 'games_played', 'ground_balls', 'turnovers',
    'caused_turnovers', 'faceoff_wins', 'faceoff_losses',
)


def encode_cursor(cursor: Optional[StatsCursor]) -> Optional[str]:
    """Opaque URL-safe token for a (sort value, stat id) cursor."""
    if cursor is None:
        return None
    raw = json.dumps({'value': cursor.value, 'id': cursor.id}, separators=(',', ':'))
    return base64.urlsafe_b64encode(raw.encode('utf-8')).decode('ascii')


def decode_cursor(token: Optional[str]) -> Optional[StatsCursor]:
    """
    Parse a token produced by encode_cursor.

    Raises:
        InvalidCursorError: token is not a cursor we issued
    """
    if not token:
        return None
    try:
        data = json.loads(base64.urlsafe_b64decode(token.encode('ascii')))
        value, stat_id = data['value'], data['id']
    except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError) as e:
        raise InvalidCursorError(token) from e
    if not isinstance(value, int) or not isinstance(stat_id, int) or isinstance(value, bool) or isinstance(stat_id, bool):
        raise InvalidCursorError(token)
    return StatsCursor(value=value, id=stat_id)


def _empty_totals() -> Dict[str, int]:
    return {name: 0 for name in TOTAL_FIELDS}


def _add_totals(totals: Dict[str, int], stat: Dict[str, Any]) -> None:
    for name in TOTAL_FIELDS:
        totals[name] += stat.get(name) or 0


class StatsService:
    """Read-side stats operations used by the API routes."""

    def __init__(self, db: Session):
        self.db = db
        self.stats = StatsRepository(db)
        self.players = PlayerRepository(db)
        self.references = ReferenceRepository(db)

    # ========================================================================
    # Leaderboard
    # ========================================================================

    def get_leaderboard(
        self,
        sort_by: str = 'points',
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        leagues: Optional[Sequence[str]] = None,
        season_id: Optional[int] = None,
        season_year: Optional[int] = None,
        stat_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        One leaderboard page, optionally across several leagues.

        Args:
            sort_by: points, goals or assists
            limit: page size (clamped to LEADERBOARD_MAX_LIMIT)
            cursor: next_cursor token from the previous page
            leagues: league abbreviations to include (all when omitted)

        Returns:
            {'entries': [...], 'next_cursor': str | None, 'has_more': bool}
        """
        limit = min(limit or settings.LEADERBOARD_DEFAULT_LIMIT, settings.LEADERBOARD_MAX_LIMIT)
        filters = LeaderboardFilters(
            league_ids=self._resolve_league_ids(leagues),
            season_id=season_id,
            season_year=season_year,
            stat_type=stat_type,
        )

        page = self.stats.get_leaderboard(filters, sort_by=sort_by, limit=limit, cursor=decode_cursor(cursor))
        metrics.record_leaderboard_query(sort_by)

        return {
            'sort_by': sort_by,
            'entries': [entry.to_dict() for entry in page.entries],
            'next_cursor': encode_cursor(page.next_cursor),
            'has_more': page.has_more,
        }

    # ========================================================================
    # Player stats
    # ========================================================================

    def get_source_player_stats(self, source_player_id: int) -> Dict[str, Any]:
        player = self.players.get_source_player(source_player_id)
        stats = self.stats.get_player_stats(player.id)
        totals = _empty_totals()
        for stat in stats:
            _add_totals(totals, stat)
        return {'source_player_id': player.id, 'stats': stats, 'totals': totals}

    def get_stat_line(self, stat_id: int) -> Dict[str, Any]:
        return self.stats.get_stat(stat_id)

    def get_canonical_player_stats(self, canonical_player_id: int) -> Dict[str, Any]:
        """
        Stats of every linked source, most trusted league first, plus career totals.

        Raises:
            NotFoundError: unknown canonical player
        """
        canonical = self.players.get_canonical_player(canonical_player_id)
        totals = _empty_totals()
        sources = []

        for source in canonical['source_players']:
            stats = self.stats.get_player_stats(source['id'])
            for stat in stats:
                _add_totals(totals, stat)
            sources.append({
                'source_player_id': source['id'],
                'league_abbreviation': source['league_abbreviation'],
                'league_priority': source['league_priority'],
                'stats': stats,
            })

        return {
            'canonical_player_id': canonical['id'],
            'display_name': canonical['display_name'],
            'sources': sources,
            'totals': totals,
        }

    def compare_players(self, canonical_player_ids: Sequence[int]) -> List[Dict[str, Any]]:
        """Per-league totals for each canonical player. Leagues are never merged."""
        comparison = []
        for canonical_player_id in canonical_player_ids:
            player_stats = self.get_canonical_player_stats(canonical_player_id)
            by_league: Dict[str, Dict[str, int]] = {}
            for source in player_stats['sources']:
                league_totals = by_league.setdefault(source['league_abbreviation'], _empty_totals())
                for stat in source['stats']:
                    _add_totals(league_totals, stat)
            comparison.append({
                'canonical_player_id': player_stats['canonical_player_id'],
                'display_name': player_stats['display_name'],
                'by_league': by_league,
            })
        return comparison

    # ========================================================================
    # Teams
    # ========================================================================

    def get_team_stats(
        self,
        team_id: Optional[int] = None,
        season_id: Optional[int] = None,
        league: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        league_ids = self._resolve_league_ids([league] if league else None)
        return self.stats.get_team_stats(
            team_id=team_id,
            season_id=season_id,
            league_id=league_ids[0] if league_ids else None,
        )

    # ========================================================================
    # Internals
    # ========================================================================

    def _resolve_league_ids(self, leagues: Optional[Sequence[str]]) -> Optional[List[int]]:
        if not leagues:
            return None
        league_ids = []
        for abbreviation in leagues:
            league = self.references.find_league_by_abbreviation(abbreviation)
            if league is None:
                raise UnknownLeagueError(abbreviation)
            league_ids.append(league.id)
        return league_ids
