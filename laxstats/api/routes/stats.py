"""Stats API routes: leaderboards, team summaries and per-player stat lines.

Leaderboards paginate with an opaque cursor. Pass the previous response's
next_cursor to get the following page; next_cursor is null on the last page.
rank is the position within the returned page.
"""
import logging
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from laxstats.core.config import settings
from laxstats.core.database import get_db
from laxstats.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stats", tags=["stats"])


def get_stats_service(db: Session = Depends(get_db)) -> StatsService:
    """Dependency to get stats service instance."""
    return StatsService(db)


@router.get("/leaderboard")
async def get_leaderboard(
    sort_by: Literal["points", "goals", "assists"] = Query("points"),
    limit: int = Query(settings.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=settings.LEADERBOARD_MAX_LIMIT),
    cursor: Optional[str] = Query(None, description="next_cursor from the previous page"),
    league: Optional[List[str]] = Query(None, description="League abbreviation(s)"),
    season: Optional[int] = Query(None, description="Season year"),
    season_id: Optional[int] = Query(None),
    stat_type: Optional[Literal["regular", "playoff", "career"]] = Query(None),
    service: StatsService = Depends(get_stats_service)
) -> Dict:
    """Get one page of the leaderboard."""
    return service.get_leaderboard(
        sort_by=sort_by,
        limit=limit,
        cursor=cursor,
        leagues=league,
        season_id=season_id,
        season_year=season,
        stat_type=stat_type,
    )


@router.get("/teams")
async def get_team_stats(
    team_id: Optional[int] = Query(None),
    season_id: Optional[int] = Query(None),
    league: Optional[str] = Query(None, description="League abbreviation"),
    service: StatsService = Depends(get_stats_service)
) -> Dict:
    """Get goal/assist/point totals and player counts per team and season."""
    teams = service.get_team_stats(team_id=team_id, season_id=season_id, league=league)
    return {'count': len(teams), 'teams': teams}


@router.get("/players/{source_player_id}")
async def get_source_player_stats(
    source_player_id: int,
    service: StatsService = Depends(get_stats_service)
) -> Dict:
    """Get every stat line of one source player."""
    return service.get_source_player_stats(source_player_id)


@router.get("/lines/{stat_id}")
async def get_stat_line(
    stat_id: int,
    service: StatsService = Depends(get_stats_service)
) -> Dict:
    """Get one stat line with its player, team and season."""
    return service.get_stat_line(stat_id)
