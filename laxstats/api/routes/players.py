"""Player API routes: canonical player lookup and name search."""
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from laxstats.core.database import get_db
from laxstats.core.errors import UnknownLeagueError
from laxstats.repositories.player_repository import PlayerRepository
from laxstats.repositories.reference_repository import ReferenceRepository
from laxstats.services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/players", tags=["players"])


@router.get("/search")
async def search_players(
    q: str = Query(..., min_length=1, description="Name or partial name"),
    league: Optional[str] = Query(None, description="League abbreviation (e.g. PLL)"),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
) -> Dict:
    """
    Search source players by name across leagues.

    Accents, case and punctuation are ignored ("jose garcia" finds "José García").
    """
    league_id = None
    if league:
        found = ReferenceRepository(db).find_league_by_abbreviation(league)
        if found is None:
            raise UnknownLeagueError(league)
        league_id = found.id

    players: List[Dict] = PlayerRepository(db).search_players(q, league_id=league_id, limit=limit)
    return {'count': len(players), 'players': players}


@router.get("/canonical/{canonical_player_id}")
async def get_canonical_player(
    canonical_player_id: int,
    db: Session = Depends(get_db)
) -> Dict:
    """Get a canonical player with every linked source record."""
    return PlayerRepository(db).get_canonical_player(canonical_player_id)


@router.get("/canonical/{canonical_player_id}/stats")
async def get_canonical_player_stats(
    canonical_player_id: int,
    db: Session = Depends(get_db)
) -> Dict:
    """Get stats for every linked source of a canonical player plus career totals."""
    return StatsService(db).get_canonical_player_stats(canonical_player_id)


@router.get("/compare")
async def compare_players(
    ids: List[int] = Query(..., description="Canonical player ids"),
    db: Session = Depends(get_db)
) -> Dict:
    """Compare canonical players league by league."""
    return {'players': StatsService(db).compare_players(ids)}
