"""
Player Repository for source and canonical player reads.

Usage:
    repo = PlayerRepository(db)
    player = repo.get_source_player(42)
    matches = repo.search_players("lyle thompson", league_id=1)
    golden = repo.get_canonical_player(7)
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from laxstats.core.errors import NotFoundError
from laxstats.models import CanonicalPlayer, League, PlayerIdentity, SourcePlayer
from laxstats.repositories.base import BaseRepository
from laxstats.services.pipeline.name_normalizer import normalize_name


def source_player_to_dict(player: SourcePlayer, league: Optional[League] = None) -> Dict[str, Any]:
    data = {
        'id': player.id,
        'league_id': player.league_id,
        'source_id': player.source_id,
        'first_name': player.first_name,
        'last_name': player.last_name,
        'full_name': player.full_name,
        'normalized_name': player.normalized_name,
        'position': player.position,
        'jersey_number': player.jersey_number,
        'dob': player.dob.isoformat() if player.dob else None,
        'hometown': player.hometown,
        'college': player.college,
        'handedness': player.handedness,
    }
    if league is not None:
        data['league_name'] = league.name
        data['league_abbreviation'] = league.abbreviation
        data['league_priority'] = league.priority
    return data


class PlayerRepository(BaseRepository[SourcePlayer]):
    """Repository for source player and canonical player lookups."""

    def __init__(self, db: Session):
        super().__init__(SourcePlayer, db)

    # ========================================================================
    # Source players
    # ========================================================================

    def get_source_player(self, source_player_id: int) -> SourcePlayer:
        """Live source player by id. Raises NotFoundError if missing or deleted."""
        player = self.find_by_id(source_player_id)
        if player is None or player.deleted_at is not None:
            raise NotFoundError("source_player", source_player_id)
        return player

    def get_by_source_id(self, league_id: int, source_id: str) -> Optional[SourcePlayer]:
        """Find a player by the league's own id for them."""
        return self.where_first(
            SourcePlayer.league_id == league_id,
            SourcePlayer.source_id == str(source_id),
        )

    def search_players(self, query: str, league_id: Optional[int] = None, limit: int = 20) -> List[Dict[str, Any]]:
        """
        Search live source players by name (case-insensitive partial match).

        The query is matched against normalized_name after normalizing it the
        same way, and against full_name as typed.

        Args:
            query: Name or partial name to search for
            league_id: Optional league filter
            limit: Maximum number of results

        Returns:
            List of player dicts with league details
        """
        text = (query or '').strip()
        normalized = normalize_name(text)
        if not text:
            return []

        conditions = [SourcePlayer.full_name.ilike(f"%{text}%")]
        if normalized:
            conditions.append(SourcePlayer.normalized_name.ilike(f"%{normalized}%"))

        q = (
            self.db.query(SourcePlayer, League)
            .join(League, League.id == SourcePlayer.league_id)
            .filter(or_(*conditions), SourcePlayer.deleted_at.is_(None))
        )
        if league_id is not None:
            q = q.filter(SourcePlayer.league_id == league_id)

        rows = q.order_by(SourcePlayer.full_name, SourcePlayer.id).limit(limit).all()
        return [source_player_to_dict(player, league) for player, league in rows]

    # ========================================================================
    # Canonical players
    # ========================================================================

    def get_canonical_player(self, canonical_player_id: int) -> Dict[str, Any]:
        """
        Canonical player with every live linked source record, most trusted league first.

        Raises:
            NotFoundError: no canonical player with this id
        """
        canonical = self.db.get(CanonicalPlayer, canonical_player_id)
        if canonical is None:
            raise NotFoundError("canonical_player", canonical_player_id)

        rows = (
            self.db.query(SourcePlayer, League, PlayerIdentity)
            .join(PlayerIdentity, PlayerIdentity.source_player_id == SourcePlayer.id)
            .join(League, League.id == SourcePlayer.league_id)
            .filter(
                PlayerIdentity.canonical_player_id == canonical_player_id,
                SourcePlayer.deleted_at.is_(None),
            )
            .order_by(League.priority, SourcePlayer.id)
            .all()
        )

        sources = []
        for player, league, identity in rows:
            data = source_player_to_dict(player, league)
            data['match_method'] = identity.match_method
            data['confidence_score'] = identity.confidence_score
            sources.append(data)

        return {
            'id': canonical.id,
            'display_name': canonical.display_name,
            'primary_source_player_id': canonical.primary_source_player_id,
            'position': canonical.position,
            'dob': canonical.dob.isoformat() if canonical.dob else None,
            'hometown': canonical.hometown,
            'college': canonical.college,
            'source_players': sources,
        }
