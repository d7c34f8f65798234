"""Cross-league player identity resolution.

Links source players (one per league record) to canonical "golden record"
players. Only exact matches are linked: equal normalized name AND equal date
of birth. Every link is written with match_method="exact" and confidence 1.0.

Resolution for one source player:
1. Source player must exist and not be soft-deleted
2. It must not already have an identity link
3. It must have both normalized_name and dob
4. Find other live source players with the same (normalized_name, dob)
5. If any of them is already linked, join that canonical player
6. Otherwise create a canonical player from the most trusted source
   (lowest league priority, then lowest id) and link the whole group

Usage:
    service = IdentityService(db)
    result = service.process_identity(source_player_id)
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from laxstats.core import metrics
from laxstats.core.errors import (
    AlreadyLinked,
    ConstraintViolation,
    DatabaseError,
    LaxstatsError,
    NoExactMatchData,
    SourcePlayerNotFound,
)
from laxstats.models import CanonicalPlayer, League, PlayerIdentity, SourcePlayer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExactMatchCandidate:
    source_player_id: int
    league_id: int
    league_priority: int
    canonical_player_id: Optional[int]


@dataclass
class IdentityResult:
    canonical_player_id: int
    is_new_canonical: bool
    linked_source_player_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'canonical_player_id': self.canonical_player_id,
            'is_new_canonical': self.is_new_canonical,
            'linked_source_player_ids': list(self.linked_source_player_ids),
        }


def display_name_for(player: SourcePlayer) -> str:
    """Full name if the source has one, else "first last"."""
    if player.full_name:
        return player.full_name
    return f"{player.first_name or ''} {player.last_name or ''}".strip()


class IdentityService:
    """Exact-match identity resolution over source_player / canonical_player."""

    MATCH_METHOD = "exact"
    CONFIDENCE = 1.0

    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Resolution
    # ========================================================================

    def process_identity(self, source_player_id: int) -> IdentityResult:
        """
        Resolve one source player to a canonical player.

        Raises:
            SourcePlayerNotFound: player missing or soft-deleted
            AlreadyLinked: player already has an identity link
            NoExactMatchData: normalized_name or dob is missing
            DatabaseError: the writes failed (rolled back)
        """
        player, priority = self._get_live_source_player(source_player_id)

        existing = self.get_canonical_for_source(source_player_id)
        if existing is not None:
            raise AlreadyLinked(source_player_id, existing)

        if not player.normalized_name:
            raise NoExactMatchData(source_player_id, "normalizedName")
        if player.dob is None:
            raise NoExactMatchData(source_player_id, "dob")

        candidates = self.find_exact_matches(
            player.normalized_name, player.dob, exclude_source_player_id=source_player_id
        )

        linked = [c for c in candidates if c.canonical_player_id is not None]
        if linked:
            return self._join_existing(player, linked)

        group = [
            ExactMatchCandidate(player.id, player.league_id, priority, None),
            *[c for c in candidates if c.canonical_player_id is None],
        ]
        return self._create_for_group(group)

    def batch_process(self, source_player_ids: Sequence[int]) -> Dict[int, object]:
        """
        Resolve many source players, collecting per-player outcomes.

        Returns:
            Mapping of source player id to IdentityResult or the LaxstatsError raised
        """
        outcomes: Dict[int, object] = {}
        for source_player_id in source_player_ids:
            try:
                outcomes[source_player_id] = self.process_identity(source_player_id)
            except LaxstatsError as e:
                outcomes[source_player_id] = e
        return outcomes

    # ========================================================================
    # Building blocks
    # ========================================================================

    def find_exact_matches(
        self,
        normalized_name: str,
        dob: date,
        exclude_source_player_id: Optional[int] = None,
    ) -> List[ExactMatchCandidate]:
        """Live source players with this exact (normalized_name, dob), most trusted league first."""
        query = (
            self.db.query(
                SourcePlayer.id,
                SourcePlayer.league_id,
                League.priority,
                PlayerIdentity.canonical_player_id,
            )
            .join(League, League.id == SourcePlayer.league_id)
            .outerjoin(PlayerIdentity, PlayerIdentity.source_player_id == SourcePlayer.id)
            .filter(
                SourcePlayer.normalized_name == normalized_name,
                SourcePlayer.dob == dob,
                SourcePlayer.deleted_at.is_(None),
            )
        )
        if exclude_source_player_id is not None:
            query = query.filter(SourcePlayer.id != exclude_source_player_id)

        rows = query.order_by(League.priority, SourcePlayer.id).all()
        return [
            ExactMatchCandidate(
                source_player_id=row[0],
                league_id=row[1],
                league_priority=row[2],
                canonical_player_id=row[3],
            )
            for row in rows
        ]

    def create_canonical_player(self, primary: SourcePlayer) -> CanonicalPlayer:
        """Create (flush, not commit) a golden record from its primary source."""
        canonical = CanonicalPlayer(
            primary_source_player_id=primary.id,
            display_name=display_name_for(primary),
            position=primary.position,
            dob=primary.dob,
            hometown=primary.hometown,
            college=primary.college,
        )
        self.db.add(canonical)
        self.db.flush()
        return canonical

    def link_source_player(
        self,
        canonical_player_id: int,
        source_player_id: int,
        commit: bool = True,
    ) -> PlayerIdentity:
        """
        Insert the identity row for a source player.

        Raises:
            AlreadyLinked: the source player already has a link
        """
        existing = self.get_canonical_for_source(source_player_id)
        if existing is not None:
            raise AlreadyLinked(source_player_id, existing)

        identity = PlayerIdentity(
            canonical_player_id=canonical_player_id,
            source_player_id=source_player_id,
            match_method=self.MATCH_METHOD,
            confidence_score=self.CONFIDENCE,
        )
        self.db.add(identity)
        if commit:
            self._commit("link_source_player")
        else:
            self.db.flush()
        return identity

    def get_canonical_for_source(self, source_player_id: int) -> Optional[int]:
        return self.db.query(PlayerIdentity.canonical_player_id).filter(
            PlayerIdentity.source_player_id == source_player_id
        ).scalar()

    def get_linked_source_ids(self, canonical_player_id: int) -> List[int]:
        rows = self.db.query(PlayerIdentity.source_player_id).filter(
            PlayerIdentity.canonical_player_id == canonical_player_id
        ).order_by(PlayerIdentity.source_player_id).all()
        return [row[0] for row in rows]

    # ========================================================================
    # Internals
    # ========================================================================

    def _get_live_source_player(self, source_player_id: int) -> tuple[SourcePlayer, int]:
        row = (
            self.db.query(SourcePlayer, League.priority)
            .join(League, League.id == SourcePlayer.league_id)
            .filter(SourcePlayer.id == source_player_id)
            .first()
        )
        if row is None or row[0].deleted_at is not None:
            raise SourcePlayerNotFound(source_player_id)
        return row[0], row[1]

    def _join_existing(self, player: SourcePlayer, linked: List[ExactMatchCandidate]) -> IdentityResult:
        canonical_id = linked[0].canonical_player_id
        others = {c.canonical_player_id for c in linked} - {canonical_id}
        if others:
            logger.warning(
                f"Source player {player.id} matches several canonical players; using {canonical_id}",
                extra={"source_player_id": player.id, "other_canonical_ids": sorted(others)},
            )

        self.link_source_player(canonical_id, player.id)
        metrics.record_identity_outcome("linked_existing")

        return IdentityResult(
            canonical_player_id=canonical_id,
            is_new_canonical=False,
            linked_source_player_ids=self.get_linked_source_ids(canonical_id),
        )

    def _create_for_group(self, group: List[ExactMatchCandidate]) -> IdentityResult:
        group = sorted(group, key=lambda c: (c.league_priority, c.source_player_id))
        primary = self.db.get(SourcePlayer, group[0].source_player_id)

        try:
            canonical = self.create_canonical_player(primary)
            for member in group:
                self.link_source_player(canonical.id, member.source_player_id, commit=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("create_canonical_player", e) from e
        except AlreadyLinked:
            self.db.rollback()
            raise
        self._commit("create_canonical_player")

        metrics.record_identity_outcome("new_canonical")
        logger.info(
            f"Created canonical player {canonical.id} ({canonical.display_name})",
            extra={"canonical_player_id": canonical.id, "group_size": len(group)},
        )
        return IdentityResult(
            canonical_player_id=canonical.id,
            is_new_canonical=True,
            linked_source_player_ids=[m.source_player_id for m in group],
        )

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConstraintViolation(operation, e) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError(operation, e) from e
