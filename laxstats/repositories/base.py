"""
Shared plumbing for repositories.

Repositories keep query logic out of the loader, identity and stats services
and give each service a narrow handle on the session it was constructed with.

Example:
    class PlayerRepository(BaseRepository[SourcePlayer]):
        def get_by_source_id(self, league_id: int, source_id: str) -> Optional[SourcePlayer]:
            return self.where_first(
                SourcePlayer.league_id == league_id,
                SourcePlayer.source_id == source_id,
            )
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT], ABC):
    """Holds the model class a repository serves and the caller's session."""

    def __init__(self, model_type: Type[ModelT], db: Session):
        self.model_type = model_type
        self.db = db

    def find_by_id(self, id: int) -> Optional[ModelT]:
        return self.db.get(self.model_type, id)

    def where_first(self, *criterion) -> Optional[ModelT]:
        """First row of the model matching every criterion, or None."""
        return self.db.query(self.model_type).filter(*criterion).first()
