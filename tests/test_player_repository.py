"""Tests for PlayerRepository lookups."""
from datetime import datetime

import pytest

from laxstats.core.errors import NotFoundError
from laxstats.repositories.player_repository import PlayerRepository
from tests.factories import create_source_player


@pytest.fixture
def players(db_session):
    return PlayerRepository(db_session)


class TestSourcePlayerLookup:
    """Tests for get_source_player and get_by_source_id."""

    def test_get_by_source_id(self, db_session, leagues, players):
        """Should find a player by league and external id."""
        created = create_source_player(db_session, leagues["pll"], "abc-1", "Lyle Thompson")
        create_source_player(db_session, leagues["nll"], "abc-1", "Lyle Thompson")

        found = players.get_by_source_id(leagues["pll"], "abc-1")

        assert found.id == created.id
        assert players.get_by_source_id(leagues["pll"], "missing") is None

    def test_get_source_player_hides_deleted(self, db_session, leagues, players):
        """Should raise NotFoundError for soft-deleted players."""
        player = create_source_player(db_session, leagues["pll"], "p-9", "Gone Player")
        player.deleted_at = datetime(2024, 1, 1)
        db_session.commit()

        with pytest.raises(NotFoundError):
            players.get_source_player(player.id)

    def test_search_excludes_deleted(self, db_session, leagues, players):
        """Should leave soft-deleted players out of search results."""
        create_source_player(db_session, leagues["pll"], "p-1", "Grant Ament")
        deleted = create_source_player(db_session, leagues["pll"], "p-2", "Grant Smith")
        deleted.deleted_at = datetime(2024, 1, 1)
        db_session.commit()

        results = players.search_players("grant")

        assert [r["full_name"] for r in results] == ["Grant Ament"]
