"""
Tests for keyset-paginated leaderboards.

Test Strategy:
1. Walk every page for each page size and compare with the full ordering
2. Ties and NULL counters
3. Page-relative rank
4. League / season / stat type filters and soft-deleted players
"""
from datetime import datetime

import pytest

from laxstats.core.errors import InvalidInputError, NotFoundError
from laxstats.models import PlayerStat, SourcePlayer
from laxstats.repositories.stats_repository import LeaderboardFilters, StatsCursor, StatsRepository
from tests.factories import create_stat_lines

# Ties at 7 and a NULL that sorts as 0
POINTS = [10, 7, 7, 3, None, 7, 12, 0, 3]


@pytest.fixture
def repo(db_session):
    return StatsRepository(db_session)


def _expected_order(stat_ids, points):
    pairs = [(p or 0, stat_id) for stat_id, p in zip(stat_ids, points)]
    return [stat_id for _, stat_id in sorted(pairs, reverse=True)]


def _walk(repo, limit, filters=None, sort_by="points"):
    seen, cursor, pages = [], None, 0
    while True:
        page = repo.get_leaderboard(filters, sort_by=sort_by, limit=limit, cursor=cursor)
        seen.extend(entry.stat_id for entry in page.entries)
        pages += 1
        if not page.has_more:
            return seen, pages
        cursor = page.next_cursor


class TestLeaderboardPagination:
    """Test suite for cursor pagination."""

    # Completeness Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.parametrize("limit", range(1, len(POINTS) + 2))
    def test_pages_cover_everything_once(self, db_session, leagues, repo, limit):
        """Should return every stat line exactly once, in order, for any page size."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], POINTS)

        seen, pages = _walk(repo, limit)

        assert seen == _expected_order(stat_ids, POINTS)
        assert len(set(seen)) == len(POINTS)
        assert pages == -(-len(POINTS) // limit)

    def test_ties_are_ordered_by_id_descending(self, db_session, leagues, repo):
        """Should break ties on the sort column by descending id."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], [5, 5, 5])

        page = repo.get_leaderboard(sort_by="points", limit=10)

        assert [e.stat_id for e in page.entries] == sorted(stat_ids, reverse=True)

    def test_last_page_has_no_cursor(self, db_session, leagues, repo):
        """Should return next_cursor only when another page exists."""
        create_stat_lines(db_session, leagues["pll"], [3, 2, 1])

        assert repo.get_leaderboard(limit=2).next_cursor is not None
        assert repo.get_leaderboard(limit=3).next_cursor is None

    def test_cursor_points_at_last_row(self, db_session, leagues, repo):
        """Should build the cursor from the last returned row."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], [9, 8, 7])

        page = repo.get_leaderboard(limit=2)

        assert page.next_cursor == StatsCursor(value=8, id=stat_ids[1])

    def test_rank_is_page_relative(self, db_session, leagues, repo):
        """Should number entries from 1 on every page."""
        create_stat_lines(db_session, leagues["pll"], [5, 4, 3, 2])

        first = repo.get_leaderboard(limit=2)
        second = repo.get_leaderboard(limit=2, cursor=first.next_cursor)

        assert [e.rank for e in first.entries] == [1, 2]
        assert [e.rank for e in second.entries] == [1, 2]

    def test_null_counter_sorts_as_zero(self, db_session, leagues, repo):
        """Should treat a NULL points value as 0."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], [None, 1])

        page = repo.get_leaderboard(limit=10)

        assert [e.stat_id for e in page.entries] == [stat_ids[1], stat_ids[0]]
        assert page.entries[1].points == 0

    def test_sort_by_goals(self, db_session, leagues, repo):
        """Should order by the requested column."""
        create_stat_lines(db_session, leagues["pll"], [10, 4, 7])

        page = repo.get_leaderboard(sort_by="goals", limit=10)

        assert [e.goals for e in page.entries] == [5, 3, 2]


class TestLeaderboardFilters:
    """Test suite for leaderboard filters."""

    def test_league_filter(self, db_session, leagues, repo):
        """Should restrict to the given leagues and merge several into one ordering."""
        _, pll_ids = create_stat_lines(db_session, leagues["pll"], [10, 5])
        _, nll_ids = create_stat_lines(db_session, leagues["nll"], [8])

        only_nll = repo.get_leaderboard(LeaderboardFilters(league_ids=[leagues["nll"]]), limit=10)
        both = repo.get_leaderboard(LeaderboardFilters(league_ids=[leagues["pll"], leagues["nll"]]), limit=10)

        assert [e.stat_id for e in only_nll.entries] == nll_ids
        assert only_nll.entries[0].league_abbreviation == "NLL"
        assert [e.stat_id for e in both.entries] == [pll_ids[0], nll_ids[0], pll_ids[1]]

    def test_season_filters(self, db_session, leagues, repo):
        """Should filter by season id or season year."""
        season_2023, ids_2023 = create_stat_lines(db_session, leagues["pll"], [4], year=2023)
        _, ids_2024 = create_stat_lines(db_session, leagues["pll"], [6], year=2024)

        by_id = repo.get_leaderboard(LeaderboardFilters(season_id=season_2023), limit=10)
        by_year = repo.get_leaderboard(LeaderboardFilters(season_year=2024), limit=10)

        assert [e.stat_id for e in by_id.entries] == ids_2023
        assert [e.stat_id for e in by_year.entries] == ids_2024
        assert by_year.entries[0].season_year == 2024

    def test_stat_type_filter(self, db_session, leagues, repo):
        """Should filter by stat type."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], [4, 6])
        playoff = db_session.get(PlayerStat, stat_ids[0])
        playoff.stat_type = "playoff"
        db_session.commit()

        page = repo.get_leaderboard(LeaderboardFilters(stat_type="playoff"), limit=10)

        assert [e.stat_id for e in page.entries] == [stat_ids[0]]

    def test_deleted_players_are_excluded(self, db_session, leagues, repo):
        """Should hide stat lines of soft-deleted players."""
        _, stat_ids = create_stat_lines(db_session, leagues["pll"], [9, 1])
        deleted = db_session.get(SourcePlayer, db_session.get(PlayerStat, stat_ids[0]).source_player_id)
        deleted.deleted_at = datetime(2024, 1, 1)
        db_session.commit()

        page = repo.get_leaderboard(limit=10)

        assert [e.stat_id for e in page.entries] == [stat_ids[1]]

    def test_entry_details(self, db_session, leagues, repo):
        """Should carry player, team and league details on each entry."""
        create_stat_lines(db_session, leagues["pll"], [9])

        entry = repo.get_leaderboard(limit=1).entries[0].to_dict()

        assert entry["player_name"].startswith("Player ")
        assert entry["team_abbreviation"] == f"T{leagues['pll']}"
        assert entry["league_abbreviation"] == "PLL"
        assert entry["games_played"] == 10


class TestLeaderboardValidation:
    """Test suite for leaderboard argument validation."""

    def test_invalid_sort_by(self, repo):
        """Should reject unknown sort columns."""
        with pytest.raises(InvalidInputError):
            repo.get_leaderboard(sort_by="penalties")

    def test_invalid_limit(self, repo):
        """Should reject a limit below 1."""
        with pytest.raises(InvalidInputError):
            repo.get_leaderboard(limit=0)

    def test_invalid_stat_type(self, repo):
        """Should reject unknown stat types."""
        with pytest.raises(InvalidInputError):
            repo.get_leaderboard(LeaderboardFilters(stat_type="preseason"))

    def test_empty_table(self, repo):
        """Should return an empty last page."""
        page = repo.get_leaderboard()
        assert page.entries == []
        assert page.has_more is False


class TestStatLines:
    """Test suite for single stat line reads."""

    def test_get_stat(self, db_session, leagues, repo):
        """Should return one stat line with its context."""
        _, (stat_id,) = create_stat_lines(db_session, leagues["nll"], [6], year=225)

        stat = repo.get_stat(stat_id)

        assert stat["points"] == 6
        assert stat["season_year"] == 225
        assert stat["league_abbreviation"] == "NLL"
        assert stat["faceoff_wins"] == 0

    def test_get_stat_not_found(self, repo):
        """Should raise NotFoundError for an unknown id."""
        with pytest.raises(NotFoundError):
            repo.get_stat(31337)
