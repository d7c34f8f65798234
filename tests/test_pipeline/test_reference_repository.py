"""Tests for ReferenceRepository get-or-create and lookup maps."""
import pytest

from laxstats.core.errors import UnknownLeagueError
from laxstats.models import League, Season, Team, TeamSeason
from laxstats.repositories.reference_repository import ReferenceRepository
from tests.factories import create_source_player


@pytest.fixture
def refs(db_session):
    return ReferenceRepository(db_session)


class TestEnsureLeague:
    """Tests for ensure_league."""

    def test_creates_league_from_registry(self, db_session, refs):
        """Should insert the league with its registry name and priority."""
        league_id = refs.ensure_league("msl")

        league = db_session.get(League, league_id)
        assert league.abbreviation == "MSL"
        assert league.name == "Major Series Lacrosse"
        assert league.priority == 3

    def test_is_idempotent(self, db_session, refs):
        """Should return the same id without inserting again."""
        assert refs.ensure_league("pll") == refs.ensure_league("PLL")
        assert db_session.query(League).count() == 1

    def test_unknown_league(self, refs):
        """Should raise UnknownLeagueError for keys outside the registry."""
        with pytest.raises(UnknownLeagueError):
            refs.ensure_league("xfl")

    def test_find_by_abbreviation_is_case_insensitive(self, leagues, refs):
        """Should find leagues by lowercase abbreviation."""
        assert refs.find_league_by_abbreviation("nll").id == leagues["nll"]
        assert refs.find_league_by_abbreviation("wla") is None


class TestEnsureSeason:
    """Tests for ensure_season and ensure_team_season."""

    def test_creates_season_once(self, db_session, leagues, refs):
        """Should return the same season id for the same league and year."""
        first = refs.ensure_season(leagues["pll"], 2024)
        second = refs.ensure_season(leagues["pll"], 2024)

        assert first == second
        season = db_session.get(Season, first)
        assert season.name == "2024"
        assert season.source_season_id == "2024"

    def test_same_year_in_two_leagues(self, db_session, leagues, refs):
        """Should keep seasons separate per league."""
        assert refs.ensure_season(leagues["pll"], 2024) != refs.ensure_season(leagues["nll"], 2024)
        assert db_session.query(Season).count() == 2

    def test_team_season_link_is_idempotent(self, db_session, leagues, refs):
        """Should link a team to a season exactly once."""
        season_id = refs.ensure_season(leagues["pll"], 2024)
        team = Team(league_id=leagues["pll"], name="Atlas", source_id="ATL")
        db_session.add(team)
        db_session.commit()

        first = refs.ensure_team_season(team.id, season_id, division="East")
        second = refs.ensure_team_season(team.id, season_id, division="West")

        assert first == second
        link = db_session.query(TeamSeason).one()
        assert link.division == "East"


class TestLookupMaps:
    """Tests for external id -> internal id maps."""

    def test_team_map_is_per_league(self, db_session, leagues, refs):
        """Should only include teams of the requested league."""
        db_session.add_all([
            Team(league_id=leagues["pll"], name="Atlas", source_id="ATL"),
            Team(league_id=leagues["nll"], name="Rock", source_id="TOR"),
        ])
        db_session.commit()

        team_map = refs.build_team_map(leagues["pll"])

        assert list(team_map) == ["ATL"]

    def test_player_map(self, db_session, leagues, refs):
        """Should map source ids to source player ids."""
        player = create_source_player(db_session, leagues["nll"], "nll-7", "Lyle Thompson")

        assert refs.build_player_map(leagues["nll"]) == {"nll-7": player.id}
        assert refs.build_player_map(leagues["pll"]) == {}
