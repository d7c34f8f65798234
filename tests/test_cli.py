"""Tests for the laxstats-load command."""
import json

import pytest

from laxstats import cli
from laxstats.models import Team
from tests.factories import make_team, write_extract

TEAMS = [make_team("ATL", "Atlas"), make_team("CHA", "Chaos")]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the command from replacing pytest's log handlers."""
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def run(db_session, output_dir, *args):
    return cli.main([*args, "--output-dir", str(output_dir)], db=db_session)


class TestLoadCommand:
    """Test suite for cli.main."""

    # Success Tests
    # ─────────────────────────────────────────────────────────────

    def test_loads_season(self, db_session, output_dir, capsys):
        """Should load the season and exit 0."""
        write_extract(output_dir, "pll", "2024", "teams", TEAMS)

        code = run(db_session, output_dir, "--league", "pll", "--season", "2024")

        assert code == 0
        assert db_session.query(Team).count() == 2
        out = capsys.readouterr().out
        assert "LOAD SUMMARY: PLL" in out
        assert "Total loaded:  2" in out

    def test_json_report(self, db_session, output_dir, capsys):
        """Should print a machine-readable report with --json."""
        write_extract(output_dir, "pll", "2024", "teams", TEAMS)

        code = run(db_session, output_dir, "--league", "pll", "--season", "2024", "--json")

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["league"] == "pll"
        assert report["failed_seasons"] == []
        season = report["seasons"][0]
        assert season["season"] == "2024"
        assert [r["entity_type"] for r in season["results"]] == ["teams", "players", "stats", "games", "standings"]
        assert report["totals"]["loaded"] == 2

    def test_rerun_loads_nothing(self, db_session, output_dir, capsys):
        """Should skip every record on an identical second run."""
        write_extract(output_dir, "pll", "2024", "teams", TEAMS)
        run(db_session, output_dir, "--league", "pll", "--season", "2024")
        capsys.readouterr()

        run(db_session, output_dir, "--league", "pll", "--season", "2024", "--json")

        report = json.loads(capsys.readouterr().out)
        assert report["totals"]["loaded"] == 0
        assert report["totals"]["skipped"] == 2

    def test_identity_flag(self, db_session, output_dir, capsys):
        """Should append the identity pass with --identity."""
        code = run(db_session, output_dir, "--league", "pll", "--season", "2024", "--identity", "--json")

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["seasons"][0]["results"][-1]["entity_type"] == "identity"

    def test_all_with_extracted_only(self, db_session, output_dir, capsys):
        """Should restrict --all to seasons the manifest marks as extracted."""
        manifest = {"source": "pll", "seasons": {"2024": {"players": {"extracted": True, "count": 1}}}}
        (output_dir / "pll").mkdir()
        (output_dir / "pll" / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")

        code = run(db_session, output_dir, "--league", "pll", "--all", "--extracted-only", "--json")

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert [s["season"] for s in report["seasons"]] == ["2024"]

    # Exit Code Tests
    # ─────────────────────────────────────────────────────────────

    def test_unknown_league_exits_1(self, db_session, output_dir, capsys):
        """Should exit 1 when the league is not in the registry."""
        code = run(db_session, output_dir, "--league", "xfl", "--season", "2024", "--json")

        assert code == 1
        report = json.loads(capsys.readouterr().out)
        assert report["failed_seasons"][0]["error"]["kind"] == "NOT_FOUND"

    def test_bad_season_exits_1(self, db_session, output_dir, capsys):
        """Should exit 1 for a non-numeric season."""
        code = run(db_session, output_dir, "--league", "pll", "--season", "latest")

        assert code == 1
        assert "FAILED" in capsys.readouterr().out

    def test_malformed_file_exits_1(self, db_session, output_dir):
        """Should exit 1 when an input file cannot be parsed."""
        path = output_dir / "pll" / "2024" / "teams.json"
        path.parent.mkdir(parents=True)
        path.write_text("[{", encoding="utf-8")

        assert run(db_session, output_dir, "--league", "pll", "--season", "2024") == 1

    def test_failed_season_does_not_stop_others(self, db_session, output_dir, capsys):
        """Should keep loading the remaining seasons after a fatal one."""
        write_extract(output_dir, "pll", "2019", "teams", "not an array")
        write_extract(output_dir, "pll", "2020", "teams", TEAMS)

        code = run(db_session, output_dir, "--league", "pll", "--all", "--json")

        assert code == 1
        report = json.loads(capsys.readouterr().out)
        assert [f["season"] for f in report["failed_seasons"]] == ["2019"]
        assert "2020" in [s["season"] for s in report["seasons"]]
        assert report["totals"]["loaded"] == 2

    def test_no_seasons_exits_1(self, db_session, output_dir, capsys):
        """Should exit 1 when nothing has been extracted."""
        code = run(db_session, output_dir, "--league", "pll", "--all", "--extracted-only")

        assert code == 1
        assert "no seasons to load" in capsys.readouterr().err

    def test_strict_exits_2_on_record_errors(self, db_session, output_dir, capsys):
        """Should exit 2 under --strict when a record failed, 0 otherwise."""
        write_extract(output_dir, "pll", "2024", "teams", TEAMS + [{"fullName": "No Id"}])

        assert run(db_session, output_dir, "--league", "pll", "--season", "2024") == 0
        assert run(db_session, output_dir, "--league", "pll", "--season", "2024", "--strict") == 2

    def test_season_or_all_required(self, db_session, output_dir):
        """Should reject invocations without --season or --all."""
        with pytest.raises(SystemExit) as exc_info:
            run(db_session, output_dir, "--league", "pll")

        assert exc_info.value.code == 2


class TestExitCodeFor:
    """Test suite for exit_code_for."""

    def test_codes(self):
        """Should rank fatal seasons above record errors."""
        clean = {'failed_seasons': [], 'totals': {'errors': 0}}
        errors = {'failed_seasons': [], 'totals': {'errors': 3}}
        failed = {'failed_seasons': [{'season': '2024'}], 'totals': {'errors': 3}}

        assert cli.exit_code_for(clean, strict=True) == 0
        assert cli.exit_code_for(errors) == 0
        assert cli.exit_code_for(errors, strict=True) == 2
        assert cli.exit_code_for(failed, strict=True) == 1
