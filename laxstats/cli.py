"""
Load extracted league data into the database.

Usage:
    laxstats-load --league pll --season 2024
    laxstats-load --league nll --all --identity
    laxstats-load --league pll --all --json > report.json

Exit codes:
    0  every requested season loaded (record-level errors are reported, not fatal)
    1  a season could not be loaded at all (unknown league, bad season, malformed file)
    2  --strict was given and at least one record failed
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from laxstats.core import metrics
from laxstats.core.config import settings
from laxstats.core.database import session_scope
from laxstats.core.errors import LaxstatsError
from laxstats.core.logging import clear_correlation_id, configure_logging, new_run_id, set_correlation_id
from laxstats.services.pipeline.leagues import LEAGUE_CONFIGS, get_league_config, get_league_seasons
from laxstats.services.pipeline.loader import LoaderService, summarize_results
from laxstats.services.pipeline.manifest import read_manifest

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SEASON_FAILED = 1
EXIT_RECORD_ERRORS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="laxstats-load", description="Load extracted lacrosse data")
    parser.add_argument('--league', '-l', required=True,
                        help=f"League key ({', '.join(sorted(LEAGUE_CONFIGS))})")
    seasons = parser.add_mutually_exclusive_group(required=True)
    seasons.add_argument('--season', '-s', type=str,
                         help='Season to load (year, or the source season id for NLL/MSL)')
    seasons.add_argument('--all', '-a', action='store_true',
                         help='Load every known season of the league')
    parser.add_argument('--identity', '-i', action='store_true',
                        help='Run identity linking after each season')
    parser.add_argument('--json', action='store_true',
                        help='Print the report as JSON')
    parser.add_argument('--strict', action='store_true',
                        help='Exit with status 2 when any record failed to load')
    parser.add_argument('--extracted-only', action='store_true',
                        help="With --all, only load seasons the extractor's manifest marks as extracted")
    parser.add_argument('--output-dir', type=Path, default=None,
                        help='Extractor output directory (default: EXTRACT_OUTPUT_DIR)')
    return parser


def resolve_seasons(league: str, args: argparse.Namespace, output_dir: Path) -> List[str]:
    """Seasons to load for this invocation, in load order."""
    if args.season:
        return [args.season]

    seasons = get_league_seasons(league)
    if args.extracted_only:
        manifest = read_manifest(output_dir, get_league_config(league).output_dir)
        if manifest is None:
            logger.warning(f"No manifest for {league}; nothing has been extracted")
            return []
        extracted = manifest.extracted_seasons("players")
        seasons = [s for s in seasons if s in extracted] + [s for s in extracted if s not in seasons]
    return seasons


def run_load(
    db: Session,
    league: str,
    seasons: List[str],
    run_identity: bool = False,
    output_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Load each season, collecting per-season results.

    A season that fails fatally is recorded with its error and the remaining
    seasons still run.
    """
    loader = LoaderService(db, output_dir=output_dir)
    report: Dict[str, Any] = {'league': league, 'seasons': [], 'failed_seasons': []}
    all_results = []

    for season in seasons:
        try:
            results = loader.load_season(league, season, run_identity_linking=run_identity)
        except LaxstatsError as e:
            metrics.record_season_failure(league)
            logger.error(f"Season {season} failed: {e}", extra={"league": league, "season": season})
            report['failed_seasons'].append({'season': season, 'error': e.to_dict()})
            continue

        all_results.extend(results)
        report['seasons'].append({
            'season': season,
            'results': [r.to_dict() for r in results],
            'totals': summarize_results(results),
        })

    report['totals'] = summarize_results(all_results)
    return report


def print_report(report: Dict[str, Any]) -> None:
    print("=" * 60)
    print(f"LOAD SUMMARY: {report['league'].upper()}")
    print("=" * 60)

    for season in report['seasons']:
        totals = season['totals']
        print(f"\n{season['season']}: loaded={totals['loaded']} skipped={totals['skipped']} "
              f"errors={totals['errors']} ({totals['duration_ms']}ms)")
        for result in season['results']:
            print(f"  {result['entity_type']:<10} loaded={result['loaded']:<6} "
                  f"skipped={result['skipped']:<6} errors={result['errors']}")

    for failed in report['failed_seasons']:
        print(f"\n{failed['season']}: FAILED - {failed['error']['message']}")

    totals = report['totals']
    print()
    print("=" * 60)
    print(f"Total loaded:  {totals['loaded']}")
    print(f"Total skipped: {totals['skipped']}")
    print(f"Total errors:  {totals['errors']}")
    print(f"Duration:      {totals['duration_ms']}ms")


def exit_code_for(report: Dict[str, Any], strict: bool = False) -> int:
    if report['failed_seasons']:
        return EXIT_SEASON_FAILED
    if strict and report['totals']['errors'] > 0:
        return EXIT_RECORD_ERRORS
    return EXIT_OK


def main(argv: Optional[List[str]] = None, db: Optional[Session] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    output_dir = args.output_dir or settings.output_path

    token = set_correlation_id(new_run_id())
    try:
        try:
            seasons = resolve_seasons(args.league, args, output_dir)
        except LaxstatsError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_SEASON_FAILED

        if not seasons:
            print(f"Error: no seasons to load for league '{args.league}'", file=sys.stderr)
            return EXIT_SEASON_FAILED

        logger.info(
            f"Loading {args.league.upper()} seasons: {', '.join(seasons)}",
            extra={"identity": args.identity},
        )

        if db is not None:
            report = run_load(db, args.league, seasons, args.identity, output_dir)
        else:
            with session_scope() as session:
                report = run_load(session, args.league, seasons, args.identity, output_dir)

        if args.json:
            print(json.dumps(report, indent=2))
        else:
            print_report(report)

        return exit_code_for(report, strict=args.strict)
    finally:
        clear_correlation_id(token)


if __name__ == "__main__":
    sys.exit(main())
