"""Idempotent loader from extractor JSON output into the relational store.

Reads {output_dir}/{league}/{season}/{entity}.json and upserts one record at a
time. Every record's content hash is compared with the stored source_hash:

- same hash      -> skipped (nothing written)
- changed hash   -> row updated, counted as loaded
- no row yet     -> row inserted, counted as loaded
- record failure -> rolled back alone, counted as an error, loop continues

Each record commits on its own, so a crash mid-file leaves a valid database and
re-running the same input converges to the same end state.

Season load order (later entities resolve ids loaded by earlier ones):
    teams -> players -> stats -> games -> standings -> identity (optional)
"""
import json
import logging
import time
from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from laxstats.core import metrics
from laxstats.core.config import settings
from laxstats.core.errors import (
    AlreadyLinked,
    ConstraintViolation,
    DatabaseError,
    InputFileNotFound,
    JsonParseError,
    LaxstatsError,
    LoaderError,
    NoExactMatchData,
    SourcePlayerNotFound,
)
from laxstats.models import Game, PlayerIdentity, PlayerStat, SourcePlayer, Standing, Team
from laxstats.repositories.reference_repository import ReferenceRepository
from laxstats.services.pipeline.hashing import content_hash
from laxstats.services.pipeline.identity import IdentityService
from laxstats.services.pipeline.leagues import LeagueConfig, get_league_config
from laxstats.services.pipeline.name_normalizer import build_full_name, normalize_name

logger = logging.getLogger(__name__)

# Extract field -> player_stat column
STAT_FIELDS = {
    'goals': 'goals',
    'assists': 'assists',
    'points': 'points',
    'shots': 'shots',
    'shotsOnGoal': 'shots_on_goal',
    'groundBalls': 'ground_balls',
    'turnovers': 'turnovers',
    'causedTurnovers': 'caused_turnovers',
    'faceoffsWon': 'faceoff_wins',
    'faceoffsLost': 'faceoff_losses',
    'saves': 'saves',
    'goalsAgainst': 'goals_against',
    'gamesPlayed': 'games_played',
}

# Extract field -> standing column
STANDING_FIELDS = {
    'wins': 'wins',
    'losses': 'losses',
    'ties': 'ties',
    'points': 'points',
    'goalsFor': 'goals_for',
    'goalsAgainst': 'goals_against',
    'goalDiff': 'goal_diff',
    'gamesPlayed': 'games_played',
}

# eventStatus codes used by the league APIs
EVENT_STATUS = {
    3: 'final',
    2: 'in_progress',
}

# Errors that mean "this record is bad", not "this load is broken"
# fromtimestamp raises OverflowError or OSError for out-of-range epochs
RECORD_ERRORS = (SQLAlchemyError, KeyError, TypeError, ValueError, AttributeError, OverflowError, OSError)


class RecordOutcome(str, Enum):
    LOADED = "loaded"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class LoadResult:
    entity_type: str
    loaded: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: int = 0

    def count(self, outcome: RecordOutcome) -> None:
        if outcome is RecordOutcome.LOADED:
            self.loaded += 1
        elif outcome is RecordOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SeasonContext:
    """Ids resolved once per season load, plus the lookup maps built from them."""
    league: LeagueConfig
    league_id: int
    season: str
    season_id: int
    team_map: Dict[str, int]
    player_map: Dict[str, int]


def summarize_results(results: List[LoadResult]) -> Dict[str, int]:
    """Aggregate loaded/skipped/errors/duration across entity results."""
    totals = {'loaded': 0, 'skipped': 0, 'errors': 0, 'duration_ms': 0}
    for result in results:
        totals['loaded'] += result.loaded
        totals['skipped'] += result.skipped
        totals['errors'] += result.errors
        totals['duration_ms'] += result.duration_ms
    return totals


def read_json_file(path: Path) -> List[Any]:
    """
    Read an extractor output file.

    Raises:
        InputFileNotFound: file does not exist
        JsonParseError: file is not valid JSON or not a JSON array
    """
    if not path.is_file():
        raise InputFileNotFound(path)
    try:
        with path.open(encoding='utf-8') as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise JsonParseError(path, str(e)) from e
    if not isinstance(data, list):
        raise JsonParseError(path, f"expected a JSON array, got {type(data).__name__}")
    return data


# =============================================================================
# FIELD PARSING
# =============================================================================

def _str_or_none(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _int_or_zero(value: Any) -> int:
    parsed = _int_or_none(value)
    return 0 if parsed is None else parsed


def parse_date(value: Any) -> Optional[date]:
    """ISO date or datetime string -> date. Raises ValueError on garbage."""
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value: Any) -> Optional[datetime]:
    """Epoch seconds or ISO-8601 string -> naive UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def season_team_entry(record: Dict[str, Any], season: str) -> Optional[Dict[str, Any]]:
    """The allTeams entry of a player record for this season, if any."""
    for entry in record.get('allTeams') or []:
        if str(entry.get('year')) == season:
            return entry
    return None


class LoaderService:
    """
    Loads one league/season of extractor output.

    Args:
        db: SQLAlchemy session (committed once per record)
        output_dir: extractor output root (defaults to EXTRACT_OUTPUT_DIR)
        references: reference repository (created from db if omitted)
        identity: identity service used by the optional linking pass
    """

    def __init__(
        self,
        db: Session,
        output_dir: Optional[Path] = None,
        references: Optional[ReferenceRepository] = None,
        identity: Optional[IdentityService] = None,
    ):
        self.db = db
        self.output_dir = Path(output_dir) if output_dir else settings.output_path
        self.references = references or ReferenceRepository(db)
        self.identity = identity or IdentityService(db)

    # ========================================================================
    # Season orchestration
    # ========================================================================

    def load_season(self, league_key: str, season: str, run_identity_linking: bool = False) -> List[LoadResult]:
        """
        Load every entity file of one season in dependency order.

        Raises:
            UnknownLeagueError: league key not in the registry
            LoaderError: season could not be resolved
            JsonParseError: an input file is malformed
        """
        ctx = self.resolve_season(league_key, season)
        logger.info(
            f"Loading {ctx.league.abbreviation} season {season}",
            extra={"league": ctx.league.key, "season": season},
        )

        results = [
            self._load_teams(ctx),
            self._load_players(ctx),
            self._load_stats(ctx),
            self._load_games(ctx),
            self._load_standings(ctx),
        ]
        if run_identity_linking:
            results.append(self.run_identity_linking(ctx.league_id))

        totals = summarize_results(results)
        logger.info(
            f"Season {ctx.league.abbreviation} {season} complete: "
            f"loaded={totals['loaded']} skipped={totals['skipped']} errors={totals['errors']}",
            extra={"league": ctx.league.key, "season": season, **totals},
        )
        return results

    def resolve_season(self, league_key: str, season: str) -> SeasonContext:
        """Resolve league and season ids and build the lookup maps for one load."""
        config = get_league_config(league_key)
        season = str(season)
        try:
            year = int(season)
        except ValueError as e:
            raise LoaderError(config.key, season, f"season '{season}' is not numeric") from e

        try:
            league_id = self.references.ensure_league(config.key)
            season_id = self.references.ensure_season(league_id, year, season)
            team_map = self.references.build_team_map(league_id)
            player_map = self.references.build_player_map(league_id)
        except (DatabaseError, ConstraintViolation, SQLAlchemyError) as e:
            self.db.rollback()
            raise LoaderError(config.key, season, f"could not resolve league/season: {e}") from e

        return SeasonContext(
            league=config,
            league_id=league_id,
            season=season,
            season_id=season_id,
            team_map=team_map,
            player_map=player_map,
        )

    # ========================================================================
    # Public per-entity loads
    # ========================================================================

    def load_teams(self, league_key: str, season: str) -> LoadResult:
        return self._load_teams(self.resolve_season(league_key, season))

    def load_players(self, league_key: str, season: str) -> LoadResult:
        return self._load_players(self.resolve_season(league_key, season))

    def load_stats(self, league_key: str, season: str) -> LoadResult:
        return self._load_stats(self.resolve_season(league_key, season))

    def load_games(self, league_key: str, season: str) -> LoadResult:
        return self._load_games(self.resolve_season(league_key, season))

    def load_standings(self, league_key: str, season: str) -> LoadResult:
        return self._load_standings(self.resolve_season(league_key, season))

    # ========================================================================
    # Identity pass
    # ========================================================================

    def run_identity_linking(self, league_id: int) -> LoadResult:
        """
        Resolve identity for every live, unlinked source player of a league.

        AlreadyLinked / NoExactMatchData count as skipped (players linked
        earlier in this same pass land here); everything else counts as errors.
        """
        start = time.perf_counter()
        result = LoadResult("identity")

        try:
            rows = (
                self.db.query(SourcePlayer.id)
                .outerjoin(PlayerIdentity, PlayerIdentity.source_player_id == SourcePlayer.id)
                .filter(
                    SourcePlayer.league_id == league_id,
                    SourcePlayer.deleted_at.is_(None),
                    PlayerIdentity.id.is_(None),
                )
                .order_by(SourcePlayer.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("unlinked player lookup", e) from e

        for (source_player_id,) in rows:
            try:
                self.identity.process_identity(source_player_id)
                result.loaded += 1
            except (AlreadyLinked, NoExactMatchData):
                result.skipped += 1
                metrics.record_identity_outcome("skipped")
            except SourcePlayerNotFound:
                result.errors += 1
                metrics.record_identity_outcome("error")
            except (LaxstatsError, SQLAlchemyError) as e:
                self.db.rollback()
                result.errors += 1
                metrics.record_identity_outcome("error")
                logger.warning(f"Identity linking failed for source player {source_player_id}: {e}")

        result.duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Identity linking: linked={result.loaded} skipped={result.skipped} errors={result.errors}",
            extra={"league_id": league_id},
        )
        return result

    # ========================================================================
    # Entity handlers
    # ========================================================================

    def _load_teams(self, ctx: SeasonContext) -> LoadResult:
        def handle(record: Dict[str, Any]) -> RecordOutcome:
            source_id = str(record['officialId'])
            values = {
                'league_id': ctx.league_id,
                'source_id': source_id,
                'name': record['fullName'],
                'abbreviation': _str_or_none(record.get('locationCode')),
                'city': _str_or_none(record.get('location')),
            }
            outcome, team = self._upsert(
                Team,
                [Team.league_id == ctx.league_id, Team.source_id == source_id],
                values,
                content_hash(record),
            )

            # Linked even when skipped: an unchanged team can reappear in a new season
            self.references.ensure_team_season(
                team.id,
                ctx.season_id,
                division=_str_or_none(record.get('division')),
                conference=_str_or_none(record.get('conference')),
            )
            ctx.team_map[source_id] = team.id
            return outcome

        return self._run_entity(ctx, "teams", "teams", handle)

    def _load_players(self, ctx: SeasonContext) -> LoadResult:
        def handle(record: Dict[str, Any]) -> RecordOutcome:
            source_id = str(record['officialId'])
            first_name = _str_or_none(record.get('firstName'))
            last_name = _str_or_none(record.get('lastName'))
            full_name = build_full_name(first_name, last_name, record.get('lastNameSuffix')) or None
            team_entry = season_team_entry(record, ctx.season) or {}

            values = {
                'league_id': ctx.league_id,
                'source_id': source_id,
                'first_name': first_name,
                'last_name': last_name,
                'full_name': full_name,
                'normalized_name': normalize_name(full_name) or None,
                'position': _str_or_none(team_entry.get('position') or record.get('position')),
                'jersey_number': _str_or_none(record.get('jerseyNum')),
                'dob': parse_date(record.get('dob') or record.get('dateOfBirth')),
                'hometown': _str_or_none(record.get('hometown')),
                'college': _str_or_none(record.get('college')),
                'handedness': _str_or_none(record.get('handedness')),
                'height_inches': _int_or_none(record.get('heightInches')),
                'weight_lbs': _int_or_none(record.get('weightLbs')),
            }
            outcome, player = self._upsert(
                SourcePlayer,
                [SourcePlayer.league_id == ctx.league_id, SourcePlayer.source_id == source_id],
                values,
                content_hash(record),
            )
            ctx.player_map[source_id] = player.id
            return outcome

        return self._run_entity(ctx, "players", "players", handle)

    def _load_stats(self, ctx: SeasonContext) -> LoadResult:
        def handle(record: Dict[str, Any]) -> RecordOutcome:
            stats = record.get('stats')
            if not stats:
                return RecordOutcome.SKIPPED

            source_id = str(record['officialId'])
            player_id = ctx.player_map.get(source_id)
            if player_id is None:
                logger.warning(f"Stats for unknown player {source_id}", extra={"season": ctx.season})
                return RecordOutcome.ERROR

            team_entry = season_team_entry(record, ctx.season)
            team_id = ctx.team_map.get(str(team_entry.get('officialId'))) if team_entry else None
            if team_id is None:
                logger.warning(f"No {ctx.season} team for player {source_id}", extra={"season": ctx.season})
                return RecordOutcome.ERROR

            values = {
                'source_player_id': player_id,
                'season_id': ctx.season_id,
                'team_id': team_id,
                'game_id': None,
                'stat_type': 'regular',
            }
            for field_name, column in STAT_FIELDS.items():
                values[column] = _int_or_zero(stats.get(field_name))

            outcome, _ = self._upsert(
                PlayerStat,
                [
                    PlayerStat.source_player_id == player_id,
                    PlayerStat.season_id == ctx.season_id,
                    PlayerStat.game_id.is_(None),
                ],
                values,
                content_hash(stats),
            )
            return outcome

        # Season totals live inside players.json
        return self._run_entity(ctx, "stats", "players", handle)

    def _load_games(self, ctx: SeasonContext) -> LoadResult:
        def handle(record: Dict[str, Any]) -> RecordOutcome:
            home = (record.get('homeTeam') or {}).get('officialId')
            away = (record.get('awayTeam') or {}).get('officialId')
            if not home or not away:
                return RecordOutcome.SKIPPED

            source_id = str(record['id'])
            home_team_id = ctx.team_map.get(str(home))
            away_team_id = ctx.team_map.get(str(away))
            if home_team_id is None or away_team_id is None:
                logger.warning(
                    f"Team not found for game {source_id}: home={home}, away={away}",
                    extra={"season": ctx.season},
                )
                return RecordOutcome.ERROR

            start = parse_datetime(record.get('startTime'))
            values = {
                'season_id': ctx.season_id,
                'home_team_id': home_team_id,
                'away_team_id': away_team_id,
                'game_date': start,
                'game_time': start.strftime('%H:%M') if start else None,
                'venue': _str_or_none(record.get('venue')),
                'home_score': _int_or_none(record.get('homeScore')),
                'away_score': _int_or_none(record.get('visitorScore')),
                'status': EVENT_STATUS.get(record.get('eventStatus'), 'scheduled'),
                'source_id': source_id,
            }
            outcome, _ = self._upsert(
                Game,
                [Game.season_id == ctx.season_id, Game.source_id == source_id],
                values,
                content_hash(record),
            )
            return outcome

        return self._run_entity(ctx, "games", "events", handle)

    def _load_standings(self, ctx: SeasonContext) -> LoadResult:
        def handle(record: Dict[str, Any]) -> RecordOutcome:
            team_source_id = str(record['teamId'])
            team_id = ctx.team_map.get(team_source_id)
            if team_id is None:
                logger.warning(f"Standing for unknown team {team_source_id}", extra={"season": ctx.season})
                return RecordOutcome.ERROR

            values = {
                'season_id': ctx.season_id,
                'team_id': team_id,
                'division': _str_or_none(record.get('division')),
                'conference': _str_or_none(record.get('conference')),
                'rank': _int_or_none(record.get('position')),
            }
            for field_name, column in STANDING_FIELDS.items():
                values[column] = _int_or_zero(record.get(field_name))

            outcome, _ = self._upsert(
                Standing,
                [Standing.season_id == ctx.season_id, Standing.team_id == team_id],
                values,
                content_hash(record),
            )
            return outcome

        return self._run_entity(ctx, "standings", "standings", handle)

    # ========================================================================
    # Internals
    # ========================================================================

    def entity_path(self, league: LeagueConfig, season: str, file_stem: str) -> Path:
        return self.output_dir / league.output_dir / str(season) / f"{file_stem}.json"

    def _run_entity(
        self,
        ctx: SeasonContext,
        entity_type: str,
        file_stem: str,
        handle: Callable[[Dict[str, Any]], RecordOutcome],
    ) -> LoadResult:
        """Read one file and feed its records through a handler with per-record isolation."""
        start = time.perf_counter()
        result = LoadResult(entity_type)
        path = self.entity_path(ctx.league, ctx.season, file_stem)

        try:
            records = read_json_file(path)
        except InputFileNotFound:
            logger.warning(
                f"No {file_stem}.json for {ctx.league.abbreviation} {ctx.season}, skipping {entity_type}",
                extra={"path": str(path)},
            )
            return result

        for index, record in enumerate(records):
            if not isinstance(record, dict):
                result.count(RecordOutcome.ERROR)
                continue
            try:
                outcome = handle(record)
                self.db.commit()
            except RECORD_ERRORS as e:
                self.db.rollback()
                outcome = RecordOutcome.ERROR
                logger.warning(
                    f"Failed to load {entity_type} record {index}: {e}",
                    extra={"league": ctx.league.key, "season": ctx.season, "entity": entity_type},
                )
            except LaxstatsError as e:
                self.db.rollback()
                outcome = RecordOutcome.ERROR
                logger.warning(f"Failed to load {entity_type} record {index}: {e}")
            result.count(outcome)

        result.duration_ms = int((time.perf_counter() - start) * 1000)
        metrics.record_load_result(entity_type, result.loaded, result.skipped, result.errors, result.duration_ms)
        logger.info(
            f"Loaded {entity_type}: {result.loaded} loaded, {result.skipped} skipped, {result.errors} errors",
            extra={"league": ctx.league.key, "season": ctx.season, "entity": entity_type},
        )
        return result

    def _upsert(self, model, lookup: List[Any], values: Dict[str, Any], source_hash: str):
        """Insert, update or skip one row by natural key and content hash."""
        existing = self.db.query(model).filter(*lookup).first()
        if existing is not None:
            if existing.source_hash == source_hash:
                return RecordOutcome.SKIPPED, existing
            for key, value in values.items():
                setattr(existing, key, value)
            existing.source_hash = source_hash
            self.db.flush()
            return RecordOutcome.LOADED, existing

        instance = model(**values, source_hash=source_hash)
        self.db.add(instance)
        self.db.flush()
        return RecordOutcome.LOADED, instance
