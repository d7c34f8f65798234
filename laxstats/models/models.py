"""
Relational models for the lacrosse stats pipeline.

Dimension tables (league, season, team, team_season) are get-or-created by the
reference repository. Fact tables (source_player, player_stat, game, standing)
carry a source_hash so the loader can skip records that did not change between
extractions. canonical_player and player_identity are written only by the
identity service.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Float, Integer, DateTime, Date, ForeignKey, Boolean, Text, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are timezone-less)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# =============================================================================
# DIMENSIONS
# =============================================================================

class League(TimestampMixin, Base):
    """Source league. Lower priority means a more trusted source."""
    __tablename__ = "league"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    abbreviation = Column(String(10), nullable=False, unique=True)  # 'PLL', 'NLL', ...
    priority = Column(Integer, nullable=False, default=99)
    active = Column(Boolean, nullable=False, default=True)

    seasons = relationship("Season", back_populates="league")


class Season(TimestampMixin, Base):
    __tablename__ = "season"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("league.id"), nullable=False)
    year = Column(Integer, nullable=False)
    name = Column(String(50), nullable=False)
    source_season_id = Column(String(50), nullable=True)  # NLL '225', MSL '9567', ...
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    league = relationship("League", back_populates="seasons")

    __table_args__ = (
        UniqueConstraint('league_id', 'year', name='uq_season_league_year'),
    )


class Team(TimestampMixin, Base):
    __tablename__ = "team"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("league.id"), nullable=False)
    name = Column(String(150), nullable=False)
    abbreviation = Column(String(20), nullable=True)
    city = Column(String(100), nullable=True)
    source_id = Column(String(50), nullable=False)  # officialId from the extract
    source_hash = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint('league_id', 'source_id', name='uq_team_league_source'),
    )


class TeamSeason(TimestampMixin, Base):
    __tablename__ = "team_season"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, ForeignKey("team.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("season.id"), nullable=False)
    division = Column(String(50), nullable=True)
    conference = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint('team_id', 'season_id', name='uq_team_season'),
    )


# =============================================================================
# PLAYERS & IDENTITY
# =============================================================================

class SourcePlayer(TimestampMixin, Base):
    """
    A player as one league's source reports them.

    Never hard-deleted; deleted_at hides the row from identity matching and
    every read query.
    """
    __tablename__ = "source_player"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("league.id"), nullable=False)
    source_id = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    full_name = Column(String(200), nullable=True)
    normalized_name = Column(String(200), nullable=True)
    position = Column(String(20), nullable=True)
    jersey_number = Column(String(10), nullable=True)
    dob = Column(Date, nullable=True)
    hometown = Column(String(150), nullable=True)
    college = Column(String(150), nullable=True)
    handedness = Column(String(10), nullable=True)
    height_inches = Column(Integer, nullable=True)
    weight_lbs = Column(Integer, nullable=True)
    source_hash = Column(String(64), nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    league = relationship("League")
    identity = relationship("PlayerIdentity", back_populates="source_player", uselist=False)

    __table_args__ = (
        UniqueConstraint('league_id', 'source_id', name='uq_source_player_league_source'),
        Index('ix_source_player_match', 'normalized_name', 'dob'),
    )


class CanonicalPlayer(TimestampMixin, Base):
    """Golden record for one real-world player across leagues."""
    __tablename__ = "canonical_player"

    id = Column(Integer, primary_key=True, autoincrement=True)
    primary_source_player_id = Column(Integer, ForeignKey("source_player.id"), nullable=False)
    display_name = Column(String(200), nullable=False)
    position = Column(String(20), nullable=True)
    dob = Column(Date, nullable=True)
    hometown = Column(String(150), nullable=True)
    college = Column(String(150), nullable=True)

    identities = relationship("PlayerIdentity", back_populates="canonical_player")


class PlayerIdentity(Base):
    """Link from a source player to its canonical player. Insert-only."""
    __tablename__ = "player_identity"

    id = Column(Integer, primary_key=True, autoincrement=True)
    canonical_player_id = Column(Integer, ForeignKey("canonical_player.id"), nullable=False, index=True)
    source_player_id = Column(Integer, ForeignKey("source_player.id"), nullable=False, unique=True)
    confidence_score = Column(Float, nullable=False, default=1.0)
    match_method = Column(String(20), nullable=False, default="exact")
    created_at = Column(DateTime, nullable=False, default=utcnow)

    canonical_player = relationship("CanonicalPlayer", back_populates="identities")
    source_player = relationship("SourcePlayer", back_populates="identity")


# =============================================================================
# FACTS
# =============================================================================

class PlayerStat(TimestampMixin, Base):
    """Per player/season/game stat line. game_id NULL means season totals."""
    __tablename__ = "player_stat"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_player_id = Column(Integer, ForeignKey("source_player.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("season.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("team.id"), nullable=False)
    game_id = Column(String(50), nullable=True)
    stat_type = Column(String(20), nullable=False, default="regular")  # regular, playoff, career

    # Offense
    goals = Column(Integer, default=0)
    assists = Column(Integer, default=0)
    points = Column(Integer, default=0)
    shots = Column(Integer, default=0)
    shots_on_goal = Column(Integer, default=0)

    # Possession
    ground_balls = Column(Integer, default=0)
    turnovers = Column(Integer, default=0)
    caused_turnovers = Column(Integer, default=0)

    # Faceoffs
    faceoff_wins = Column(Integer, default=0)
    faceoff_losses = Column(Integer, default=0)

    # Goalie
    saves = Column(Integer, default=0)
    goals_against = Column(Integer, default=0)

    games_played = Column(Integer, default=0)
    source_hash = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint('source_player_id', 'season_id', 'game_id', name='uq_player_stat_player_season_game'),
        Index('ix_player_stat_season', 'season_id'),
        Index('ix_player_stat_points', 'points'),
    )


class Standing(TimestampMixin, Base):
    __tablename__ = "standing"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey("season.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("team.id"), nullable=False)
    division = Column(String(50), nullable=True)
    conference = Column(String(50), nullable=True)
    wins = Column(Integer, default=0)
    losses = Column(Integer, default=0)
    ties = Column(Integer, default=0)
    points = Column(Integer, default=0)
    goals_for = Column(Integer, default=0)
    goals_against = Column(Integer, default=0)
    goal_diff = Column(Integer, default=0)
    games_played = Column(Integer, default=0)
    rank = Column(Integer, nullable=True)
    source_hash = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint('season_id', 'team_id', name='uq_standing_season_team'),
    )


class Game(TimestampMixin, Base):
    __tablename__ = "game"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season_id = Column(Integer, ForeignKey("season.id"), nullable=False)
    home_team_id = Column(Integer, ForeignKey("team.id"), nullable=False)
    away_team_id = Column(Integer, ForeignKey("team.id"), nullable=False)
    game_date = Column(DateTime, nullable=True)
    game_time = Column(String(20), nullable=True)
    venue = Column(String(200), nullable=True)
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")  # scheduled, in_progress, final, postponed, cancelled
    source_id = Column(String(50), nullable=True)
    source_hash = Column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint('season_id', 'source_id', name='uq_game_season_source'),
    )


# =============================================================================
# EXTERNAL COLLABORATOR STATE
# =============================================================================

class ScrapeRun(TimestampMixin, Base):
    """Extraction run bookkeeping written by the extractor, never by the loader."""
    __tablename__ = "scrape_run"

    id = Column(Integer, primary_key=True, autoincrement=True)
    league_id = Column(Integer, ForeignKey("league.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("season.id"), nullable=True)
    entity_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    records_processed = Column(Integer, default=0)
    error_message = Column(Text, nullable=True)
