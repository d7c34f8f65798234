#!/usr/bin/env python3
"""
Initialize database tables from SQLAlchemy models.

Creates all tables and seeds the league registry so priorities are in place
before the first load.
"""
import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from laxstats.core.logging import configure_logging, get_logger

configure_logging(json_output=False)
logger = get_logger("init_database")


def main():
    """Create all database tables and seed leagues."""
    from laxstats.core.database import init_db, session_scope
    from laxstats.repositories.reference_repository import ReferenceRepository
    from laxstats.services.pipeline.leagues import LEAGUE_CONFIGS

    logger.info("Creating database tables from SQLAlchemy models...")
    init_db()

    with session_scope() as db:
        refs = ReferenceRepository(db)
        for key in LEAGUE_CONFIGS:
            refs.ensure_league(key)

    logger.info(f"All tables created, {len(LEAGUE_CONFIGS)} leagues seeded")


if __name__ == "__main__":
    main()
