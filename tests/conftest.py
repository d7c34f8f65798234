"""Shared pytest fixtures for laxstats tests."""
from pathlib import Path
from typing import Dict, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from laxstats.models import Base

    # StaticPool keeps one connection so the TestClient thread sees the same
    # in-memory database as the test itself
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def leagues(db_session: Session) -> Dict[str, int]:
    """Seed PLL (priority 1) and NLL (priority 2); returns key -> league id."""
    from laxstats.repositories.reference_repository import ReferenceRepository

    refs = ReferenceRepository(db_session)
    return {key: refs.ensure_league(key) for key in ("pll", "nll")}


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty extractor output directory."""
    root = tmp_path / "output"
    root.mkdir()
    return root


@pytest.fixture
def test_client(db_session):
    """
    Create FastAPI TestClient bound to the test database.

    Not used as a context manager, so the lifespan hooks do not run.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/v1/stats/leaderboard")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from laxstats.main import app
    from laxstats.core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()


