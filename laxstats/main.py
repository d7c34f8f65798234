"""
FastAPI application exposing the read side of the lacrosse stats pipeline.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from laxstats.core import metrics
from laxstats.core.config import settings
from laxstats.core.database import get_db
from laxstats.core.errors import ErrorKind, LaxstatsError
from laxstats.core.logging import configure_logging, get_logger
from laxstats.core.middleware import CorrelationIdMiddleware
from laxstats.api.routes import players, stats
from laxstats.models import CanonicalPlayer, League, PlayerStat, SourcePlayer

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.ALREADY_LINKED: 409,
    ErrorKind.NO_EXACT_MATCH_DATA: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Cross-league lacrosse player identities, stats and leaderboards",
    lifespan=lifespan
)

# Add correlation ID middleware
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


@app.exception_handler(LaxstatsError)
async def laxstats_error_handler(request: Request, exc: LaxstatsError) -> JSONResponse:
    status_code = ERROR_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"Unhandled {exc.kind.value} on {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


# API v1
app.include_router(players.router, prefix="/api/v1")
app.include_router(stats.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "players": "/api/v1/players",
            "stats": "/api/v1/stats",
            "docs": "/docs",
            "health": "/health",
        }
    }


@app.get("/health")
async def health():
    """Basic health check."""
    return {"status": "healthy", "version": settings.APP_VERSION}


@app.get("/health/detailed")
async def health_detailed(db: Session = Depends(get_db)):
    """Health check with database connectivity and row counts."""
    try:
        database = {
            "status": "connected",
            "counts": {
                "leagues": db.query(func.count(League.id)).scalar(),
                "source_players": db.query(func.count(SourcePlayer.id)).scalar(),
                "canonical_players": db.query(func.count(CanonicalPlayer.id)).scalar(),
                "player_stats": db.query(func.count(PlayerStat.id)).scalar(),
            },
        }
        metrics.update_db_pool_metrics(db.get_bind())
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        database = {"status": "unhealthy", "error": str(e)}

    healthy = database["status"] == "connected"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "version": settings.APP_VERSION,
            "components": {"database": database},
        },
    )
