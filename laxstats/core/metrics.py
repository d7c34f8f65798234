"""
Prometheus metrics for the laxstats pipeline and read API.

Metrics exposed:
- Loader record outcome counters and per-entity load latency
- Identity linking outcome counters
- Leaderboard query counters
- Database connection pool gauges

HTTP request metrics come from prometheus_fastapi_instrumentator in main.py.
"""
from prometheus_client import Counter, Gauge, Histogram

# Loader Metrics
pipeline_records_total = Counter(
    "pipeline_records_total",
    "Records processed by the loader",
    ["entity", "outcome"]  # outcome: loaded, skipped, errors
)

pipeline_entity_load_seconds = Histogram(
    "pipeline_entity_load_seconds",
    "Time to load one entity file for one season",
    ["entity"]
)

pipeline_season_failures_total = Counter(
    "pipeline_season_failures_total",
    "Season loads aborted by a fatal error",
    ["league"]
)

# Identity Metrics
identity_links_total = Counter(
    "identity_links_total",
    "Identity resolution outcomes",
    ["outcome"]  # new_canonical, linked_existing, skipped, error
)

# Query Metrics
leaderboard_queries_total = Counter(
    "leaderboard_queries_total",
    "Leaderboard page queries",
    ["sort_by"]
)

# Database Metrics
db_pool_connections = Gauge(
    "db_pool_connections",
    "Number of database connections in the pool"
)

db_pool_connections_checked_out = Gauge(
    "db_pool_connections_checked_out",
    "Number of checked out database connections"
)


def record_load_result(entity: str, loaded: int, skipped: int, errors: int, duration_ms: int):
    """Record the outcome counts of one entity load."""
    pipeline_records_total.labels(entity=entity, outcome="loaded").inc(loaded)
    pipeline_records_total.labels(entity=entity, outcome="skipped").inc(skipped)
    pipeline_records_total.labels(entity=entity, outcome="errors").inc(errors)
    pipeline_entity_load_seconds.labels(entity=entity).observe(duration_ms / 1000)


def record_season_failure(league: str):
    """Record a season load that could not proceed."""
    pipeline_season_failures_total.labels(league=league).inc()


def record_identity_outcome(outcome: str):
    """Record a single identity resolution outcome."""
    identity_links_total.labels(outcome=outcome).inc()


def record_leaderboard_query(sort_by: str):
    """Record a leaderboard page request."""
    leaderboard_queries_total.labels(sort_by=sort_by).inc()


def update_db_pool_metrics(engine=None):
    """
    Update database connection pool metrics from SQLAlchemy engine.

    Called by the detailed health check.
    """
    if engine is None:
        from laxstats.core.database import get_engine
        engine = get_engine()

    pool = engine.pool
    # Only QueuePool exposes size/checkedout; SQLite pools do not
    if hasattr(pool, "size") and hasattr(pool, "checkedout"):
        db_pool_connections.set(pool.size())
        db_pool_connections_checked_out.set(pool.checkedout())
