"""
Error taxonomy for the pipeline and read API.

Every error carries a closed ErrorKind so callers (the loader's identity pass,
the CLI, the API exception handlers) can switch on kind instead of on class.
"""
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    ALREADY_LINKED = "ALREADY_LINKED"
    NO_EXACT_MATCH_DATA = "NO_EXACT_MATCH_DATA"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    JSON_PARSE = "JSON_PARSE"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    DATABASE = "DATABASE"
    LOADER = "LOADER"
    INVALID_INPUT = "INVALID_INPUT"


class LaxstatsError(Exception):
    """Base class for all pipeline and query errors."""

    kind: ErrorKind = ErrorKind.DATABASE

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.details}


# =============================================================================
# LOOKUP ERRORS
# =============================================================================

class NotFoundError(LaxstatsError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} {identifier} not found",
            {"resource": resource, "identifier": identifier},
        )
        self.resource = resource
        self.identifier = identifier


class UnknownLeagueError(NotFoundError):
    def __init__(self, league_key: str):
        super().__init__("league", league_key)
        self.league_key = league_key


class SourcePlayerNotFound(NotFoundError):
    def __init__(self, source_player_id: int):
        super().__init__("source_player", source_player_id)
        self.source_player_id = source_player_id


# =============================================================================
# IDENTITY ERRORS
# =============================================================================

class AlreadyLinked(LaxstatsError):
    """The source player already has a canonical identity."""

    kind = ErrorKind.ALREADY_LINKED

    def __init__(self, source_player_id: int, existing_canonical_player_id: int):
        super().__init__(
            f"source player {source_player_id} is already linked to canonical player "
            f"{existing_canonical_player_id}",
            {
                "source_player_id": source_player_id,
                "existing_canonical_player_id": existing_canonical_player_id,
            },
        )
        self.source_player_id = source_player_id
        self.existing_canonical_player_id = existing_canonical_player_id


class NoExactMatchData(LaxstatsError):
    """Exact matching needs both a normalized name and a date of birth."""

    kind = ErrorKind.NO_EXACT_MATCH_DATA

    def __init__(self, source_player_id: int, missing_field: str):
        super().__init__(
            f"source player {source_player_id} has no {missing_field}",
            {"source_player_id": source_player_id, "missing_field": missing_field},
        )
        self.source_player_id = source_player_id
        self.missing_field = missing_field


# =============================================================================
# LOADER IO ERRORS
# =============================================================================

class InputFileNotFound(LaxstatsError):
    kind = ErrorKind.FILE_NOT_FOUND

    def __init__(self, path: Path):
        super().__init__(f"input file not found: {path}", {"path": str(path)})
        self.path = path


class JsonParseError(LaxstatsError):
    kind = ErrorKind.JSON_PARSE

    def __init__(self, path: Path, reason: str):
        super().__init__(f"could not parse {path}: {reason}", {"path": str(path), "reason": reason})
        self.path = path
        self.reason = reason


class LoaderError(LaxstatsError):
    """A season load that cannot proceed (league or season unresolvable)."""

    kind = ErrorKind.LOADER

    def __init__(self, league: str, season: str, message: str):
        super().__init__(message, {"league": league, "season": season})
        self.league = league
        self.season = season


# =============================================================================
# DATABASE ERRORS
# =============================================================================

class ConstraintViolation(LaxstatsError):
    kind = ErrorKind.CONSTRAINT_VIOLATION

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} violated a constraint: {cause}", {"operation": operation})
        self.operation = operation
        self.cause = cause


class DatabaseError(LaxstatsError):
    kind = ErrorKind.DATABASE

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation} failed: {cause}", {"operation": operation})
        self.operation = operation
        self.cause = cause


# =============================================================================
# QUERY INPUT ERRORS
# =============================================================================

class InvalidInputError(LaxstatsError):
    kind = ErrorKind.INVALID_INPUT


class InvalidCursorError(InvalidInputError):
    def __init__(self, cursor: str):
        super().__init__("malformed leaderboard cursor", {"cursor": cursor})
        self.cursor = cursor
