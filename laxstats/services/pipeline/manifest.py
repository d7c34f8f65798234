"""Read-only view of the extractor's manifest.

The extractor writes {output_dir}/{source}/manifest.json after each run:

    {
      "source": "pll",
      "seasons": {"2024": {"players": {"extracted": true, "count": 312,
                                       "timestamp": "2024-09-01T12:00:00Z",
                                       "durationMs": 5400}}},
      "lastRun": "2024-09-01T12:00:00Z",
      "version": 1
    }

The loader never writes it; the load command only consults it to restrict
`--all` to seasons that have actually been extracted.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from laxstats.core.errors import JsonParseError


class EntityStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    extracted: bool = False
    count: int = 0
    timestamp: Optional[datetime] = None
    duration_ms: Optional[int] = Field(default=None, alias="durationMs")


class ExtractionManifest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: str
    seasons: Dict[str, Dict[str, EntityStatus]] = Field(default_factory=dict)
    last_run: Optional[datetime] = Field(default=None, alias="lastRun")
    version: int = 1

    def is_extracted(self, season: str, entity: str) -> bool:
        status = self.seasons.get(str(season), {}).get(entity)
        return bool(status and status.extracted)

    def extracted_seasons(self, entity: str = "players") -> List[str]:
        return [season for season in self.seasons if self.is_extracted(season, entity)]


def manifest_path(output_dir: Path, source: str) -> Path:
    return Path(output_dir) / source / "manifest.json"


def read_manifest(output_dir: Path, source: str) -> Optional[ExtractionManifest]:
    """
    Load a source's manifest.

    Returns:
        The manifest, or None when the source has never been extracted

    Raises:
        JsonParseError: manifest exists but is malformed
    """
    path = manifest_path(output_dir, source)
    if not path.is_file():
        return None
    try:
        with path.open(encoding="utf-8") as f:
            return ExtractionManifest.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        raise JsonParseError(path, str(e)) from e
