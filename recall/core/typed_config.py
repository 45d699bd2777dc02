"""
Typed configuration domain objects.

Immutable, Pydantic-validated objects passed explicitly into the indexing
entry points:
- TrackingConfig  (recall_service.py, srs_sync.py)
"""

import logging
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)


class TrackingConfig(BaseModel):
    """Documents opted into indexing and review.

    Instances are frozen; the ``with_*`` helpers return updated copies.
    """

    model_config = ConfigDict(frozen=True)

    tracked_files: List[str] = []

    @field_validator("tracked_files")
    @classmethod
    def normalise_paths(cls, v: List[str]) -> List[str]:
        seen = set()
        cleaned: List[str] = []
        for path in v:
            path = path.strip()
            if not path or path in seen:
                continue
            seen.add(path)
            cleaned.append(path)
        return cleaned

    def is_tracked(self, path: str) -> bool:
        return path in self.tracked_files

    def with_tracked(self, path: str) -> "TrackingConfig":
        """Return a copy with *path* appended (no-op if already present)."""
        if self.is_tracked(path):
            return self
        return TrackingConfig(tracked_files=[*self.tracked_files, path])

    def without_tracked(self, path: str) -> "TrackingConfig":
        if not self.is_tracked(path):
            return self
        return TrackingConfig(
            tracked_files=[p for p in self.tracked_files if p != path]
        )

    def with_renamed(self, old_path: str, new_path: str) -> "TrackingConfig":
        """Drop *old_path* and append *new_path* at the end."""
        if not self.is_tracked(old_path):
            return self
        remaining = [p for p in self.tracked_files if p != old_path]
        return TrackingConfig(tracked_files=[*remaining, new_path])
