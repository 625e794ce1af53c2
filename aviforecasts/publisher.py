"""
Snapshot publisher.

The full result set of a run is written to a temporary file next to the
published path and then renamed over it, so a reader serving the file
never sees a partially written snapshot.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel

from .config import FORECASTS_DATA_PATH
from .models import RegionResult

logger = logging.getLogger(__name__)

SNAPSHOT_FILE_MODE = 0o666


def current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


# =============================================================================
# Snapshot schema
# =============================================================================

class SnapshotDay(BaseModel):
    date: str
    aviLevel: Optional[int]


class SnapshotEntry(BaseModel):
    regionId: str
    forecast: Optional[List[SnapshotDay]]


class PublishError(Exception):
    """Raised when the snapshot file could not be written or renamed."""
    pass


def to_snapshot_entries(results: Iterable[RegionResult]) -> List[SnapshotEntry]:
    entries = []
    for result in results:
        forecast = None
        if result.forecast is not None:
            forecast = [SnapshotDay(**day.to_dict()) for day in result.forecast]
        entries.append(SnapshotEntry(regionId=result.region_id, forecast=forecast))
    return entries


def render_snapshot(results: Iterable[RegionResult]) -> str:
    """Serialize results in publication order; equal input gives identical output."""
    payload = [entry.model_dump() for entry in to_snapshot_entries(results)]
    return json.dumps(payload, indent=4)


class SnapshotPublisher:

    def __init__(self, path: Path = FORECASTS_DATA_PATH):
        self.path = Path(path)

    def publish(self, results: Iterable[RegionResult]) -> bool:
        """
        Atomically replace the published snapshot.

        Returns False when writing fails; the previous snapshot is then
        left in place untouched.
        """
        try:
            self._write_atomic(render_snapshot(results))
        except PublishError as e:
            logger.error(f"publish failed; previous snapshot kept; path: {self.path}; error: {e}")
            return False

        logger.info(f"forecast data file updated; path: {self.path}")
        return True

    def _write_atomic(self, content: str) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w", encoding="utf-8", delete=False, dir=self.path.parent,
                prefix=self.path.stem + "_", suffix=".tmp",
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            # NamedTemporaryFile creates 0600; the snapshot gets the usual umask-derived mode
            os.chmod(tmp_path, SNAPSHOT_FILE_MODE & ~current_umask())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            raise PublishError(str(e)) from e
