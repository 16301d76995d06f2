"""
Holder for the last-known schedule reference.

Kept in memory by default; when given a path the snapshot is also written to
disk after every change and reloaded on startup, so a restart does not resend
an unchanged schedule.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from relay.models import ScheduleSnapshot

logger = structlog.get_logger(__name__)

HUMAN_TIME_FORMAT = "%d.%m.%Y %H:%M:%S"


def human_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a timestamp the way it is shown to subscribers."""
    return (moment or datetime.now()).strftime(HUMAN_TIME_FORMAT)


class ScheduleState:
    """Last-known schedule reference, optionally persisted as JSON."""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self.logger = logger.bind(component="schedule_state")
        self._snapshot: Optional[ScheduleSnapshot] = self._load()

    @property
    def reference(self) -> Optional[str]:
        return self._snapshot.reference if self._snapshot else None

    @property
    def updated_at(self) -> Optional[str]:
        return self._snapshot.updated_at if self._snapshot else None

    def update(self, reference: str, moment: Optional[datetime] = None) -> ScheduleSnapshot:
        """Replace the last-known reference wholesale."""
        self._snapshot = ScheduleSnapshot(reference=reference, updated_at=human_timestamp(moment))
        self._save()
        return self._snapshot

    def _load(self) -> Optional[ScheduleSnapshot]:
        if self.path is None or not self.path.exists():
            return None
        try:
            snapshot = ScheduleSnapshot(**json.loads(self.path.read_text(encoding="utf-8")))
            self.logger.info("Loaded last schedule", reference=snapshot.reference, updated_at=snapshot.updated_at)
            return snapshot
        except (OSError, ValueError, TypeError, RecursionError, ValidationError) as e:
            self.logger.warning("Failed to load last schedule; starting without one", error=str(e))
            return None

    def _save(self) -> None:
        if self.path is None:
            return
        # Write errors are logged only; the in-memory snapshot is kept.
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(
                json.dumps(self._snapshot.model_dump(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            tmp_path.replace(self.path)
        except OSError as e:
            self.logger.error("Failed to persist last schedule", error=str(e))
