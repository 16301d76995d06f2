"""
Durable subscriber set backed by a JSON array file.

Every mutation rewrites the whole file atomically before returning. Loading
never fails: a missing, unreadable or malformed file yields an empty set.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import FrozenSet, Iterable, Set, Union

import structlog

logger = structlog.get_logger(__name__)


class SubscriberStoreError(Exception):
    """Raised when the subscriber list could not be written to disk."""


class SubscriberStore:
    """Set of chat ids that receive schedule broadcasts."""

    def __init__(self, path: Union[str, Path]):
        """
        Initialize the store and load any persisted subscribers.

        Args:
            path: Location of the JSON array file
        """
        self.path = Path(path)
        self.logger = logger.bind(component="subscriber_store", path=str(self.path))
        self._ids: Set[int] = self._load()

    def add(self, chat_id: int) -> bool:
        """
        Add a subscriber and persist the set.

        Returns:
            True if the id was not subscribed before
        """
        chat_id = int(chat_id)
        if chat_id in self._ids:
            self._save(self._ids)
            return False

        updated = set(self._ids)
        updated.add(chat_id)
        self._save(updated)
        self._ids = updated
        self.logger.info("Subscriber added", chat_id=chat_id, total=len(updated))
        return True

    def remove(self, chat_id: int) -> bool:
        """
        Remove a subscriber and persist the set.

        Returns:
            True if the id was subscribed
        """
        chat_id = int(chat_id)
        if chat_id not in self._ids:
            self._save(self._ids)
            return False

        updated = set(self._ids)
        updated.discard(chat_id)
        self._save(updated)
        self._ids = updated
        self.logger.info("Subscriber removed", chat_id=chat_id, total=len(updated))
        return True

    def all(self) -> FrozenSet[int]:
        """Immutable snapshot of the current membership."""
        return frozenset(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, chat_id) -> bool:
        return chat_id in self._ids

    def _load(self) -> Set[int]:
        if not self.path.exists():
            return set()

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError, RecursionError) as e:
            self.logger.warning("Failed to load subscribers; starting empty", error=str(e))
            return set()

        if not isinstance(raw, list):
            self.logger.warning("Unexpected subscribers structure; starting empty")
            return set()

        return set(self._coerce_ids(raw))

    def _coerce_ids(self, values: Iterable) -> Iterable[int]:
        for value in values:
            if isinstance(value, bool):
                continue
            try:
                yield int(value)
            except (TypeError, ValueError, OverflowError):
                self.logger.debug("Skipping non-numeric subscriber id", value=value)

    def _save(self, ids: Set[int]) -> None:
        data = json.dumps(sorted(ids), indent=2)
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=str(self.path.parent), suffix=".tmp", delete=False, encoding="utf-8"
            ) as tmp:
                tmp.write(data)
                tmp_path = Path(tmp.name)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            self.logger.error("Failed to persist subscribers", error=str(e))
            raise SubscriberStoreError(f"Could not write {self.path}: {e}") from e
