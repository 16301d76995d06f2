"""
Change detection for the published schedule reference.

A fetch result counts as a change when it succeeded and its reference differs
from the last-known one. The last-known reference is replaced before the
caller broadcasts.
"""

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import structlog

from relay.models import ChangeOutcome, FetchResult
from relay.schedule_state import ScheduleState

logger = structlog.get_logger(__name__)


def normalize_reference(reference: str) -> str:
    """Drop query string and fragment, e.g. cache-busting parameters."""
    parts = urlsplit(reference)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


class ChangeDetector:
    """Compares fresh fetch results against the last-known reference."""

    def __init__(self, state: ScheduleState, normalize_references: bool = False):
        """
        Initialize change detector.

        Args:
            state: Holder of the last-known reference
            normalize_references: Compare references without query/fragment
        """
        self.state = state
        self.normalize_references = normalize_references
        self.logger = logger.bind(component="change_detector")

    @property
    def last_reference(self) -> Optional[str]:
        return self.state.reference

    def is_new(self, reference: str) -> bool:
        previous = self.state.reference
        if previous is None:
            return True
        if self.normalize_references:
            return normalize_reference(reference) != normalize_reference(previous)
        return reference != previous

    def evaluate(self, result: FetchResult) -> ChangeOutcome:
        """
        Decide whether a fetch result is a schedule change.

        Args:
            result: Freshly produced fetch result

        Returns:
            CHANGED (last-known reference already updated), UNCHANGED or FAILED
        """
        if not result.ok:
            self.logger.debug("Fetch failed; keeping last reference", error=result.error)
            return ChangeOutcome.FAILED

        if not self.is_new(result.reference):
            self.logger.debug("Schedule unchanged", reference=result.reference)
            return ChangeOutcome.UNCHANGED

        previous = self.state.reference
        self.state.update(result.reference)
        self.logger.info("Schedule changed", previous=previous, reference=result.reference)
        return ChangeOutcome.CHANGED
