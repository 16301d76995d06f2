"""
Alerting throttle for fetch failure notifications.

This module provides:
- Cooldown mechanism so an extended upstream outage produces one subscriber
  notification per cooldown window instead of one per poll interval
"""

from datetime import datetime, timedelta
from typing import Optional

import structlog

logger = structlog.get_logger(__name__)


class ErrorThrottle:
    """Decides whether a failure should be announced to subscribers."""

    def __init__(self, cooldown_minutes: int = 15):
        """
        Initialize error throttle.

        Args:
            cooldown_minutes: Minimum gap between two failure notifications
        """
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.last_notified_at: Optional[datetime] = None
        self.logger = logger.bind(component="error_throttle")

    def should_notify(self, now: Optional[datetime] = None) -> bool:
        """
        Check the cooldown and, if it has elapsed, record the notification.

        The decision and the state update happen in one call so two failures
        cannot both be allowed through.
        """
        now = now or datetime.now()

        if self.last_notified_at is not None and now - self.last_notified_at <= self.cooldown:
            self.logger.debug(
                "Failure notification suppressed",
                last_notified_at=self.last_notified_at.isoformat(),
                cooldown_minutes=self.cooldown.total_seconds() / 60
            )
            return False

        self.last_notified_at = now
        return True

    def reset(self) -> None:
        self.last_notified_at = None
