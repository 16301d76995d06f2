"""
Test cases for the failure notification throttle.
"""

from datetime import datetime, timedelta

import pytest

from relay.alerting import ErrorThrottle


class TestErrorThrottle:
    """Test cases for ErrorThrottle."""

    @pytest.fixture
    def throttle(self):
        return ErrorThrottle(cooldown_minutes=15)

    @pytest.fixture
    def now(self):
        return datetime(2025, 1, 10, 12, 0, 0)

    def test_first_failure_notifies(self, throttle, now):
        assert throttle.should_notify(now) is True
        assert throttle.last_notified_at == now

    def test_failures_within_cooldown_notify_once(self, throttle, now):
        assert throttle.should_notify(now) is True
        assert throttle.should_notify(now + timedelta(minutes=5)) is False
        assert throttle.should_notify(now + timedelta(minutes=14, seconds=59)) is False

        assert throttle.last_notified_at == now

    def test_failures_beyond_cooldown_each_notify(self, throttle, now):
        assert throttle.should_notify(now) is True
        assert throttle.should_notify(now + timedelta(minutes=16)) is True
        assert throttle.should_notify(now + timedelta(minutes=32)) is True

    def test_cooldown_must_be_exceeded(self, throttle, now):
        throttle.should_notify(now)

        assert throttle.should_notify(now + timedelta(minutes=15)) is False
        assert throttle.should_notify(now + timedelta(minutes=15, seconds=1)) is True

    def test_suppressed_decision_does_not_extend_window(self, throttle, now):
        throttle.should_notify(now)
        throttle.should_notify(now + timedelta(minutes=10))

        assert throttle.should_notify(now + timedelta(minutes=16)) is True

    def test_reset(self, throttle, now):
        throttle.should_notify(now)
        throttle.reset()

        assert throttle.last_notified_at is None
        assert throttle.should_notify(now + timedelta(minutes=1)) is True

    def test_defaults_to_current_time(self, throttle):
        before = datetime.now()
        assert throttle.should_notify() is True
        assert throttle.last_notified_at >= before
