"""
Pytest configuration and shared fixtures.
"""

from unittest.mock import AsyncMock

import pytest

from fetchers.base import ScheduleFetcher
from relay.models import FetchResult
from relay.subscribers import SubscriberStore
from relay.transport import MessagingTransport
from utilities.config import RelayConfig


@pytest.fixture
def relay_config(tmp_path):
    """Create relay configuration for testing."""
    return RelayConfig(
        bot_token="123456:TEST-TOKEN",
        target_url="https://poweron.example.com/shedule-off",
        check_interval_ms=60_000,
        data_dir=str(tmp_path / "data"),
        retry_attempts=0,
        retry_delay=0,
        error_cooldown_minutes=15,
        notify_subscribers_on_error=True,
        normalize_references=False,
    )


@pytest.fixture
def subscriber_store(tmp_path):
    """Create an empty file-backed subscriber store."""
    return SubscriberStore(tmp_path / "data" / "subscribers.json")


@pytest.fixture
def mock_transport():
    """Create a mock messaging transport that always delivers."""
    return AsyncMock(spec=MessagingTransport)


@pytest.fixture
def mock_fetcher():
    """Create a mock fetcher returning a fixed schedule image."""
    fetcher = AsyncMock(spec=ScheduleFetcher)
    fetcher.fetch.return_value = FetchResult.success("https://x/a.png")
    return fetcher


@pytest.fixture
def sample_schedule_html():
    """Sample schedule page HTML for testing."""
    return """
    <html>
        <head><title>Графік погодинних відключень</title></head>
        <body>
            <div class="power-off">
                <div class="power-off__current">
                    <img src="https://api.loe.lviv.ua/media/67a1b2_GPV.png" alt="Графік">
                </div>
            </div>
        </body>
    </html>
    """
