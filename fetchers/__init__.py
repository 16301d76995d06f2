"""
Fetcher package for retrieving the published schedule reference.

This package contains:
- Strategy interface shared by all fetchers
- Static HTML fetcher (httpx + BeautifulSoup)
- Browser automation fetcher (Playwright)
"""

from fetchers.base import FetchError, ScheduleFetcher
from utilities.config import RelayConfig


def create_fetcher(config: RelayConfig) -> ScheduleFetcher:
    """Build the fetcher selected by ``FETCH_STRATEGY``."""
    if config.fetch_strategy == "browser":
        from fetchers.browser_fetcher import BrowserScheduleFetcher

        return BrowserScheduleFetcher(
            timeout_ms=config.browser_timeout_ms,
            headless=config.browser_headless,
            user_agent=config.get_headers()["User-Agent"],
            media_host_hint=config.media_host_hint,
        )

    from fetchers.html_fetcher import HtmlScheduleFetcher

    return HtmlScheduleFetcher(
        timeout=config.request_timeout,
        retry_attempts=config.retry_attempts,
        retry_delay=config.retry_delay,
        headers=config.get_headers(),
        media_host_hint=config.media_host_hint,
    )


__all__ = ["FetchError", "ScheduleFetcher", "create_fetcher"]
