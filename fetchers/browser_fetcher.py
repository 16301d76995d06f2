"""
Browser automation schedule fetcher.
Renders the page in headless Chromium for sites that build the schedule
block with JavaScript.
"""

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from fetchers.base import FALLBACK_SELECTORS, FetchError, ScheduleFetcher
from relay.models import FetchResult

logger = structlog.get_logger(__name__)


class BrowserScheduleFetcher(ScheduleFetcher):
    """Fetcher that spawns a Chromium session per fetch via Playwright."""

    def __init__(
        self,
        timeout_ms: int = 45_000,
        headless: bool = True,
        user_agent: str = "Mozilla/5.0",
        media_host_hint: str = "api.loe.lviv.ua/media"
    ):
        super().__init__(media_host_hint=media_host_hint)
        self.timeout_ms = timeout_ms
        self.headless = headless
        self.user_agent = user_agent

    async def fetch(self, target_url: str) -> FetchResult:
        try:
            html = await self._render(target_url)
            return FetchResult.success(self.extract_reference(html, target_url))
        except FetchError as e:
            logger.warning("Schedule image not found", url=target_url, error=str(e))
            return FetchResult.failure(str(e))
        except PlaywrightError as e:
            logger.warning("Browser fetch failed", url=target_url, error=str(e))
            return FetchResult.failure(str(e).splitlines()[0] if str(e) else e.__class__.__name__)

    async def _render(self, target_url: str) -> str:
        """Load the page, wait for a schedule image and return the rendered HTML."""
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=self.headless)
            try:
                page = await browser.new_page(user_agent=self.user_agent)
                await page.goto(target_url, wait_until="domcontentloaded", timeout=self.timeout_ms)

                wait_selector = ", ".join(self.primary_selectors() + FALLBACK_SELECTORS)
                try:
                    await page.wait_for_selector(wait_selector, state="attached", timeout=self.timeout_ms)
                except PlaywrightTimeoutError:
                    # Fall through; extraction reports the page title.
                    logger.debug("Schedule selector did not appear", url=target_url)

                return await page.content()
            finally:
                await browser.close()
