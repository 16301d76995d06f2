"""
Static HTML schedule fetcher.
Retrieves the page over HTTP and queries the markup for the schedule image.
"""

import asyncio
from typing import Optional

import httpx
import structlog

from fetchers.base import FetchError, ScheduleFetcher
from relay.models import FetchResult
from utilities.logger import CycleLogger

logger = structlog.get_logger(__name__)


class HtmlScheduleFetcher(ScheduleFetcher):
    """
    Fetcher based on httpx and BeautifulSoup with retry and exponential backoff.
    """

    def __init__(
        self,
        timeout: float = 25,
        retry_attempts: int = 2,
        retry_delay: float = 1.0,
        headers: Optional[dict] = None,
        media_host_hint: str = "api.loe.lviv.ua/media"
    ):
        super().__init__(media_host_hint=media_host_hint)
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.cycle_logger = CycleLogger("html_fetcher")

        # HTTP client configuration
        self.client_config = {
            "timeout": timeout,
            "headers": headers or {},
            "follow_redirects": True,
            "max_redirects": 5,
        }

    async def fetch(self, target_url: str) -> FetchResult:
        try:
            async with httpx.AsyncClient(**self.client_config) as client:
                response = await self._make_request_with_retry(client, target_url)

            html = response.text
            logger.debug("Fetched page", url=target_url, status=response.status_code, length=len(html))

            reference = self.extract_reference(html, str(response.url))
            return FetchResult.success(reference)

        except FetchError as e:
            logger.warning("Schedule image not found", url=target_url, error=str(e))
            return FetchResult.failure(str(e))
        except httpx.HTTPError as e:
            logger.warning("Schedule page request failed", url=target_url, error=str(e))
            return FetchResult.failure(str(e) or e.__class__.__name__)

    async def _make_request_with_retry(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """
        Make HTTP request with retry logic and exponential backoff.

        Args:
            client: HTTP client instance
            url: URL to request

        Returns:
            HTTP response with a 2xx or 3xx status
        """
        last_exception = None

        for attempt in range(self.retry_attempts + 1):
            try:
                response = await client.get(url)
                if response.status_code >= 400:
                    response.raise_for_status()
                return response

            except httpx.HTTPError as e:
                last_exception = e

                if attempt < self.retry_attempts:
                    delay = self.retry_delay * (2 ** attempt)
                    self.cycle_logger.log_retry(url, attempt + 1, self.retry_attempts, delay)
                    await asyncio.sleep(delay)
                else:
                    self.cycle_logger.log_error(
                        f"Request failed after {self.retry_attempts} retries",
                        url=url,
                        retry_count=self.retry_attempts
                    )

        raise last_exception
