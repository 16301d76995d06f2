"""
Schedule fetcher strategy interface and shared markup extraction.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from relay.models import FetchResult

FALLBACK_SELECTORS = [
    ".power-off__current img",
    ".power-off_current img",
    ".power-off img",
]


class FetchError(Exception):
    """The page was unreachable or did not contain a schedule image."""


class ScheduleFetcher(ABC):
    """Resolves the currently published schedule image URL."""

    def __init__(self, media_host_hint: str = "api.loe.lviv.ua/media"):
        self.media_host_hint = media_host_hint

    @abstractmethod
    async def fetch(self, target_url: str) -> FetchResult:
        """
        Fetch the page and resolve the schedule reference.

        Upstream problems are returned as a failed FetchResult, not raised.
        """

    async def close(self) -> None:
        """Release any resources held between fetches."""

    def primary_selectors(self) -> List[str]:
        return [
            f"img[src*='{self.media_host_hint}']",
            f"a[href*='{self.media_host_hint}']",
        ]

    def extract_reference(self, html: str, base_url: str) -> str:
        """
        Find the schedule image in page markup.

        Args:
            html: Page HTML
            base_url: URL used to resolve relative sources

        Returns:
            Absolute image URL

        Raises:
            FetchError: If no candidate element is found
        """
        soup = BeautifulSoup(html, "html.parser")

        src = self._first_attr(soup, self.primary_selectors()) or self._first_attr(soup, FALLBACK_SELECTORS)
        if not src:
            title = soup.title.get_text(strip=True) if soup.title else ""
            raise FetchError(f'Не знайшов картинку на сторінці. title="{title}"')

        if src.startswith("http://") or src.startswith("https://"):
            return src
        return urljoin(base_url, src)

    @staticmethod
    def _first_attr(soup: BeautifulSoup, selectors: List[str]) -> Optional[str]:
        for selector in selectors:
            element = soup.select_one(selector)
            if element is None:
                continue
            value = element.get("src") or element.get("href")
            if value and value.strip():
                return value.strip()
        return None
