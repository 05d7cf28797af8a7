"""Initial page load for a generation request."""

import logging
from dataclasses import dataclass
from typing import Dict, List

import httpx
from bs4 import BeautifulSoup

from src.core.exceptions import UnexpectedStatus
from src.core.session import ProviderSession, set_cookie_headers

logger = logging.getLogger(__name__)

# Statuses meaning the page is gone, forbidden, or the provider is down
FATAL_STATUSES = {401, 403, 404, 410}

NAVIGATION_HEADERS: Dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Cache-Control": "no-cache",
}


@dataclass
class LoadedPage:
    """A fetched and parsed provider page."""
    url: str
    html: str
    soup: BeautifulSoup
    status_code: int


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def collect_set_cookies(response: httpx.Response) -> List[str]:
    """Set-Cookie values across the redirect history and final response."""
    headers: List[str] = []
    for hop in list(response.history) + [response]:
        headers.extend(set_cookie_headers(hop))
    return headers


class PageLoader:
    """Loads the target page and starts the session.

    Attributes:
        session: The run's ProviderSession
        timeout: Request timeout in seconds
    """

    def __init__(self, session: ProviderSession, timeout: float = 15.0):
        self.session = session
        self.timeout = timeout

    async def load(self, url: str) -> LoadedPage:
        """GET the page, replace session cookies, and parse the markup.

        Args:
            url: Target page URL

        Returns:
            LoadedPage with parsed markup and raw body

        Raises:
            TransportError: On timeout or connection failure
            UnexpectedStatus: If the page is gone, forbidden, or the server errors
        """
        logger.info(f"Loading page: {url}")
        response = await self.session.get(url, self.timeout, headers=NAVIGATION_HEADERS)

        if response.status_code in FATAL_STATUSES or response.status_code >= 500:
            raise UnexpectedStatus(
                f"Page load failed with HTTP {response.status_code}",
                response.status_code,
                {"url": str(response.url)}
            )

        cookies = collect_set_cookies(response)
        self.session.context.replace_cookies(cookies)
        if cookies:
            logger.info(f"Session cookies stored: {len(self.session.context.cookies)}")

        html = response.text
        logger.info(f"Page loaded (HTTP {response.status_code}, {len(html)} chars)")
        return LoadedPage(
            url=str(response.url),
            html=html,
            soup=parse_html(html),
            status_code=response.status_code
        )
