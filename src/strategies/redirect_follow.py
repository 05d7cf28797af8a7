"""Following meta-refresh and script navigation to a result page."""

import logging
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from src.core.models import ImageCandidate
from src.core.page_loader import parse_html
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.extraction.patterns import META_REFRESH_URL, NAVIGATION_PATTERNS
from src.strategies.direct_scan import DirectMarkupScan
from src.strategies.script_probe import inline_script_text

logger = logging.getLogger(__name__)


def find_next_step(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """URL named by a meta refresh tag or a script navigation assignment."""
    for meta in soup.find_all("meta"):
        if (meta.get("http-equiv") or "").lower() != "refresh":
            continue
        match = META_REFRESH_URL.search(meta.get("content") or "")
        if match:
            return urljoin(base_url, match.group(1).strip())

    script_text = inline_script_text(soup)
    for pattern in NAVIGATION_PATTERNS:
        match = pattern.search(script_text)
        if match:
            return urljoin(base_url, match.group(1))
    return None


class RedirectFollow(BaseStrategy):
    """Fetches the next page once and runs the direct scan against it.

    No further chaining: a redirect found on the followed page is ignored.
    """

    def __init__(self, direct_scan: Optional[DirectMarkupScan] = None):
        self.direct_scan = direct_scan or DirectMarkupScan()

    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        next_url = find_next_step(context.soup, context.base_url)
        if not next_url:
            return None

        logger.info(f"Following next step: {next_url}")
        response = await context.session.get(
            next_url,
            context.settings.probe_timeout,
            headers={"Referer": context.base_url},
        )
        if response.status_code >= 500:
            logger.warning(f"Next step returned HTTP {response.status_code}")
            return None

        candidate = self.direct_scan.scan(
            parse_html(response.text),
            str(response.url),
            context.settings.template_fingerprints,
        )
        if candidate:
            return candidate.model_copy(update={"source": self.name})
        return None

    @property
    def name(self) -> str:
        return "redirect_follow"
