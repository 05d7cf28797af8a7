"""Direct markup scan for known result-image patterns."""

import logging
from typing import Iterable, Optional

from bs4 import BeautifulSoup

from src.core.models import ImageCandidate
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.extraction.patterns import RESULT_SELECTORS, absolute, in_result_container, is_template_url, url_of
from src.extraction.scorer import score_candidate

logger = logging.getLogger(__name__)


class DirectMarkupScan(BaseStrategy):
    """Looks for result images with a fixed, ordered selector list.

    Matches whose URL contains a decorative fragment (logo, sample, demo,
    template, placeholder) or a configured template fingerprint are skipped.
    """

    def scan(
        self,
        soup: BeautifulSoup,
        base_url: str,
        fingerprints: Iterable[str] = ()
    ) -> Optional[ImageCandidate]:
        """Scan a parsed document without any network access.

        Args:
            soup: Parsed document
            base_url: URL the document was served from
            fingerprints: Known template-image URL fragments

        Returns:
            The first non-excluded match, or None
        """
        fingerprints = list(fingerprints)
        for selector in RESULT_SELECTORS:
            for element in soup.select(selector):
                src = url_of(element)
                if not src:
                    continue
                url = absolute(src, base_url)
                if is_template_url(url, fingerprints, src):
                    logger.debug(f"Excluded template match for {selector}: {url}")
                    continue
                logger.debug(f"Matched {selector}: {url}")
                return ImageCandidate(
                    url=url,
                    is_likely_template=False,
                    relevance_score=score_candidate(url, in_result_container(element)),
                    source=self.name,
                )
        return None

    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        logger.info("Looking for direct image URLs...")
        return self.scan(
            context.soup,
            context.base_url,
            context.settings.template_fingerprints
        )

    @property
    def name(self) -> str:
        return "direct_scan"
