"""Heuristic pick among every image URL in the response."""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from src.core.models import ImageCandidate
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.extraction.patterns import absolute, in_result_container, is_image_link, is_template_url, url_of
from src.extraction.scorer import score_candidate

logger = logging.getLogger(__name__)


def collect_candidates(
    soup: BeautifulSoup,
    base_url: str,
    fingerprints=(),
    current_year: Optional[int] = None
) -> List[ImageCandidate]:
    """Every image URL in document order, scored, without duplicates."""
    seen = set()
    candidates = []

    def add(src: Optional[str], element) -> None:
        if not src:
            return
        url = absolute(src, base_url)
        if url in seen:
            return
        seen.add(url)
        candidates.append(
            ImageCandidate(
                url=url,
                is_likely_template=is_template_url(url, fingerprints, src),
                relevance_score=score_candidate(
                    url, in_result_container(element), current_year
                ),
                source="best_of_scan",
            )
        )

    for img in soup.find_all("img"):
        add(url_of(img), img)

    for link in soup.find_all("a", href=True):
        href = link["href"].strip()
        if is_image_link(href):
            add(href, link)

    og_image = soup.find("meta", attrs={"property": "og:image"})
    if og_image is not None:
        add(og_image.get("content"), og_image)

    return candidates


def pick_best(candidates: List[ImageCandidate]) -> Optional[ImageCandidate]:
    """Best candidate; non-templates win, then score, then encounter order."""
    if not candidates:
        return None
    # min() keeps the first of equal keys, so ties go to the first-seen URL
    return min(candidates, key=lambda c: c.preference_key())


class BestOfScan(BaseStrategy):
    """Scores every image in the document and takes the best one.

    If every image looks like a template, the best template is returned
    anyway and stays marked as a template.
    """

    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        candidates = collect_candidates(
            context.soup,
            context.base_url,
            context.settings.template_fingerprints,
        )
        logger.info(f"Scoring {len(candidates)} image candidates")
        best = pick_best(candidates)
        if best is not None:
            logger.info(
                f"Best candidate: {best.url} (score={best.relevance_score}, "
                f"template={best.is_likely_template})"
            )
        return best

    @property
    def name(self) -> str:
        return "best_of_scan"
