"""Ordered chain of extraction strategies."""

import logging
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from src.core.exceptions import ExtractionExhausted
from src.core.models import Diagnostics, ImageCandidate
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.strategies.best_of_scan import BestOfScan
from src.strategies.direct_scan import DirectMarkupScan
from src.strategies.processing_poll import ProcessingPoll
from src.strategies.redirect_follow import RedirectFollow
from src.strategies.script_probe import ScriptEndpointProbe

logger = logging.getLogger(__name__)


def describe_response(html: str, soup: BeautifulSoup, final_url: Optional[str]) -> Diagnostics:
    """Counts describing a response, for debugging provider drift."""
    return Diagnostics(
        response_bytes=len(html.encode("utf-8")),
        forms_found=len(soup.find_all("form")),
        images_found=len(soup.find_all("img")),
        processing_indicator="processing" in html,
        final_url=final_url,
    )


def default_strategies() -> List[BaseStrategy]:
    """The standard chain, most specific first."""
    direct_scan = DirectMarkupScan()
    return [
        direct_scan,
        ScriptEndpointProbe(),
        ProcessingPoll(direct_scan),
        RedirectFollow(direct_scan),
        BestOfScan(),
    ]


class ExtractionChain:
    """Runs strategies strictly in order; the first candidate wins.

    Attributes:
        strategies: Strategies to try, in order
    """

    def __init__(self, strategies: Optional[Sequence[BaseStrategy]] = None):
        self.strategies = list(strategies) if strategies is not None else default_strategies()

        logger.debug(f"Initialized ExtractionChain: {[s.name for s in self.strategies]}")

    async def run(self, context: ExtractionContext) -> ImageCandidate:
        """Resolve a result-image candidate from the submission response.

        Args:
            context: Extraction context for this run

        Returns:
            The first candidate produced by any strategy

        Raises:
            ExtractionExhausted: If no strategy produced a candidate
            TransportError: If a follow-up request fails at the network level
            ProcessingFailed: If the provider reports that generation failed
        """
        for i, strategy in enumerate(self.strategies, 1):
            logger.info(f"Trying strategy {i}/{len(self.strategies)}: {strategy.name}")
            candidate = await strategy.extract(context)
            if candidate is not None:
                logger.info(f"Found image via {strategy.name}: {candidate.url}")
                return candidate

        diagnostics = describe_response(
            context.submission.html,
            context.soup,
            context.submission.final_url,
        )
        logger.warning(
            f"Could not find image URL using any method "
            f"({diagnostics.images_found} images, {diagnostics.forms_found} forms, "
            f"{diagnostics.response_bytes} bytes)"
        )
        raise ExtractionExhausted(
            "Could not extract image URL from response",
            diagnostics
        )
