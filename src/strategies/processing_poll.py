"""Waiting on server-side processing before extracting the result."""

import logging
import math
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from src.core.exceptions import ProcessingFailed, TransportError
from src.core.models import ImageCandidate
from src.core.page_loader import parse_html
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.extraction.patterns import PROCESSING_SELECTORS, PROCESSING_WORDS, is_template_url
from src.extraction.scorer import score_candidate
from src.strategies.direct_scan import DirectMarkupScan
from src.strategies.script_probe import result_from_payload

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = {"completed", "complete", "done", "success", "ready"}
FAILED_STATUSES = {"failed", "error"}


def has_processing_indicator(soup: BeautifulSoup, html: Optional[str] = None) -> bool:
    """True if the document shows that the provider is still generating.

    The literal word check runs on the raw markup (``html``, defaulting to the
    serialized soup) so words inside inline scripts count too.
    """
    for selector in PROCESSING_SELECTORS:
        if soup.select_one(selector) is not None:
            return True
    text = (str(soup) if html is None else html).lower()
    return any(word in text for word in PROCESSING_WORDS)


def find_status_url(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    element = soup.select_one("[data-status-url]")
    if element is not None and element.get("data-status-url"):
        return urljoin(base_url, element["data-status-url"])

    meta = soup.find("meta", attrs={"name": "status-url"})
    if meta is not None and meta.get("content"):
        return urljoin(base_url, meta["content"])
    return None


class ProcessingPoll(BaseStrategy):
    """Polls a status URL while the provider is still processing.

    With a status URL the strategy polls at ``poll_interval`` until the
    provider reports completion or failure, or ``poll_ceiling`` elapses.
    Transport errors during polling are retried within the ceiling.
    Without a status URL it waits ``blind_wait`` once, reloads the response
    URL and runs the direct scan on it.
    """

    def __init__(self, direct_scan: Optional[DirectMarkupScan] = None):
        self.direct_scan = direct_scan or DirectMarkupScan()

    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        if not has_processing_indicator(context.soup, context.submission.html):
            return None

        status_url = find_status_url(context.soup, context.base_url)
        if status_url:
            logger.info(f"Image is being processed, polling: {status_url}")
            return await self._poll(context, status_url)

        logger.info("Image is being processed, no status URL; waiting once")
        return await self._blind_wait(context)

    async def _poll(
        self,
        context: ExtractionContext,
        status_url: str
    ) -> Optional[ImageCandidate]:
        settings = context.settings
        max_attempts = math.floor(settings.poll_ceiling / settings.poll_interval) + 1

        retrying = AsyncRetrying(
            stop=stop_after_delay(settings.poll_ceiling) | stop_after_attempt(max_attempts),
            wait=wait_fixed(settings.poll_interval),
            retry=retry_if_result(lambda candidate: candidate is None)
            | retry_if_exception_type(TransportError),
            retry_error_callback=self._on_timeout,
            sleep=context.sleep,
        )
        return await retrying(self._check_status, context, status_url)

    @staticmethod
    def _on_timeout(retry_state) -> None:
        logger.warning(
            f"Processing timeout reached after {retry_state.attempt_number} status checks"
        )
        return None

    async def _check_status(
        self,
        context: ExtractionContext,
        status_url: str
    ) -> Optional[ImageCandidate]:
        response = await context.session.get(
            status_url,
            context.settings.probe_timeout,
            headers={"Accept": "application/json, text/javascript, */*; q=0.01"},
        )
        try:
            data = response.json()
        except ValueError:
            logger.debug(f"Status response is not JSON (HTTP {response.status_code})")
            return None
        if not isinstance(data, dict):
            return None

        status = str(data.get("status", "")).lower()

        if status in FAILED_STATUSES or data.get("error"):
            raise ProcessingFailed(
                f"Image processing failed: {data.get('error') or 'Unknown error'}",
                {"status_url": status_url}
            )

        if status in COMPLETED_STATUSES or data.get("ready"):
            result = result_from_payload(data, keys=("image", "url", "result"))
            if result:
                image_url = urljoin(status_url, result)
                return ImageCandidate(
                    url=image_url,
                    is_likely_template=is_template_url(
                        image_url, context.settings.template_fingerprints, result
                    ),
                    relevance_score=score_candidate(image_url),
                    source=self.name,
                )

        logger.debug(f"Still processing (status={status or 'unknown'})")
        return None

    async def _blind_wait(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        await context.sleep(context.settings.blind_wait)
        response = await context.session.get(
            context.base_url,
            context.settings.probe_timeout,
        )
        if response.status_code >= 500:
            logger.warning(f"Reload returned HTTP {response.status_code}")
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
        return "processing_poll"
