"""Probing of AJAX endpoints referenced by inline scripts."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from src.core.models import ImageCandidate
from src.extraction.base_strategy import BaseStrategy, ExtractionContext
from src.extraction.patterns import ENDPOINT_PATTERNS, NAVIGATION_PATTERNS, RESULT_KEYS, is_template_url
from src.extraction.scorer import score_candidate

logger = logging.getLogger(__name__)


def inline_script_text(soup: BeautifulSoup) -> str:
    """Concatenated text of every script without a src attribute."""
    return "\n".join(
        script.get_text() for script in soup.find_all("script")
        if not script.get("src")
    )


def find_endpoint(script_text: str) -> Optional[str]:
    """First string literal that looks like a generation endpoint.

    Navigation targets (``location.href = ...``) are pages, not endpoints,
    and are left to the redirect strategy.
    """
    navigation_targets = {
        match.group(1)
        for pattern in NAVIGATION_PATTERNS
        for match in pattern.finditer(script_text)
    }
    for pattern in ENDPOINT_PATTERNS:
        for match in pattern.finditer(script_text):
            if match.group(1) not in navigation_targets:
                return match.group(1)
    return None


def result_from_payload(payload: Any, keys=RESULT_KEYS) -> Optional[str]:
    """Extract a result URL from a JSON object or a bare string payload.

    Objects are checked for each key in order. Bare strings are only
    accepted when they are themselves absolute URLs.
    """
    if isinstance(payload, dict):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None
    if isinstance(payload, str):
        value = payload.strip().strip('"')
        if value.startswith(("http://", "https://")):
            return value
    return None


class ScriptEndpointProbe(BaseStrategy):
    """Calls an endpoint found in inline script text with the request texts."""

    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        logger.info("Checking for AJAX endpoints...")
        endpoint = find_endpoint(inline_script_text(context.soup))
        if not endpoint:
            return None

        url = urljoin(context.base_url, endpoint)
        logger.info(f"Found AJAX endpoint: {url}")

        response = await context.session.post(
            url,
            context.settings.probe_timeout,
            headers={
                "Accept": "application/json, text/javascript, */*; q=0.01",
                "X-Requested-With": "XMLHttpRequest",
                "Referer": context.request.target_page_url,
            },
            data=self._payload(context),
        )

        if not response.is_success:
            logger.warning(f"AJAX endpoint returned HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            payload = response.text

        result = result_from_payload(payload)
        if not result:
            logger.info("AJAX response carried no image URL")
            return None

        image_url = urljoin(context.base_url, result)
        return ImageCandidate(
            url=image_url,
            is_likely_template=is_template_url(
                image_url, context.settings.template_fingerprints, result
            ),
            relevance_score=score_candidate(image_url),
            source=self.name,
        )

    @staticmethod
    def _payload(context: ExtractionContext) -> Dict[str, Any]:
        texts: List[str] = list(context.request.texts)
        data: Dict[str, Any] = {"text[]": texts}
        if context.parameters.effect_id:
            data["id"] = context.parameters.effect_id
        if context.parameters.processing_server_id:
            data["build_server"] = context.parameters.processing_server_id
        if context.parameters.anti_forgery_token:
            data["_token"] = context.parameters.anti_forgery_token
        return data

    @property
    def name(self) -> str:
        return "script_probe"
