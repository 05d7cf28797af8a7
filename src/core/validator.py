"""Metadata-only validation of a discovered image URL."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from src.core.exceptions import TransportError
from src.core.models import ImageCandidate
from src.core.session import ProviderSession
from src.extraction.patterns import matches_fingerprint

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    """Classification of a candidate URL.

    Attributes:
        url: The candidate URL, always kept
        content_type: Reported content type, if any
        content_length: Reported content length, if any
        is_likely_generated: True for a genuine artifact, False for a probable
            template, None when the metadata request failed for a non-template URL
        warnings: Reasons the URL could not be confirmed
    """
    url: str
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    is_likely_generated: Optional[bool] = None
    warnings: List[str] = field(default_factory=list)


def _parse_length(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


class ImageValidator:
    """Classifies a candidate with a HEAD request.

    Validation never discards a URL: providers may block HEAD probes or
    answer them oddly while the image itself still downloads.

    Attributes:
        session: The run's ProviderSession
        timeout: HEAD request timeout in seconds
        min_artifact_bytes: Smallest content length accepted as a real artifact
        fingerprints: Known template-image URL fragments
    """

    def __init__(
        self,
        session: ProviderSession,
        timeout: float = 10.0,
        min_artifact_bytes: int = 5000,
        fingerprints: Iterable[str] = ()
    ):
        self.session = session
        self.timeout = timeout
        self.min_artifact_bytes = min_artifact_bytes
        self.fingerprints = list(fingerprints)

    async def validate(
        self,
        candidate: ImageCandidate,
        referer: Optional[str] = None
    ) -> ValidationOutcome:
        """Classify the candidate URL.

        Args:
            candidate: Candidate produced by the extraction chain
            referer: Page to send as Referer

        Returns:
            ValidationOutcome; never raises for transport failures
        """
        url = candidate.url
        logger.info(f"Validating image URL: {url}")
        outcome = ValidationOutcome(url=url)
        is_template = candidate.is_likely_template or matches_fingerprint(url, self.fingerprints)

        try:
            response = await self.session.head(
                url,
                self.timeout,
                headers={"Referer": referer} if referer else None,
            )
        except TransportError as e:
            logger.warning(f"Image validation failed: {e}")
            outcome.warnings.append(f"Image URL found but validation failed: {e}")
            return self._unconfirmed(outcome, is_template)

        if response.status_code >= 400:
            logger.warning(f"Image validation failed: HTTP {response.status_code}")
            outcome.warnings.append(
                f"Image URL found but validation failed: HTTP {response.status_code}"
            )
            return self._unconfirmed(outcome, is_template)

        outcome.content_type = response.headers.get("content-type")
        outcome.content_length = _parse_length(response.headers.get("content-length"))

        looks_like_image = (
            (outcome.content_type or "").lower().startswith("image/")
            and (outcome.content_length or 0) > self.min_artifact_bytes
        )

        if not looks_like_image:
            outcome.warnings.append(
                f"Invalid image response: content-type={outcome.content_type}, "
                f"content-length={outcome.content_length}"
            )
        if is_template:
            outcome.warnings.append("URL matches a known template image")

        outcome.is_likely_generated = looks_like_image and not is_template
        if outcome.warnings:
            logger.warning(f"Image validation warnings: {outcome.warnings}")
        return outcome

    @staticmethod
    def _unconfirmed(outcome: ValidationOutcome, is_template: bool) -> ValidationOutcome:
        # A known template stays classified even without metadata
        if is_template:
            outcome.warnings.append("URL matches a known template image")
            outcome.is_likely_generated = False
        return outcome
