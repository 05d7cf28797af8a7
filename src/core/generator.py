"""Text-effect generation pipeline orchestrator."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from app.config import Settings, settings as default_settings
from src.core.exceptions import ExtractionExhausted, TransportError
from src.core.form_analyzer import FormAnalyzer, extract_effect_id
from src.core.models import GenerationRequest, GenerationResult
from src.core.page_loader import PageLoader, parse_html
from src.core.session import ProviderSession, SessionContext
from src.core.submission import DEFAULT_ALIASES, FieldAliasTable, SubmissionEngine
from src.core.validator import ImageValidator
from src.extraction.base_strategy import BaseStrategy, ExtractionContext, SleepFunc
from src.extraction.chain import ExtractionChain, describe_response

logger = logging.getLogger(__name__)


class TextEffectGenerator:
    """Runs the load → analyze → submit → extract → validate pipeline.

    Every call to ``generate()`` opens its own session, so one generator can
    be awaited concurrently with others without sharing cookies.

    Attributes:
        request: The validated generation request
        effect_id: Numeric effect id parsed from the target URL
        settings: Pipeline settings
        chain: Extraction strategy chain

    Example:
        generator = TextEffectGenerator(
            "https://photooxy.com/logo-and-text-effects/butterfly-text-183.html",
            ["Hello"]
        )
        result = await generator.generate()
        if result.succeeded:
            print(result.image_url)
    """

    def __init__(
        self,
        target_page_url: str,
        texts: Union[str, Sequence[str]] = ("Sample",),
        settings: Optional[Settings] = None,
        strategies: Optional[Sequence[BaseStrategy]] = None,
        aliases: FieldAliasTable = DEFAULT_ALIASES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunc] = None
    ):
        """Initialize the generator.

        Args:
            target_page_url: Provider effect page URL
            texts: One text, or one text per input slot
            settings: Pipeline settings (defaults to the global settings)
            strategies: Extraction strategies (defaults to the standard chain)
            aliases: Field alias table for text slots
            transport: Optional httpx transport, e.g. a MockTransport in tests
            sleep: Optional awaitable sleep used by polling and waits

        Raises:
            InvalidTargetUrl: If the URL does not belong to the provider, has
                no effect id, or texts is empty
            ValueError: If the timing settings are inconsistent
        """
        self.settings = settings or default_settings
        self.settings.validate_timeouts()
        self.request = GenerationRequest.create(
            target_page_url,
            [texts] if isinstance(texts, str) else list(texts),
            self.settings.provider_domain,
        )
        self.effect_id = extract_effect_id(self.request.target_page_url)
        self.chain = ExtractionChain(strategies)
        self.aliases = aliases
        self._transport = transport
        self._sleep = sleep or asyncio.sleep

        logger.info(
            f"Initialized TextEffectGenerator for effect {self.effect_id}: "
            f"{self.request.target_page_url}"
        )

    def set_text(self, texts: Union[str, Sequence[str]]) -> None:
        """Replace the texts used by subsequent runs.

        Raises:
            InvalidTargetUrl: If texts is empty
        """
        self.request = GenerationRequest.create(
            self.request.target_page_url,
            [texts] if isinstance(texts, str) else list(texts),
            self.settings.provider_domain,
        )

    def _identity_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept-Language": self.settings.accept_language,
        }

    async def generate(self) -> GenerationResult:
        """Run the whole pipeline once.

        Returns:
            GenerationResult; ``succeeded=False`` with diagnostics when the
            provider answered but no result image could be located

        Raises:
            TransportError: On network failure, timeout, or deadline overrun
            UnexpectedStatus: If the page or submission returns an unusable status
            FormDiscoveryError: If the generation form cannot be identified
            ProcessingFailed: If the provider reports that generation failed
        """
        logger.info(f"Generation started: {len(self.request.texts)} text(s)")
        try:
            return await asyncio.wait_for(
                self._run(time.monotonic()),
                timeout=self.settings.pipeline_deadline
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Pipeline deadline of {self.settings.pipeline_deadline}s exceeded")
            raise TransportError(
                "Pipeline deadline exceeded",
                {
                    "url": self.request.target_page_url,
                    "deadline": self.settings.pipeline_deadline,
                }
            ) from e

    async def _run(self, started: float) -> GenerationResult:
        settings = self.settings
        url = self.request.target_page_url
        context = SessionContext(
            origin=self.request.origin,
            identity_headers=self._identity_headers(),
        )

        async with ProviderSession(context, settings.max_redirects, self._transport) as session:
            page = await PageLoader(session, settings.page_timeout).load(url)

            analyzed = FormAnalyzer(settings.require_processing_server).analyze(
                page.soup, page.url, url
            )

            submission = await SubmissionEngine(
                session, settings.submit_timeout, self.aliases
            ).submit(analyzed.form, analyzed.parameters, self.request.texts, url)

            soup = parse_html(submission.html)
            extraction = ExtractionContext(
                request=self.request,
                parameters=analyzed.parameters,
                submission=submission,
                soup=soup,
                session=session,
                settings=settings,
                sleep=self._sleep,
            )

            try:
                candidate = await self.chain.run(extraction)
            except ExtractionExhausted as e:
                return GenerationResult(
                    succeeded=False,
                    failure_reason=str(e),
                    diagnostics=e.diagnostics.model_copy(
                        update={"elapsed_seconds": time.monotonic() - started}
                    ),
                )

            outcome = await ImageValidator(
                session,
                settings.validate_timeout,
                settings.min_artifact_bytes,
                settings.template_fingerprints,
            ).validate(candidate, referer=url)

        diagnostics = describe_response(submission.html, soup, submission.final_url)
        logger.info(f"Generation completed via {candidate.source}: {outcome.url}")
        return GenerationResult(
            succeeded=True,
            image_url=outcome.url,
            content_type=outcome.content_type,
            content_length=outcome.content_length,
            is_likely_generated=outcome.is_likely_generated,
            warnings=outcome.warnings,
            diagnostics=diagnostics.model_copy(
                update={
                    "strategy": candidate.source,
                    "elapsed_seconds": time.monotonic() - started,
                }
            ),
        )

    def get_debug_info(self) -> Dict[str, Any]:
        """Static snapshot of the generator's configuration.

        Returns:
            Dictionary with the effect URL, texts, origin, effect id and chain
        """
        strategies: List[str] = [s.name for s in self.chain.strategies]
        return {
            "effect_url": self.request.target_page_url,
            "input_texts": list(self.request.texts),
            "base_url": self.request.origin,
            "effect_id": self.effect_id,
            "strategies": strategies,
        }
