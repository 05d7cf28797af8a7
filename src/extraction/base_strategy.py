"""Abstract base class for result-extraction strategies."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from bs4 import BeautifulSoup

from app.config import Settings
from src.core.models import GenerationParameters, GenerationRequest, ImageCandidate
from src.core.session import ProviderSession
from src.core.submission import SubmissionResult

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class ExtractionContext:
    """Everything a strategy may inspect or use during one extraction attempt.

    Attributes:
        request: The generation request
        parameters: Parameters discovered on the page
        submission: Response to the form submission
        soup: Parsed submission response
        session: The run's ProviderSession for follow-up requests
        settings: Pipeline settings
        sleep: Awaitable sleep, injectable for tests
    """
    request: GenerationRequest
    parameters: GenerationParameters
    submission: SubmissionResult
    soup: BeautifulSoup
    session: ProviderSession
    settings: Settings
    sleep: SleepFunc = field(default=asyncio.sleep)

    @property
    def base_url(self) -> str:
        return self.submission.final_url


class BaseStrategy(ABC):
    """Interface every extraction strategy implements.

    A strategy either returns a candidate or returns None. "Not found" is
    never an exception; only transport errors and explicit provider
    failures propagate.
    """

    @abstractmethod
    async def extract(self, context: ExtractionContext) -> Optional[ImageCandidate]:
        """Try to resolve a result-image URL.

        Args:
            context: The current extraction context

        Returns:
            An ImageCandidate, or None if this strategy found nothing

        Raises:
            TransportError: If a follow-up request fails at the network level
            ProcessingFailed: If the provider reports that generation failed
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier used in logs and diagnostics."""
        pass

    def __repr__(self) -> str:
        """String representation of the strategy."""
        return f"{self.__class__.__name__}(name='{self.name}')"
