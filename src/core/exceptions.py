"""Error taxonomy for the generation pipeline."""

from typing import Any, Dict, Optional


class PhotoOxyError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        context: Diagnostic details (last-known URL, counts, status codes)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{message} ({details})"


class InvalidTargetUrl(PhotoOxyError, ValueError):
    """The target page URL is malformed or does not belong to the provider."""


class TransportError(PhotoOxyError, ConnectionError):
    """Network failure, timeout, or exceeded pipeline deadline."""


class UnexpectedStatus(TransportError):
    """The provider answered with a status that makes the response unusable."""

    def __init__(
        self,
        message: str,
        status_code: int,
        context: Optional[Dict[str, Any]] = None
    ):
        context = dict(context or {})
        context.setdefault("status_code", status_code)
        super().__init__(message, context)
        self.status_code = status_code


class FormDiscoveryError(PhotoOxyError, RuntimeError):
    """The provider's page structure was not recognized."""


class ProcessingFailed(PhotoOxyError, RuntimeError):
    """The provider explicitly reported that generation failed."""


class ExtractionExhausted(PhotoOxyError):
    """No extraction strategy produced a candidate.

    Raised by the extraction chain and converted into a non-throwing
    failed GenerationResult by the generator.
    """

    def __init__(self, message: str, diagnostics):
        super().__init__(message)
        self.diagnostics = diagnostics
