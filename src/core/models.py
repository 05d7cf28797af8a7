"""Core data models for the text-effect generation pipeline."""

from enum import Enum
from typing import Optional, Dict, List
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.exceptions import InvalidTargetUrl

PROVIDER_DOMAIN = "photooxy.com"


def host_matches_provider(url: str, provider_domain: str = PROVIDER_DOMAIN) -> bool:
    """Check that the URL's host is the provider domain or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    domain = provider_domain.lower()
    return host == domain or host.endswith("." + domain)


class GenerationRequest(BaseModel):
    """Request model for one pipeline run.

    Attributes:
        target_page_url: The provider's effect page (e.g. ``...-183.html``)
        texts: One text per expected input slot, in order
    """

    model_config = ConfigDict(frozen=True)

    target_page_url: str = Field(
        ...,
        min_length=1,
        description="Provider effect page URL"
    )
    texts: List[str] = Field(
        ...,
        min_length=1,
        description="Texts to render, one per input slot"
    )

    @field_validator("target_page_url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"Not an absolute http(s) URL: '{value}'")
        return value

    @classmethod
    def create(
        cls,
        target_page_url: str,
        texts: List[str],
        provider_domain: str = PROVIDER_DOMAIN
    ) -> "GenerationRequest":
        """Build a request, enforcing that the URL belongs to the provider.

        Raises:
            InvalidTargetUrl: If the URL or texts are invalid
        """
        try:
            request = cls(target_page_url=target_page_url, texts=list(texts))
        except ValidationError as e:
            raise InvalidTargetUrl(
                f"Invalid generation request: {e.errors()[0]['msg']}",
                {"url": target_page_url}
            ) from e

        if not host_matches_provider(request.target_page_url, provider_domain):
            raise InvalidTargetUrl(
                f"Invalid URL: must be a {provider_domain} URL",
                {"url": target_page_url}
            )
        return request

    @property
    def origin(self) -> str:
        parsed = urlparse(self.target_page_url)
        return f"{parsed.scheme}://{parsed.netloc}"


class FieldKind(str, Enum):
    """Classification of a form field."""
    TEXT = "text"
    HIDDEN = "hidden"
    SUBMIT = "submit"
    OTHER = "other"


class FormField(BaseModel):
    """A single named field found in a form."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""
    kind: FieldKind = FieldKind.OTHER

    @property
    def is_text_like(self) -> bool:
        return self.kind == FieldKind.TEXT or "text" in self.name.lower()


class FormDescriptor(BaseModel):
    """The generation form selected from the provider page.

    Attributes:
        action: Absolute submission URL
        method: GET or POST
        fields: Fields in declaration order
        synthesized: True when built from document-wide fields, not a <form>
    """

    model_config = ConfigDict(frozen=True)

    action: str
    method: str = "POST"
    fields: List[FormField] = Field(default_factory=list)
    synthesized: bool = False

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        value = (value or "GET").upper()
        return value if value in ("GET", "POST") else "GET"

    @property
    def fields_by_name(self) -> Dict[str, FormField]:
        return {f.name: f for f in self.fields}

    @property
    def text_fields(self) -> List[FormField]:
        return [f for f in self.fields if f.kind == FieldKind.TEXT]


class GenerationParameters(BaseModel):
    """Auxiliary parameters discovered on the page.

    Attributes:
        processing_server_id: The provider's build server identifier
        anti_forgery_token: CSRF token from a field or meta tag
        effect_id: Numeric id parsed from the page URL
        expected_text_slot_count: Number of text inputs in the selected form
        extra_hidden_fields: Hidden inputs found outside the selected form
    """

    model_config = ConfigDict(frozen=True)

    processing_server_id: Optional[str] = None
    anti_forgery_token: Optional[str] = None
    effect_id: Optional[str] = None
    expected_text_slot_count: int = Field(default=0, ge=0)
    extra_hidden_fields: Dict[str, str] = Field(default_factory=dict)


class ImageCandidate(BaseModel):
    """A URL suspected to be the generated artifact."""

    model_config = ConfigDict(frozen=True)

    url: str
    is_likely_template: bool = False
    relevance_score: int = 0
    source: str = ""

    def preference_key(self) -> tuple:
        """Sort key: non-templates first, then higher score."""
        return (self.is_likely_template, -self.relevance_score)


class Diagnostics(BaseModel):
    """Counts describing the last analysed response."""

    model_config = ConfigDict(frozen=True)

    response_bytes: int = 0
    forms_found: int = 0
    images_found: int = 0
    processing_indicator: bool = False
    final_url: Optional[str] = None
    strategy: Optional[str] = None
    elapsed_seconds: float = 0.0


class GenerationResult(BaseModel):
    """Terminal value returned to the caller.

    Attributes:
        succeeded: Whether an image URL was found
        image_url: The discovered image URL
        content_type: Content type reported by the validation request
        content_length: Content length reported by the validation request
        is_likely_generated: True for a genuine artifact, False for a probable
            template, None when validation could not run
        failure_reason: Why no image URL was found
        warnings: Non-fatal issues raised during validation
        diagnostics: Counts for debugging provider drift
    """

    model_config = ConfigDict(frozen=True)

    succeeded: bool
    image_url: Optional[str] = None
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    is_likely_generated: Optional[bool] = None
    failure_reason: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    diagnostics: Optional[Diagnostics] = None

    def comparable(self) -> dict:
        """Dump without wall-clock-derived fields."""
        return self.model_dump(exclude={"diagnostics": {"elapsed_seconds"}})
