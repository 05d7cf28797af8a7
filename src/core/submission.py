"""Construction and submission of the generation form."""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urljoin

from src.core.exceptions import UnexpectedStatus
from src.core.models import FieldKind, FormDescriptor, GenerationParameters
from src.core.page_loader import collect_set_cookies
from src.core.session import ProviderSession

logger = logging.getLogger(__name__)

FieldList = List[Tuple[str, str]]

FIELD_INDEX_PATTERN = re.compile(r"(\d+)\]?$")


@dataclass
class FieldAliasTable:
    """Naming conventions the provider accepts interchangeably for text slots.

    The accepted name cannot be reliably discovered from the markup, so every
    text is sent under each alias. ``{index}`` is replaced by the 0-based
    slot position.

    Example:
        aliases = FieldAliasTable(("text_{index}", "text[]"))
        aliases.names_for(1)  # ["text_1", "text[]"]
    """
    templates: Tuple[str, ...] = ("text_{index}", "text-{index}", "text[]")

    def names_for(self, index: int) -> List[str]:
        return [template.format(index=index) for template in self.templates]

    def extend(self, *templates: str) -> "FieldAliasTable":
        return FieldAliasTable(self.templates + tuple(templates))


DEFAULT_ALIASES = FieldAliasTable()

SUBMIT_TRIGGER = ("submit", "GO")
BUILD_FLAG = ("build", "1")
EFFECT_ID_FIELDS = ("id", "effect_id")


@dataclass
class SubmissionResult:
    """Response to the form submission."""
    html: str
    final_url: str
    status_code: int
    fields: FieldList = field(default_factory=list)


def text_for_field(
    name: str,
    position: int,
    texts: Sequence[str]
) -> str:
    """Pick the request text for an empty text field.

    Uses the numeric suffix of the field name when it is a valid index,
    else the field's position among text fields, else the first text.
    """
    match = FIELD_INDEX_PATTERN.search(name)
    if match and int(match.group(1)) < len(texts):
        return texts[int(match.group(1))]
    if position < len(texts):
        return texts[position]
    return texts[0]


def build_fields(
    form: FormDescriptor,
    parameters: GenerationParameters,
    texts: Sequence[str],
    aliases: FieldAliasTable = DEFAULT_ALIASES
) -> FieldList:
    """Build the outbound field set.

    Args:
        form: Selected generation form
        parameters: Parameters discovered on the page
        texts: Request texts, one per slot
        aliases: Alternate naming conventions for text slots

    Returns:
        Ordered (name, value) pairs; names may repeat
    """
    fields: FieldList = []
    text_position = 0

    for form_field in form.fields:
        value = form_field.value
        if form_field.kind == FieldKind.TEXT:
            if not value:
                value = text_for_field(form_field.name, text_position, texts)
            text_position += 1
        fields.append((form_field.name, value))

    present = {name for name, _ in fields}

    for name, value in parameters.extra_hidden_fields.items():
        if name not in present:
            fields.append((name, value))
            present.add(name)

    if parameters.anti_forgery_token and "_token" not in present:
        fields.append(("_token", parameters.anti_forgery_token))
        present.add("_token")

    for index, text in enumerate(texts):
        for alias in aliases.names_for(index):
            fields.append((alias, text))
    present.update(name for name, _ in fields)

    controls = [SUBMIT_TRIGGER, BUILD_FLAG]
    if parameters.effect_id:
        controls.extend((name, parameters.effect_id) for name in EFFECT_ID_FIELDS)
    if parameters.processing_server_id:
        controls.append(("build_server", parameters.processing_server_id))

    for name, value in controls:
        if name not in present:
            fields.append((name, value))

    return fields


def resolve_destination(action: Optional[str], origin: str, target_page_url: str) -> str:
    """Action if absolute, else resolved against the origin, else the target page."""
    if action and action.startswith(("http://", "https://")):
        return action
    if action:
        return urljoin(origin + "/", action)
    return target_page_url


class SubmissionEngine:
    """Submits the generation form with the session's cookies.

    Attributes:
        session: The run's ProviderSession
        timeout: Submission timeout in seconds
        aliases: Field alias table used for text slots
    """

    def __init__(
        self,
        session: ProviderSession,
        timeout: float = 30.0,
        aliases: FieldAliasTable = DEFAULT_ALIASES
    ):
        self.session = session
        self.timeout = timeout
        self.aliases = aliases

    async def submit(
        self,
        form: FormDescriptor,
        parameters: GenerationParameters,
        texts: Sequence[str],
        target_page_url: str
    ) -> SubmissionResult:
        """POST the field set as multipart/form-data.

        Any status below 500 is returned for analysis; providers serve
        error-styled pages that still carry usable results.

        Raises:
            TransportError: On network failure or timeout
            UnexpectedStatus: On a server error status
        """
        fields = build_fields(form, parameters, texts, self.aliases)
        url = resolve_destination(form.action, self.session.context.origin, target_page_url)
        logger.info(f"Submitting {len(fields)} fields to: {url}")

        response = await self.session.post(
            url,
            self.timeout,
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Origin": self.session.context.origin,
                "Referer": target_page_url,
            },
            # (None, value) parts force multipart encoding without file content
            files=[(name, (None, value.encode("utf-8"))) for name, value in fields],
        )

        if response.status_code >= 500:
            raise UnexpectedStatus(
                f"Submission failed with HTTP {response.status_code}",
                response.status_code,
                {"url": str(response.url)}
            )

        self.session.context.update_cookies(collect_set_cookies(response))

        logger.info(
            f"Form submitted (HTTP {response.status_code}), final URL: {response.url}"
        )
        return SubmissionResult(
            html=response.text,
            final_url=str(response.url),
            status_code=response.status_code,
            fields=fields,
        )
