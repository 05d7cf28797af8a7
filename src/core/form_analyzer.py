"""Discovery of the provider's generation form and auxiliary parameters."""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from src.core.exceptions import FormDiscoveryError, InvalidTargetUrl
from src.core.models import FieldKind, FormDescriptor, FormField, GenerationParameters

logger = logging.getLogger(__name__)

EFFECT_ID_PATTERN = re.compile(r"(\d+)\.html?$", re.IGNORECASE)

TEXT_INPUT_TYPES = {"text", "search", "email", "tel", "url"}
SUBMIT_INPUT_TYPES = {"submit", "button", "image"}

# Fields the provider places outside of any form
GLOBAL_FIELD_NAMES = ("build_server", "server", "build_server_id", "token")
PROCESSING_SERVER_FIELDS = ("build_server", "server", "build_server_id")
TOKEN_FIELDS = ("_token", "token", "csrf_token")
TOKEN_META_NAMES = ("csrf-token", "_token", "csrf_token")


def extract_effect_id(url: str) -> str:
    """Extract the numeric effect id from a provider page URL.

    Only the URL path is considered, so query strings and fragments never
    change the result.

    Args:
        url: Target page URL (e.g. ``.../butterfly-text-effect-183.html?x=1``)

    Returns:
        The effect id as a string (e.g. ``"183"``)

    Raises:
        InvalidTargetUrl: If the path has no trailing numeric segment
    """
    path = urlparse(url).path
    match = EFFECT_ID_PATTERN.search(path)
    if not match:
        raise InvalidTargetUrl(
            "Could not extract effect id from URL",
            {"url": url}
        )
    return match.group(1)


@dataclass
class AnalyzedPage:
    """Result of form analysis."""
    form: FormDescriptor
    parameters: GenerationParameters
    forms_found: int


def _field_kind(element: Tag) -> FieldKind:
    if element.name == "textarea":
        return FieldKind.TEXT
    if element.name == "select":
        return FieldKind.OTHER
    if element.name == "button":
        return FieldKind.SUBMIT

    input_type = (element.get("type") or "text").lower()
    if input_type in TEXT_INPUT_TYPES:
        return FieldKind.TEXT
    if input_type == "hidden":
        return FieldKind.HIDDEN
    if input_type in SUBMIT_INPUT_TYPES:
        return FieldKind.SUBMIT
    return FieldKind.OTHER


def _field_value(element: Tag) -> str:
    if element.name == "textarea":
        return element.get_text()
    if element.name == "select":
        option = element.find("option", selected=True) or element.find("option")
        if option is None:
            return ""
        return option.get("value", option.get_text(strip=True))
    return element.get("value", "")


def extract_fields(container: Tag) -> List[FormField]:
    """All named input/textarea/select/button fields below a node, in order."""
    fields = []
    for element in container.find_all(["input", "textarea", "select", "button"]):
        name = element.get("name")
        if not name:
            continue
        fields.append(
            FormField(name=name, value=_field_value(element), kind=_field_kind(element))
        )
    return fields


def is_search_action(action: str) -> bool:
    """True if any path segment of the action names a site search."""
    segments = urlparse(action).path.lower().split("/")
    return any("search" in segment for segment in segments)


def looks_like_generation_form(form: FormDescriptor) -> bool:
    has_text = any(f.is_text_like for f in form.fields)
    has_submit = any(f.kind == FieldKind.SUBMIT for f in form.fields)
    return has_text and (has_submit or form.method == "POST")


class FormAnalyzer:
    """Finds the generation form on a provider page.

    Classification rules, first match wins:
        1. Forms whose action is a site search are excluded.
        2. The first form with a text-like field and a submit field (or
           method POST) is the generation form.
        3. Otherwise a minimal form is synthesized from document-wide
           provider fields (build server, token) and CSRF meta tags.
        4. Otherwise FormDiscoveryError is raised.

    Attributes:
        require_processing_server: Fail when no build server id is found
    """

    def __init__(self, require_processing_server: bool = False):
        self.require_processing_server = require_processing_server

    def describe_forms(self, soup: BeautifulSoup, page_url: str) -> List[FormDescriptor]:
        """Describe every <form> in the document."""
        descriptors = []
        for form in soup.find_all("form"):
            action = (form.get("action") or "").strip()
            descriptors.append(
                FormDescriptor(
                    action=urljoin(page_url, action) if action else page_url,
                    method=form.get("method") or "GET",
                    fields=extract_fields(form),
                )
            )
        return descriptors

    def select_form(self, forms: List[FormDescriptor]) -> Optional[FormDescriptor]:
        """Apply classification rules 1 and 2."""
        for form in forms:
            if is_search_action(form.action):
                logger.debug(f"Skipping search form: {form.action}")
                continue
            if looks_like_generation_form(form):
                return form
        return None

    def synthesize_form(
        self,
        soup: BeautifulSoup,
        page_url: str
    ) -> Optional[FormDescriptor]:
        """Apply classification rule 3."""
        fields = [
            f for f in extract_fields(soup)
            if f.name in GLOBAL_FIELD_NAMES
        ]
        if not fields and not self._meta_token(soup):
            return None

        return FormDescriptor(
            action=page_url,
            method="POST",
            fields=fields,
            synthesized=True,
        )

    def analyze(
        self,
        soup: BeautifulSoup,
        page_url: str,
        target_page_url: Optional[str] = None
    ) -> AnalyzedPage:
        """Select the generation form and derive generation parameters.

        Args:
            soup: Parsed provider page
            page_url: URL the page was served from (after redirects)
            target_page_url: URL the caller asked for; defaults to page_url

        Returns:
            AnalyzedPage with the form and parameters

        Raises:
            InvalidTargetUrl: If no effect id can be parsed from the target URL
            FormDiscoveryError: If no generation form can be identified, or a
                required build server id is missing
        """
        target_page_url = target_page_url or page_url
        effect_id = extract_effect_id(target_page_url)
        forms = self.describe_forms(soup, page_url)

        form = self.select_form(forms) or self.synthesize_form(soup, target_page_url)
        if form is None:
            raise FormDiscoveryError(
                "No generation form found; provider page structure has changed",
                {
                    "url": page_url,
                    "forms_found": len(forms),
                    "inputs_found": len(soup.find_all("input")),
                }
            )

        parameters = self._derive_parameters(soup, form, effect_id)

        if self.require_processing_server and not parameters.processing_server_id:
            raise FormDiscoveryError(
                "Processing server id is required but was not found",
                {"url": page_url, "forms_found": len(forms)}
            )

        logger.info(
            f"Form selected: action={form.action}, method={form.method}, "
            f"fields={len(form.fields)}, synthesized={form.synthesized}"
        )
        logger.info(
            f"Parameters: effect_id={parameters.effect_id}, "
            f"build_server={parameters.processing_server_id}, "
            f"text_slots={parameters.expected_text_slot_count}, "
            f"extra_hidden={len(parameters.extra_hidden_fields)}"
        )
        return AnalyzedPage(form=form, parameters=parameters, forms_found=len(forms))

    def _derive_parameters(
        self,
        soup: BeautifulSoup,
        form: FormDescriptor,
        effect_id: str
    ) -> GenerationParameters:
        form_values = {f.name: f.value for f in form.fields}
        document_fields = extract_fields(soup)
        document_values: Dict[str, str] = {}
        for f in document_fields:
            document_values.setdefault(f.name, f.value)

        extra_hidden = {}
        for f in document_fields:
            if f.kind == FieldKind.HIDDEN and f.name not in form_values:
                extra_hidden.setdefault(f.name, f.value)

        server_id = self._first_value(PROCESSING_SERVER_FIELDS, form_values, document_values)
        if not server_id:
            element = soup.find(id="build_server")
            if element is not None and element.get("value"):
                server_id = element["value"]

        token = self._meta_token(soup) or self._first_value(
            TOKEN_FIELDS, form_values, document_values
        )

        return GenerationParameters(
            processing_server_id=server_id,
            anti_forgery_token=token,
            effect_id=effect_id,
            expected_text_slot_count=len(form.text_fields),
            extra_hidden_fields=extra_hidden,
        )

    @staticmethod
    def _first_value(names, *sources: Dict[str, str]) -> Optional[str]:
        for source in sources:
            for name in names:
                if source.get(name):
                    return source[name]
        return None

    @staticmethod
    def _meta_token(soup: BeautifulSoup) -> Optional[str]:
        for name in TOKEN_META_NAMES:
            meta = soup.find("meta", attrs={"name": name})
            if meta is not None and meta.get("content"):
                return meta["content"]
        return None
