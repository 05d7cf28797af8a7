"""Markup patterns used to locate generated images in provider responses."""

import re
from typing import Iterable, Optional
from urllib.parse import urljoin

from bs4 import Tag

# Ordered most specific first; the first non-excluded match wins
RESULT_SELECTORS = (
    'img[src*="/result/"]',
    'img[src*="/generated/"]',
    'img[src*="/output/"]',
    'img[src*="/cache/"]',
    "img.result-image",
    "#result-image",
    ".photo-result img",
    ".result img",
    "#result img",
    'a[href*="/download/"]',
    "a[download]",
)

# Decorative or sample images served in place of a real artifact
EXCLUDED_FRAGMENTS = ("logo", "sample", "demo", "template", "placeholder")

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

URL_ATTRIBUTES = ("src", "data-src", "data-original", "href")

RESULT_KEYS = ("image", "url", "result", "download_url")

PROCESSING_SELECTORS = (
    ".processing",
    ".generating",
    '[data-status="processing"]',
    "[data-processing]",
)
PROCESSING_WORDS = ("processing", "generating")


def url_of(element: Tag) -> Optional[str]:
    """First URL-bearing attribute of an element."""
    for attribute in URL_ATTRIBUTES:
        value = element.get(attribute)
        if value and value.strip() and not value.strip().startswith(("data:", "javascript:", "#")):
            return value.strip()
    return None


def absolute(url: str, base_url: str) -> str:
    return urljoin(base_url, url)


def is_decorative(src: str) -> bool:
    lowered = src.lower()
    return any(fragment in lowered for fragment in EXCLUDED_FRAGMENTS)


def matches_fingerprint(url: str, fingerprints: Iterable[str] = ()) -> bool:
    lowered = url.lower()
    return any(fp and fp.lower() in lowered for fp in fingerprints)


def is_template_url(
    url: str,
    fingerprints: Iterable[str] = (),
    src: Optional[str] = None
) -> bool:
    """True if the image looks decorative or matches a known template fingerprint.

    Decorative fragments are matched against the raw ``src`` value as written
    in the markup, since resolving it against an effect page such as
    ``/logo-and-text-effects/...`` would drag the page path into the URL.
    Fingerprints are matched against the absolute URL.
    """
    if is_decorative(url if src is None else src):
        return True
    return matches_fingerprint(url, fingerprints)


def is_image_link(url: str) -> bool:
    path = url.lower().split("?", 1)[0].split("#", 1)[0]
    return path.endswith(IMAGE_EXTENSIONS)


def in_result_container(element: Tag) -> bool:
    """True if any ancestor's class or id names a result container."""
    for parent in element.parents:
        if not isinstance(parent, Tag):
            continue
        classes = " ".join(parent.get("class") or [])
        identifier = parent.get("id") or ""
        if "result" in classes.lower() or "result" in identifier.lower():
            return True
    return False


NAVIGATION_PATTERNS = (
    re.compile(r"""(?:window\.)?location(?:\.href)?\s*=\s*['"]([^'"]+)['"]"""),
    re.compile(r"""location\.(?:replace|assign)\(\s*['"]([^'"]+)['"]\s*\)"""),
)

META_REFRESH_URL = re.compile(r"""url\s*=\s*['"]?([^'";]+)""", re.IGNORECASE)

ENDPOINT_PATTERNS = (
    re.compile(
        r"""(?:url|ajax|endpoint)['":\s]*['"]([^'"\s]*(?:ajax|api|generate|create|build)[^'"\s]*)['"]""",
        re.IGNORECASE,
    ),
    re.compile(r"""['"]((?:https?://|/)[^'"\s]*/(?:ajax|api)/[^'"\s]*)['"]"""),
    re.compile(
        r"""['"]((?:https?://|/)[^'"\s]*(?:generate|create|build)[^'"\s]*)['"]""",
        re.IGNORECASE,
    ),
)
