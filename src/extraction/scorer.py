"""Relevance scoring for candidate image URLs.

The score is an approximate heuristic for "freshly generated" versus
"decorative/template" images. It is a best-effort ranking, not a
correctness guarantee: a high score does not prove an image is the
generated artifact.
"""

import re
from datetime import date
from typing import Optional
from urllib.parse import urlparse

# Storage-by-convention path fragments and their weights
STORAGE_FRAGMENTS = (
    ("uploads", 10),
    ("temp", 15),
    ("result", 20),
    ("generated", 20),
    ("cache", 10),
)

SIZE_MARKERS = ("large", "full", "original", "hd", "1024", "2048")
SIZE_BONUS = 5

CURRENT_YEAR_BONUS = 10
PREVIOUS_YEAR_BONUS = 5

HEX_RUN = re.compile(r"[0-9a-f]{20,}", re.IGNORECASE)
SHORT_HASH_BONUS = 12
LONG_HASH_BONUS = 15
LONG_HASH_LENGTH = 32

RESULT_CONTAINER_BONUS = 10


def _fragment_pattern(fragment: str) -> re.Pattern:
    # "/temp/" and "/results/" match, "/template/" does not
    return re.compile(rf"/{fragment}s?(?=[/_.\-]|$)")


_FRAGMENT_PATTERNS = [(_fragment_pattern(f), weight) for f, weight in STORAGE_FRAGMENTS]


def score_candidate(
    url: str,
    in_result_container: bool = False,
    current_year: Optional[int] = None
) -> int:
    """Score a candidate image URL.

    Args:
        url: Absolute image URL
        in_result_container: Whether the image sits inside a "result" node
        current_year: Year treated as "now" (defaults to today's year)

    Returns:
        Additive relevance score; higher means more likely generated
    """
    parsed = urlparse(url)
    path = parsed.path.lower()
    full = url.lower()
    year = current_year or date.today().year
    score = 0

    for pattern, weight in _FRAGMENT_PATTERNS:
        if pattern.search(path):
            score += weight

    if any(marker in full for marker in SIZE_MARKERS):
        score += SIZE_BONUS

    if str(year) in full:
        score += CURRENT_YEAR_BONUS
    elif str(year - 1) in full:
        score += PREVIOUS_YEAR_BONUS

    longest = max((len(m) for m in HEX_RUN.findall(full)), default=0)
    if longest >= LONG_HASH_LENGTH:
        score += LONG_HASH_BONUS
    elif longest:
        score += SHORT_HASH_BONUS

    if in_result_container:
        score += RESULT_CONTAINER_BONUS

    return score
