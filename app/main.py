"""Command-line caller for a single text-effect generation."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from app.config import settings
from src.core.exceptions import PhotoOxyError
from src.core.generator import TextEffectGenerator
from src.core.models import GenerationResult

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_EFFECT_URL = (
    "https://photooxy.com/logo-and-text-effects/shadow-text-effect-in-the-sky-394.html"
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate a text-effect image through the provider's web form."
    )
    parser.add_argument("texts", nargs="+", help="Text for each input slot, in order")
    parser.add_argument("--url", default=DEFAULT_EFFECT_URL, help="Effect page URL")
    return parser.parse_args(argv)


async def run_generation(url: str, texts: List[str]) -> GenerationResult:
    """Create a generator for the effect page and run it once."""
    generator = TextEffectGenerator(url, texts, settings=settings)
    return await generator.generate()


def main(argv: Optional[List[str]] = None) -> int:
    """Run one generation and print the result as JSON.

    Returns:
        0 when an image URL was found, 1 when none was, 2 on a hard error
    """
    args = parse_args(argv)

    try:
        result = asyncio.run(run_generation(args.url, args.texts))
    except PhotoOxyError as e:
        logger.error(f"Generation failed: {e}")
        return 2

    print(result.model_dump_json(indent=2))
    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
