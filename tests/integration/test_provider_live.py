"""Live tests against the real provider.

Skipped unless RUN_INTEGRATION_TESTS=true. The provider's markup drifts,
so these only assert that a run completes with a well-formed result.
"""

import pytest

from app.config import Settings
from src.core.generator import TextEffectGenerator

LIVE_EFFECT_URL = "https://photooxy.com/logo-and-text-effects/shadow-text-effect-in-the-sky-394.html"


@pytest.mark.integration
async def test_live_generation_returns_result():
    generator = TextEffectGenerator(LIVE_EFFECT_URL, ["HELLO"], settings=Settings(_env_file=None))

    result = await generator.generate()

    assert result.diagnostics is not None
    if result.succeeded:
        assert result.image_url.startswith("http")
    else:
        assert result.failure_reason
