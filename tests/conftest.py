"""Shared test fixtures and configuration."""

import os

import pytest

from app.config import Settings
from tests.stubs import EFFECT_PATH, EFFECT_URL, GENERATION_PAGE, StubProvider


@pytest.fixture
def effect_url():
    """Return the provider effect page URL used across tests."""
    return EFFECT_URL


@pytest.fixture
def pipeline_settings():
    """Return settings isolated from the environment, with no blind wait."""
    return Settings(_env_file=None, blind_wait=0.0)


@pytest.fixture
def provider():
    """Return a stub provider that already serves the generation page."""
    stub = StubProvider()
    stub.html("GET", EFFECT_PATH, GENERATION_PAGE, **{"set-cookie": "PHPSESSID=abc; path=/"})
    return stub


@pytest.fixture
def recorded_sleeps():
    """Return a list that the fake_sleep fixture appends to."""
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps):
    """Return an awaitable sleep that records durations instead of waiting."""
    async def sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)
    return sleep


# Skip integration tests unless explicitly requested
def pytest_collection_modifyitems(config, items):
    """Automatically skip integration tests unless RUN_INTEGRATION_TESTS is set."""
    skip_integration = pytest.mark.skip(reason="Integration tests disabled (set RUN_INTEGRATION_TESTS=true to enable)")

    for item in items:
        if "integration" in item.keywords:
            if not os.getenv("RUN_INTEGRATION_TESTS", "").lower() == "true":
                item.add_marker(skip_integration)
