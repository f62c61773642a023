"""Pytest configuration and fixtures."""

import os
from contextlib import ExitStack
from unittest.mock import patch

import pytest

from tests.fakes.fake_db import PATCH_TARGETS, FakeDB


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["ANTHROPIC_API_KEY"] = "test-anthropic-key"
    os.environ["PATTERN_ENGINE_ENV"] = "test"


@pytest.fixture(autouse=True)
def fresh_singletons():
    """Settings and the registry are cached per process; reset around each test."""
    from app.core.config import get_settings
    from app.core.pattern_registry import get_pattern_registry

    get_settings.cache_clear()
    get_pattern_registry.cache_clear()
    yield
    get_settings.cache_clear()
    get_pattern_registry.cache_clear()


@pytest.fixture
def fake_db():
    """Route every db call of the pattern engine to an in-memory FakeDB."""
    db = FakeDB()
    with ExitStack() as stack:
        for module, name in PATCH_TARGETS:
            stack.enter_context(patch(f"{module}.{name}", side_effect=getattr(db, name)))
        yield db


@pytest.fixture
def registry(fake_db):
    """Registry without snapshot expiry, backed by the fake db."""
    from app.core.pattern_registry import PatternRegistry

    return PatternRegistry(ttl_seconds=None)
