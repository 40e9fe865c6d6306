# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

Settings and the bound log context are process-wide; the fixtures here
give each test its own settings object and reset both afterwards.
"""

from collections.abc import Generator

import pytest

from src.core.config import Settings, clear_settings_cache
from src.utils.logging import clear_context


@pytest.fixture
def settings() -> Settings:
    """Provide settings for the test environment."""
    return Settings(environment="test", debug=False)


@pytest.fixture(autouse=True)
def _reset_global_state() -> Generator[None, None, None]:
    """Keep cached settings and bound log context from leaking between tests."""
    yield
    clear_settings_cache()
    clear_context()
