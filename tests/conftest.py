"""Shared pytest fixtures for all test types."""

from __future__ import annotations

import pytest

from src.auth.access import restrictions_for


@pytest.fixture(autouse=True)
def _clear_restriction_cache() -> None:
    """Restriction chains are cached per process; start every test from a clean cache."""
    restrictions_for.cache_clear()
