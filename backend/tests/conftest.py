"""Pytest configuration and fixtures."""

import pytest

from goldfolio.config import Settings


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway database and the offline simulator."""
    return Settings(price_source="simulator", db_path=tmp_path / "goldfolio.db")
