"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from rag_pipeline.config import get_settings
from rag_pipeline.ingestion.embedder import MockEmbeddingProvider


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    """Make every test re-read the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def mock_embedder() -> MockEmbeddingProvider:
    return MockEmbeddingProvider(dimension=16)
