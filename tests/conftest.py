"""Shared pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from geomcore.config import Settings, settings
from geomcore.memory import Arena
from geomcore.utils.logging import clear_correlation_context, configure_logging


@pytest.fixture(autouse=True)
def reset_logging_context() -> Iterator[None]:
    """Reset correlation context between tests."""
    clear_correlation_context()
    yield
    clear_correlation_context()


@pytest.fixture
def test_settings() -> Settings:
    """Create a Settings instance with test-safe defaults."""
    return Settings(
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="console",
        ARENA_BLOCK_SIZE=1024,
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def arena() -> Iterator[Arena]:
    """A small-block arena, reset after the test."""
    with Arena(block_size=1024) as fresh:
        yield fresh


@pytest.fixture
def debug_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    """Enable precondition checks for the duration of a test."""
    monkeypatch.setattr(settings, "DEBUG_CHECKS", True)


@pytest.fixture
def configure_test_logging() -> Iterator[None]:
    """Configure logging for tests with console output."""
    configure_logging(level="DEBUG", log_format="console")
    yield
