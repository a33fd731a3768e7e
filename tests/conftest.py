"""Test configuration."""

import os
from pathlib import Path

import pytest
from pytest import Config

# Settings are read at import time; keep tests off the real working set
os.environ["TESTING"] = "true"

from place_extractor.core.logging import configure_logging  # noqa: E402

fixture = pytest.fixture


@fixture(scope="session")
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


pytest_plugins: list[str] = [
    "tests.fixtures.places",
]


def pytest_configure(config: Config) -> None:
    """Configure pytest.

    Args:
        config: Pytest configuration object
    """
    configure_logging(testing=True)
    config.addinivalue_line("markers", "integration: mark test as an integration test")
