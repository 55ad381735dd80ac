"""Shared fixtures for core tests."""

from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

import chapa_cli.core.config


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    """Create a temporary credentials file path for testing.

    Args:
        tmp_path: pytest's temporary directory fixture

    Returns:
        Path to a credentials.json inside a not-yet-created directory
    """
    return tmp_path / ".chapa" / "credentials.json"


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Isolate each test from cached settings, CHAPA_* variables and .env files."""
    for name in (
        "CHAPA_SERVER_URL",
        "CHAPA_CREDENTIALS_PATH",
        "CHAPA_GITHUB_GRAPHQL_URL",
        "CHAPA_POLL_INTERVAL_SECONDS",
        "CHAPA_MAX_POLL_ATTEMPTS",
        "CHAPA_PROGRESS_EVERY",
        "CHAPA_TELEMETRY_TIMEOUT_SECONDS",
        "CHAPA_LOG_LEVEL",
        "CHAPA_APP_VERSION",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    chapa_cli.core.config._settings = None
    yield
    chapa_cli.core.config._settings = None


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Drop structlog config bound to this test's captured stderr."""
    yield
    structlog.reset_defaults()
