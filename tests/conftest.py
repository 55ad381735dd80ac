"""Shared pytest fixtures for chapa CLI tests."""

import io
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from chapa_cli.core.config import Settings
from chapa_cli.core.credentials import Credentials, CredentialStore
from chapa_cli.core.logging import Console


@pytest.fixture
def credentials_file(tmp_path: Path) -> Path:
    """Temporary credentials file path.

    Args:
        tmp_path: pytest's temporary directory fixture

    Returns:
        Path to credentials.json inside a not-yet-created directory
    """
    return tmp_path / ".chapa" / "credentials.json"


@pytest.fixture
def mock_settings(credentials_file: Path) -> Settings:
    """Create Settings instance with test values.

    Args:
        credentials_file: Temporary credentials path

    Returns:
        Settings instance configured for testing
    """
    return Settings(
        server_url="https://chapa.example",
        credentials_path=credentials_file,
        log_level="WARNING",
        telemetry_timeout_seconds=0.1,
        app_version="0.4.0",
    )


@pytest.fixture
def saved_credentials(credentials_file: Path) -> Credentials:
    """Write a logged-in record for handle 'octocat'."""
    credentials = Credentials(
        token="tok_saved", handle="octocat", server="https://stored.chapa.example"
    )
    CredentialStore(credentials_file).save(credentials)
    return credentials


@pytest.fixture
def streams() -> tuple[io.StringIO, io.StringIO]:
    """Captured (stdout, stderr) for Console instances."""
    return io.StringIO(), io.StringIO()


@pytest.fixture
def console(streams: tuple[io.StringIO, io.StringIO]) -> Console:
    out, err = streams
    return Console(stdout=out, stderr=err)


@pytest.fixture(autouse=True)
def reset_settings_cache(
    monkeypatch: pytest.MonkeyPatch, credentials_file: Path
) -> Iterator[None]:
    """Reset the global settings cache and keep tests away from real credentials.

    This ensures tests don't interfere with each other via cached settings.
    """
    import chapa_cli.core.config

    monkeypatch.setenv("CHAPA_CREDENTIALS_PATH", str(credentials_file))
    monkeypatch.delenv("GITHUB_EMU_TOKEN", raising=False)

    chapa_cli.core.config._settings = None
    yield
    chapa_cli.core.config._settings = None


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Drop structlog config bound to this test's captured stderr."""
    yield
    structlog.reset_defaults()
