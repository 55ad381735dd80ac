"""Shared fixtures for login handshake tests."""

import io
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chapa_cli.core.credentials import CredentialStore
from chapa_cli.core.logging import Console


@pytest.fixture
def poll_response() -> Callable[..., MagicMock]:
    """Factory for mocked `async with session.get(...)` contexts.

    Returns:
        Callable taking status and json_data (or json_error), returning the context
    """

    def _make(
        status: int = 200,
        json_data: Any = None,
        json_error: Exception | None = None,
    ) -> MagicMock:
        mock_response = AsyncMock()
        mock_response.status = status
        if json_error is not None:
            mock_response.json = AsyncMock(side_effect=json_error)
        else:
            mock_response.json = AsyncMock(return_value=json_data)

        mock_context = MagicMock()
        mock_context.__aenter__ = AsyncMock(return_value=mock_response)
        mock_context.__aexit__ = AsyncMock(return_value=None)
        return mock_context

    return _make


@pytest.fixture
def store(tmp_path: Path) -> CredentialStore:
    """Credential store rooted in a temporary directory."""
    return CredentialStore(tmp_path / ".chapa" / "credentials.json")


@pytest.fixture
def streams() -> tuple[io.StringIO, io.StringIO]:
    """Captured (stdout, stderr) for Console instances."""
    return io.StringIO(), io.StringIO()


@pytest.fixture
def console(streams: tuple[io.StringIO, io.StringIO]) -> Console:
    out, err = streams
    return Console(stdout=out, stderr=err)


@pytest.fixture
def verbose_console(streams: tuple[io.StringIO, io.StringIO]) -> Console:
    out, err = streams
    return Console(verbose=True, stdout=out, stderr=err)
