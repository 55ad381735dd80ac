"""Shared fixtures for upload and telemetry tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chapa_cli.stats.models import HeatmapDay, StatsData


@pytest.fixture
def post_response() -> Callable[..., MagicMock]:
    """Factory for mocked `async with session.post(...)` contexts.

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
def stats() -> StatsData:
    """Aggregated stats for an EMU account."""
    return StatsData(
        handle="corp_user",
        display_name="Corp User",
        avatar_url="https://avatars.githubusercontent.com/u/1",
        commits_total=412,
        active_days=180,
        prs_merged_count=25,
        prs_merged_weight=48.75,
        reviews_submitted_count=17,
        issues_closed_count=6,
        lines_added=9000,
        lines_deleted=3000,
        repos_contributed=4,
        top_repo_share=0.55,
        max_commits_in_10min=33,
        total_stars=13,
        total_forks=3,
        total_watchers=5,
        heatmap_data=[HeatmapDay(date="2025-01-06", count=4)],
        fetched_at="2025-06-01T12:00:00.000Z",
    )
