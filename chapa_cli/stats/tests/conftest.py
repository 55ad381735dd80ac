"""Shared fixtures for stats tests."""

from collections.abc import Callable
from typing import Any

import pytest

from chapa_cli.stats.models import RawContributionData


@pytest.fixture
def make_raw() -> Callable[..., RawContributionData]:
    """Factory for RawContributionData with empty defaults.

    Returns:
        Callable accepting RawContributionData field overrides
    """

    def _make(**overrides: Any) -> RawContributionData:
        data: dict[str, Any] = {
            "login": "corp_user",
            "display_name": "Corp User",
            "avatar_url": "https://avatars.githubusercontent.com/u/1",
        }
        data.update(overrides)
        return RawContributionData.model_validate(data)

    return _make


@pytest.fixture
def realistic_raw(make_raw: Callable[..., RawContributionData]) -> RawContributionData:
    """A year-shaped payload with mixed PRs, repos and owned repos."""
    return make_raw(
        contribution_calendar={
            "total_contributions": 412,
            "weeks": [
                {
                    "days": [
                        {"date": "2025-01-05", "count": 0},
                        {"date": "2025-01-06", "count": 4},
                        {"date": "2025-01-07", "count": 12},
                    ]
                },
                {
                    "days": [
                        {"date": "2025-01-12", "count": 33},
                        {"date": "2025-01-13", "count": 0},
                    ]
                },
            ],
        },
        pull_request_total=4,
        pull_requests=[
            {"additions": 100, "deletions": 50, "changed_files": 3, "merged": True},
            {"additions": 10, "deletions": 0, "changed_files": 1, "merged": True},
            {"additions": 5000, "deletions": 4000, "changed_files": 80, "merged": False},
            {"additions": 0, "deletions": 0, "changed_files": 0, "merged": True},
        ],
        review_count=17,
        issue_count=6,
        repositories=[
            {"name": "corp/api", "commits_in_window": 60},
            {"name": "corp/web", "commits_in_window": 30},
            {"name": "corp/infra", "commits_in_window": 10},
            {"name": "corp/empty", "commits_in_window": 0},
        ],
        owned_repos=[
            {"stars": 12, "forks": 3, "watchers": 4},
            {"stars": 1, "forks": 0, "watchers": 1},
        ],
    )
