"""Shared test fixtures for GitHub client tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from chapa_cli.github.client import GitHubClient


@pytest.fixture
def response_context() -> Callable[..., MagicMock]:
    """Factory for mocked `async with session.post(...)` contexts.

    Returns:
        Callable taking status, json_data and text, returning the context
    """

    def _make(status: int = 200, json_data: Any = None, text: str = "") -> MagicMock:
        mock_response = AsyncMock()
        mock_response.status = status
        mock_response.json = AsyncMock(return_value=json_data)
        mock_response.text = AsyncMock(return_value=text)

        mock_context = MagicMock()
        mock_context.__aenter__ = AsyncMock(return_value=mock_response)
        mock_context.__aexit__ = AsyncMock(return_value=None)
        return mock_context

    return _make


@pytest.fixture
def github_client() -> GitHubClient:
    """Create a GitHub client with a mocked session.

    Returns:
        GitHubClient whose session.post is a MagicMock
    """
    client = GitHubClient("emu_token_12345")
    client.session = AsyncMock()
    client.session.post = MagicMock()
    return client


@pytest.fixture
def sample_user() -> dict[str, Any]:
    """Sample `data.user` object from the contribution query.

    Returns:
        Dictionary shaped like the GitHub GraphQL response
    """
    return {
        "login": "corp_user",
        "name": "Corp User",
        "avatarUrl": "https://avatars.githubusercontent.com/u/42",
        "contributionsCollection": {
            "contributionCalendar": {
                "totalContributions": 120,
                "weeks": [
                    {
                        "contributionDays": [
                            {"date": "2025-01-05", "contributionCount": 0},
                            {"date": "2025-01-06", "contributionCount": 5},
                        ]
                    },
                    {"contributionDays": [{"date": "2025-01-12", "contributionCount": 31}]},
                ],
            },
            "pullRequestContributions": {
                "totalCount": 3,
                "nodes": [
                    {
                        "pullRequest": {
                            "additions": 100,
                            "deletions": 50,
                            "changedFiles": 3,
                            "merged": True,
                        }
                    },
                    None,
                    {"pullRequest": None},
                    {
                        "pullRequest": {
                            "additions": 7,
                            "deletions": 2,
                            "changedFiles": 1,
                            "merged": False,
                        }
                    },
                ],
            },
            "pullRequestReviewContributions": {"totalCount": 8},
            "issueContributions": {"totalCount": 2},
        },
        "repositories": {
            "totalCount": 3,
            "nodes": [
                {
                    "nameWithOwner": "corp/api",
                    "defaultBranchRef": {"target": {"history": {"totalCount": 40}}},
                },
                {"nameWithOwner": "corp/empty", "defaultBranchRef": None},
                {
                    "nameWithOwner": "corp/web",
                    "defaultBranchRef": {"target": {"history": {"totalCount": 10}}},
                },
            ],
        },
        "ownedRepos": {
            "nodes": [
                {"stargazerCount": 9, "forkCount": 2, "watchers": {"totalCount": 3}},
                None,
            ]
        },
    }
