"""GitHub GraphQL client for fetching contribution stats of an EMU account."""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp
from pydantic import ValidationError

from chapa_cli.core.logging import get_logger
from chapa_cli.github.queries import CONTRIBUTION_QUERY
from chapa_cli.shared.exceptions import GitHubAPIError
from chapa_cli.shared.http import create_session
from chapa_cli.stats.aggregator import SCORING_WINDOW_DAYS, build_stats_from_raw
from chapa_cli.stats.models import RawContributionData, StatsData

logger = get_logger(__name__)


def parse_contribution_response(user: dict[str, Any]) -> RawContributionData:
    """Normalize the GraphQL `user` object into RawContributionData.

    PR contributions arrive wrapped as {"pullRequest": {...}} and may contain
    null nodes (e.g. PRs in repositories the token cannot see); those are
    unwrapped and dropped here.

    Args:
        user: `data.user` object from the contribution query

    Returns:
        RawContributionData ready for aggregation

    Raises:
        ValidationError: If required fields (login, day dates) are missing
    """
    collection = user.get("contributionsCollection") or {}
    calendar = collection.get("contributionCalendar") or {}
    pr_contributions = collection.get("pullRequestContributions") or {}

    weeks = [
        {
            "days": [
                {"date": day.get("date"), "count": day.get("contributionCount")}
                for day in week.get("contributionDays") or []
                if day is not None
            ]
        }
        for week in calendar.get("weeks") or []
        if week is not None
    ]

    pull_requests = [
        {
            "additions": node["pullRequest"].get("additions"),
            "deletions": node["pullRequest"].get("deletions"),
            "changed_files": node["pullRequest"].get("changedFiles"),
            "merged": node["pullRequest"].get("merged"),
        }
        for node in pr_contributions.get("nodes") or []
        if node is not None and node.get("pullRequest") is not None
    ]

    repositories = []
    for node in (user.get("repositories") or {}).get("nodes") or []:
        if node is None:
            continue
        # defaultBranchRef is null for empty repositories
        history = (((node.get("defaultBranchRef") or {}).get("target") or {}).get("history")) or {}
        repositories.append(
            {"name": node.get("nameWithOwner"), "commits_in_window": history.get("totalCount")}
        )

    owned_repos = [
        {
            "stars": node.get("stargazerCount"),
            "forks": node.get("forkCount"),
            "watchers": (node.get("watchers") or {}).get("totalCount"),
        }
        for node in (user.get("ownedRepos") or {}).get("nodes") or []
        if node is not None
    ]

    return RawContributionData.model_validate(
        {
            "login": user.get("login"),
            "display_name": user.get("name"),
            "avatar_url": user.get("avatarUrl"),
            "contribution_calendar": {
                "total_contributions": calendar.get("totalContributions"),
                "weeks": weeks,
            },
            "pull_request_total": pr_contributions.get("totalCount"),
            "pull_requests": pull_requests,
            "review_count": (collection.get("pullRequestReviewContributions") or {}).get(
                "totalCount"
            ),
            "issue_count": (collection.get("issueContributions") or {}).get("totalCount"),
            "repositories": repositories,
            "owned_repos": owned_repos,
        }
    )


class GitHubClient:
    """Async GitHub GraphQL client scoped to one access token.

    Requests are made once; failures are reported to the caller as "no data"
    rather than retried.

    Attributes:
        GRAPHQL_URL: Default GitHub GraphQL endpoint
    """

    GRAPHQL_URL = "https://api.github.com/graphql"

    def __init__(
        self,
        token: str,
        graphql_url: str | None = None,
        verify_tls: bool = True,
    ) -> None:
        """Initialize GitHub client with authentication token.

        Args:
            token: GitHub token for the EMU account
            graphql_url: Override for the GraphQL endpoint
            verify_tls: Verify server certificates (False for --insecure)
        """
        self.token = token
        self.graphql_url = graphql_url or self.GRAPHQL_URL
        self.verify_tls = verify_tls
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "GitHubClient":
        """Context manager entry: create aiohttp session.

        Returns:
            Self for use in async with statement
        """
        self.session = create_session(
            verify_tls=self.verify_tls,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Context manager exit: close aiohttp session."""
        if self.session:
            await self.session.close()

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Execute a GraphQL request.

        Args:
            query: GraphQL document
            variables: Query variables

        Returns:
            Decoded JSON response body (may contain both data and errors)

        Raises:
            GitHubAPIError: On non-200 status, network failure or invalid JSON
        """
        if not self.session:
            raise GitHubAPIError("Session not initialized")

        try:
            async with self.session.post(
                self.graphql_url, json={"query": query, "variables": variables}
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise GitHubAPIError(f"GraphQL HTTP {response.status}: {body[:200]}")

                body_json = await response.json()
                if not isinstance(body_json, dict):
                    raise GitHubAPIError("GraphQL response is not a JSON object")
                return body_json
        except (aiohttp.ContentTypeError, ValueError) as e:
            raise GitHubAPIError(f"GraphQL response is not JSON: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GitHubAPIError(f"Network error: {e}") from e

    async def fetch_contribution_data(
        self, login: str, now: datetime | None = None
    ) -> RawContributionData | None:
        """Fetch raw contribution data for the last SCORING_WINDOW_DAYS days.

        Args:
            login: GitHub username to fetch
            now: End of the window (default: current UTC time)

        Returns:
            RawContributionData, or None on any transport or semantic error
        """
        until = now or datetime.now(UTC)
        since = until - timedelta(days=SCORING_WINDOW_DAYS)
        variables = {
            "login": login,
            "since": since.isoformat(),
            "until": until.isoformat(),
            "historySince": since.isoformat(),
            "historyUntil": until.isoformat(),
        }

        try:
            body = await self._graphql(CONTRIBUTION_QUERY, variables)
        except GitHubAPIError as e:
            logger.error("github.fetch.failed", login=login, error=str(e))
            return None

        if body.get("errors"):
            # Partial errors (e.g. inaccessible repositories) still return usable data
            logger.warning("github.fetch.graphql_errors", login=login, errors=body["errors"])

        user = (body.get("data") or {}).get("user")
        if not user:
            logger.warning("github.fetch.user_not_found", login=login)
            return None

        try:
            raw = parse_contribution_response(user)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.error("github.fetch.malformed", login=login, error=str(e))
            return None

        logger.info(
            "github.fetch.complete",
            login=login,
            weeks=len(raw.contribution_calendar.weeks),
            pull_requests=len(raw.pull_requests),
            repositories=len(raw.repositories),
        )
        return raw

    async def fetch_contribution_stats(self, login: str) -> StatsData | None:
        """Fetch and aggregate contribution stats for a user.

        Args:
            login: GitHub username to fetch

        Returns:
            Aggregated StatsData, or None when the fetch produced no data
        """
        raw = await self.fetch_contribution_data(login)
        if raw is None:
            return None
        return build_stats_from_raw(raw)
