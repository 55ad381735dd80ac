"""Data models for raw contribution data and aggregated stats."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _NullsAsDefaults(BaseModel):
    """Base model where explicit nulls fall back to the field default.

    GitHub returns null for missing branches, names and counts; treating them
    as absent keeps aggregation total instead of failing validation.
    """

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ContributionDay(_NullsAsDefaults):
    """One calendar day of contributions.

    Attributes:
        date: ISO date (YYYY-MM-DD)
        count: Contributions on that day
    """

    date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    count: int = Field(0, ge=0, description="Contributions on this day")


class ContributionWeek(_NullsAsDefaults):
    """One week column of the contribution calendar, days in order."""

    days: list[ContributionDay] = Field(default_factory=list, description="Days in order")


class ContributionCalendar(_NullsAsDefaults):
    """Contribution calendar for the scoring window.

    Attributes:
        total_contributions: Total reported by GitHub (may include private
            contributions that are not visible as individual days)
        weeks: Week columns in chronological order
    """

    total_contributions: int = Field(0, ge=0, description="Calendar total")
    weeks: list[ContributionWeek] = Field(default_factory=list, description="Week columns")


class PullRequestNode(_NullsAsDefaults):
    """Size and state of one authored pull request."""

    additions: int = Field(0, ge=0, description="Lines added")
    deletions: int = Field(0, ge=0, description="Lines deleted")
    changed_files: int = Field(0, ge=0, description="Files touched")
    merged: bool = Field(False, description="Whether the PR was merged")


class RepositoryActivity(_NullsAsDefaults):
    """Commits on a repository's default branch within the scoring window."""

    name: str = Field("", description="Repository name with owner")
    commits_in_window: int = Field(0, ge=0, description="Default-branch commits in window")


class OwnedRepoAggregate(_NullsAsDefaults):
    """Social counters of one repository owned by the user."""

    stars: int = Field(0, ge=0, description="Stargazer count")
    forks: int = Field(0, ge=0, description="Fork count")
    watchers: int = Field(0, ge=0, description="Watcher count")


class RawContributionData(_NullsAsDefaults):
    """Normalized GitHub GraphQL contribution payload for one account.

    Produced once per fetch by the GitHub client and consumed once by
    build_stats_from_raw.

    Attributes:
        login: GitHub login
        display_name: Profile name, if set
        avatar_url: Avatar image URL
        contribution_calendar: Daily contribution calendar
        pull_request_total: Total authored PRs reported by GitHub
        pull_requests: Authored PR nodes (first page)
        review_count: Submitted PR reviews
        issue_count: Issue contributions
        repositories: Recently pushed repositories with window commit counts
        owned_repos: Star/fork/watcher counts of owned repositories
    """

    login: str = Field(..., description="GitHub login")
    display_name: str | None = Field(None, description="Profile display name")
    avatar_url: str = Field("", description="Avatar URL")
    contribution_calendar: ContributionCalendar = Field(default_factory=ContributionCalendar)
    pull_request_total: int = Field(0, ge=0, description="Total authored PRs")
    pull_requests: list[PullRequestNode] = Field(default_factory=list)
    review_count: int = Field(0, ge=0, description="Submitted reviews")
    issue_count: int = Field(0, ge=0, description="Issue contributions")
    repositories: list[RepositoryActivity] = Field(default_factory=list)
    owned_repos: list[OwnedRepoAggregate] = Field(default_factory=list)


class HeatmapDay(BaseModel):
    """Daily activity count for the badge heatmap."""

    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="ISO date (YYYY-MM-DD)")
    count: int = Field(0, description="Contributions on this day")


class StatsData(BaseModel):
    """Aggregated GitHub stats over the scoring window.

    Serialized with camelCase keys (model_dump(by_alias=True)) because that is
    the shape the Chapa server stores.

    Attributes:
        handle: GitHub login the stats belong to
        display_name: Profile display name
        avatar_url: Avatar URL
        commits_total: Contribution calendar total
        active_days: Days with at least one contribution
        prs_merged_count: Merged pull requests
        prs_merged_weight: Sum of merged PR weights, capped at 120
        reviews_submitted_count: Submitted reviews
        issues_closed_count: Issue contributions
        lines_added: Lines added across merged PRs
        lines_deleted: Lines deleted across merged PRs
        repos_contributed: Repositories with commits in the window
        top_repo_share: Share of window commits in the busiest repository
        max_commits_in_10min: Daily-spike approximation of burst commits
        total_stars: Stars across owned repositories
        total_forks: Forks across owned repositories
        total_watchers: Watchers across owned repositories
        heatmap_data: Flattened calendar days in input order
        fetched_at: ISO-8601 UTC timestamp of aggregation
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    handle: str = Field(..., description="GitHub login")
    display_name: str | None = Field(None, alias="displayName")
    avatar_url: str | None = Field(None, alias="avatarUrl")

    # Volume
    commits_total: int = Field(0, alias="commitsTotal")
    active_days: int = Field(0, alias="activeDays")
    prs_merged_count: int = Field(0, alias="prsMergedCount")
    prs_merged_weight: float = Field(0.0, alias="prsMergedWeight")
    reviews_submitted_count: int = Field(0, alias="reviewsSubmittedCount")
    issues_closed_count: int = Field(0, alias="issuesClosedCount")
    lines_added: int = Field(0, alias="linesAdded")
    lines_deleted: int = Field(0, alias="linesDeleted")

    # Concentration
    repos_contributed: int = Field(0, alias="reposContributed")
    top_repo_share: float = Field(0.0, alias="topRepoShare")
    max_commits_in_10min: int = Field(0, alias="maxCommitsIn10Min")

    # Social
    total_stars: int = Field(0, alias="totalStars")
    total_forks: int = Field(0, alias="totalForks")
    total_watchers: int = Field(0, alias="totalWatchers")

    heatmap_data: list[HeatmapDay] = Field(default_factory=list, alias="heatmapData")
    fetched_at: str = Field(..., alias="fetchedAt")

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the Chapa API (camelCase keys, absent optionals omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)
