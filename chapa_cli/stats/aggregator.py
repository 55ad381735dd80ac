"""Turn raw contribution data into the StatsData record uploaded to Chapa."""

import math

from chapa_cli.shared.http import utc_now_iso
from chapa_cli.stats.models import HeatmapDay, PullRequestNode, RawContributionData, StatsData

# Number of days of GitHub activity used for scoring
SCORING_WINDOW_DAYS = 365

# Ceiling for a single PR's weight
PR_WEIGHT_CAP = 3.0

# Ceiling for the summed weight of all merged PRs
PR_WEIGHT_AGG_CAP = 120.0

# Daily counts below this are not reported as bursts
BURST_DAILY_THRESHOLD = 30


def compute_pr_weight(pr: PullRequestNode) -> float:
    """Compute a bounded complexity weight for one merged PR.

    Every PR is worth at least 0.5. Files touched and lines changed each add
    a logarithmic bonus, so size has diminishing returns, and the result is
    capped at PR_WEIGHT_CAP.

    Args:
        pr: Pull request with additions, deletions and changed_files

    Returns:
        Weight in [0.5, 3.0]

    Example:
        >>> compute_pr_weight(PullRequestNode(additions=100, deletions=50, changed_files=3))
        2.1030...
    """
    weight = (
        0.5
        + 0.25 * math.log(1 + pr.changed_files)
        + 0.25 * math.log(1 + pr.additions + pr.deletions)
    )
    return min(weight, PR_WEIGHT_CAP)


def build_stats_from_raw(raw: RawContributionData) -> StatsData:
    """Aggregate a raw contribution payload into StatsData.

    Deterministic for a given input except for fetched_at, which is the
    current time.

    Args:
        raw: Normalized payload from the GitHub client

    Returns:
        Aggregated StatsData
    """
    # Flatten calendar weeks into days, keeping input order
    heatmap_data = [
        HeatmapDay(date=day.date, count=day.count)
        for week in raw.contribution_calendar.weeks
        for day in week.days
    ]
    active_days = sum(1 for day in heatmap_data if day.count > 0)

    # Calendar total is trusted as given (it can include private contributions)
    commits_total = raw.contribution_calendar.total_contributions

    merged_prs = [pr for pr in raw.pull_requests if pr.merged]
    prs_merged_weight = min(sum(compute_pr_weight(pr) for pr in merged_prs), PR_WEIGHT_AGG_CAP)
    lines_added = sum(pr.additions for pr in merged_prs)
    lines_deleted = sum(pr.deletions for pr in merged_prs)

    repo_commits = [
        repo.commits_in_window for repo in raw.repositories if repo.commits_in_window > 0
    ]
    total_repo_commits = sum(repo_commits)
    top_repo_share = max(repo_commits) / total_repo_commits if total_repo_commits > 0 else 0.0

    # Approximation: only daily granularity is available, so the busiest day
    # stands in for the busiest 10 minutes and small spikes are suppressed
    max_daily_count = max((day.count for day in heatmap_data), default=0)
    max_commits_in_10min = max_daily_count if max_daily_count >= BURST_DAILY_THRESHOLD else 0

    return StatsData(
        handle=raw.login,
        display_name=raw.display_name,
        avatar_url=raw.avatar_url,
        commits_total=commits_total,
        active_days=active_days,
        prs_merged_count=len(merged_prs),
        prs_merged_weight=prs_merged_weight,
        reviews_submitted_count=raw.review_count,
        issues_closed_count=raw.issue_count,
        lines_added=lines_added,
        lines_deleted=lines_deleted,
        repos_contributed=len(repo_commits),
        top_repo_share=top_repo_share,
        max_commits_in_10min=max_commits_in_10min,
        total_stars=sum(repo.stars for repo in raw.owned_repos),
        total_forks=sum(repo.forks for repo in raw.owned_repos),
        total_watchers=sum(repo.watchers for repo in raw.owned_repos),
        heatmap_data=heatmap_data,
        fetched_at=utc_now_iso(),
    )


def format_stats_summary(stats: StatsData) -> str:
    """Format the headline numbers of a StatsData for the terminal.

    Args:
        stats: Aggregated stats

    Returns:
        Multi-line, indented summary text
    """
    name = f"{stats.handle} ({stats.display_name})" if stats.display_name else stats.handle
    lines = [
        f"Stats for {name} (last {SCORING_WINDOW_DAYS} days):",
        f"  Commits:      {stats.commits_total}",
        f"  Active days:  {stats.active_days}",
        f"  PRs merged:   {stats.prs_merged_count} (weight {stats.prs_merged_weight:.1f})",
        f"  Reviews:      {stats.reviews_submitted_count}",
        f"  Issues:       {stats.issues_closed_count}",
        f"  Lines:        +{stats.lines_added} / -{stats.lines_deleted}",
        f"  Repos:        {stats.repos_contributed} (top repo {stats.top_repo_share:.0%})",
        f"  Stars:        {stats.total_stars}",
        f"  Forks:        {stats.total_forks}",
    ]
    return "\n".join(lines)
