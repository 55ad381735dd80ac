"""Fire-and-forget merge telemetry. Failures never reach the caller."""

import asyncio
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from chapa_cli.core.logging import get_logger
from chapa_cli.shared.http import create_session, normalize_base_url
from chapa_cli.stats.models import StatsData

logger = get_logger(__name__)

ErrorCategory = Literal["auth", "network", "graphql", "server", "unknown"]

TELEMETRY_TIMEOUT_SECONDS = 5.0

_AUTH_PATTERN = re.compile(r"40[13]")
_NETWORK_PATTERN = re.compile(
    r"ECONNREFUSED|ETIMEDOUT|ENOTFOUND|DNS|connection refused|cannot connect|"
    r"name resolution|name or service not known|timed out|timeout",
    re.IGNORECASE,
)
_GRAPHQL_PATTERN = re.compile(r"graphql", re.IGNORECASE)
_SERVER_PATTERN = re.compile(r"5\d{2}")

# Strong references so pending telemetry tasks are not garbage collected
_background_tasks: set[asyncio.Task[None]] = set()


class TelemetryStats(BaseModel):
    """Counters copied from the merged StatsData."""

    model_config = ConfigDict(populate_by_name=True)

    commits_total: int = Field(0, alias="commitsTotal")
    repos_contributed: int = Field(0, alias="reposContributed")
    prs_merged_count: int = Field(0, alias="prsMergedCount")
    active_days: int = Field(0, alias="activeDays")
    reviews_submitted_count: int = Field(0, alias="reviewsSubmittedCount")
    issues_closed_count: int = Field(0, alias="issuesClosedCount")

    @classmethod
    def from_stats(cls, stats: StatsData | None) -> "TelemetryStats":
        if stats is None:
            return cls()
        return cls(
            commits_total=stats.commits_total,
            repos_contributed=stats.repos_contributed,
            prs_merged_count=stats.prs_merged_count,
            active_days=stats.active_days,
            reviews_submitted_count=stats.reviews_submitted_count,
            issues_closed_count=stats.issues_closed_count,
        )


class TelemetryTiming(BaseModel):
    """Phase durations in milliseconds, rounded to one decimal."""

    model_config = ConfigDict(populate_by_name=True)

    fetch_ms: float = Field(0.0, alias="fetchMs")
    upload_ms: float = Field(0.0, alias="uploadMs")
    total_ms: float = Field(0.0, alias="totalMs")


class TelemetryPayload(BaseModel):
    """Summary of one merge operation. Carries no tokens or stack traces.

    Attributes:
        operation_id: Random ID for this merge
        target_handle: Personal handle
        source_handle: EMU handle
        success: Whether the merge succeeded
        error_category: Coarse failure class when success is False
        stats: Core StatsData counters
        timing: fetch/upload/total durations
        cli_version: Version of this CLI
    """

    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(..., alias="operationId")
    target_handle: str = Field(..., alias="targetHandle")
    source_handle: str = Field(..., alias="sourceHandle")
    success: bool
    error_category: ErrorCategory | None = Field(None, alias="errorCategory")
    stats: TelemetryStats = Field(default_factory=TelemetryStats)
    timing: TelemetryTiming = Field(default_factory=TelemetryTiming)
    cli_version: str = Field(..., alias="cliVersion")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def classify_error(message: str) -> ErrorCategory:
    """Classify an error message into a category for dashboarding.

    Args:
        message: Human-readable error (e.g. an UploadResult error)

    Returns:
        One of auth, network, graphql, server, unknown
    """
    if _AUTH_PATTERN.search(message):
        return "auth"
    if _NETWORK_PATTERN.search(message):
        return "network"
    if _GRAPHQL_PATTERN.search(message):
        return "graphql"
    if _SERVER_PATTERN.search(message):
        return "server"
    return "unknown"


async def send_telemetry(
    server_url: str,
    payload: TelemetryPayload,
    timeout_seconds: float = TELEMETRY_TIMEOUT_SECONDS,
    verify_tls: bool = True,
) -> None:
    """POST telemetry to <server>/api/telemetry. Never raises.

    Args:
        server_url: Chapa server URL
        payload: Telemetry summary
        timeout_seconds: Total request timeout
        verify_tls: Verify server certificates (False for --insecure)
    """
    url = f"{normalize_base_url(server_url)}/api/telemetry"
    try:
        async with create_session(verify_tls=verify_tls, timeout_seconds=timeout_seconds) as http:
            async with http.post(url, json=payload.to_payload()) as response:
                logger.debug("telemetry.sent", status=response.status)
    except Exception as e:
        # Telemetry must never affect the CLI outcome
        logger.debug("telemetry.failed", error=str(e))


def fire_telemetry(
    server_url: str,
    payload: TelemetryPayload,
    timeout_seconds: float = TELEMETRY_TIMEOUT_SECONDS,
    verify_tls: bool = True,
) -> asyncio.Task[None]:
    """Schedule send_telemetry in the background and return immediately.

    Must be called from a running event loop.

    Returns:
        The detached task (already tracked; awaiting it is optional)
    """
    task = asyncio.create_task(
        send_telemetry(server_url, payload, timeout_seconds=timeout_seconds, verify_tls=verify_tls)
    )
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def drain_telemetry(timeout_seconds: float = TELEMETRY_TIMEOUT_SECONDS) -> None:
    """Give pending telemetry tasks up to timeout_seconds to finish, then cancel them."""
    pending = set(_background_tasks)
    if not pending:
        return

    _, still_pending = await asyncio.wait(pending, timeout=timeout_seconds)
    for task in still_pending:
        task.cancel()
