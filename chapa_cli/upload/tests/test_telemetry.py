"""Tests for merge telemetry."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chapa_cli.stats.models import StatsData
from chapa_cli.upload import telemetry
from chapa_cli.upload.telemetry import (
    TelemetryPayload,
    TelemetryStats,
    TelemetryTiming,
    classify_error,
    drain_telemetry,
    fire_telemetry,
    send_telemetry,
)


@pytest.fixture
def payload(stats: StatsData) -> TelemetryPayload:
    return TelemetryPayload(
        operation_id="op-1",
        target_handle="octocat",
        source_handle="corp_user",
        success=True,
        stats=TelemetryStats.from_stats(stats),
        timing=TelemetryTiming(fetch_ms=812.4, upload_ms=140.0, total_ms=960.2),
        cli_version="0.4.0",
    )


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("Server returned 401: Unauthorized", "auth"),
        ("Server returned 403: Handle mismatch", "auth"),
        ("Upload failed: connect ECONNREFUSED 127.0.0.1:3000", "network"),
        ("Upload failed: Cannot connect to host chapa.example:443", "network"),
        ("Upload failed: getaddrinfo ENOTFOUND chapa.example", "network"),
        ("Upload failed: TimeoutError timed out", "network"),
        ("GraphQL HTTP 200: errors", "graphql"),
        ("Server returned 500: Internal error", "server"),
        ("Server returned 503: Unknown error", "server"),
        ("something odd happened", "unknown"),
    ],
)
def test_classify_error(message: str, expected: str) -> None:
    assert classify_error(message) == expected


def test_auth_takes_precedence_over_network() -> None:
    assert classify_error("401 after timeout") == "auth"


def test_payload_shape(payload: TelemetryPayload) -> None:
    """Test camelCase keys, no error category on success and no secrets."""
    body = payload.to_payload()

    assert body["operationId"] == "op-1"
    assert body["targetHandle"] == "octocat"
    assert body["sourceHandle"] == "corp_user"
    assert body["success"] is True
    assert "errorCategory" not in body
    assert body["stats"] == {
        "commitsTotal": 412,
        "reposContributed": 4,
        "prsMergedCount": 25,
        "activeDays": 180,
        "reviewsSubmittedCount": 17,
        "issuesClosedCount": 6,
    }
    assert body["timing"] == {"fetchMs": 812.4, "uploadMs": 140.0, "totalMs": 960.2}
    assert body["cliVersion"] == "0.4.0"
    assert "token" not in str(body).lower()


def test_failure_payload_carries_category(payload: TelemetryPayload) -> None:
    failed = payload.model_copy(update={"success": False, "error_category": "server"})

    assert failed.to_payload()["errorCategory"] == "server"


def test_stats_default_to_zero() -> None:
    assert TelemetryStats.from_stats(None) == TelemetryStats()


@pytest.mark.asyncio
async def test_send_telemetry_posts_payload(payload: TelemetryPayload) -> None:
    mock_response = AsyncMock()
    mock_response.status = 204
    post_context = MagicMock()
    post_context.__aenter__ = AsyncMock(return_value=mock_response)
    post_context.__aexit__ = AsyncMock(return_value=None)

    http = MagicMock()
    http.post = MagicMock(return_value=post_context)
    session_context = MagicMock()
    session_context.__aenter__ = AsyncMock(return_value=http)
    session_context.__aexit__ = AsyncMock(return_value=None)

    with patch(
        "chapa_cli.upload.telemetry.create_session", return_value=session_context
    ) as mock_create:
        await send_telemetry("https://chapa.example/", payload, timeout_seconds=2.0)

    mock_create.assert_called_once_with(verify_tls=True, timeout_seconds=2.0)
    call_args = http.post.call_args
    assert call_args[0][0] == "https://chapa.example/api/telemetry"
    assert call_args[1]["json"] == payload.to_payload()


@pytest.mark.asyncio
async def test_send_telemetry_swallows_errors(payload: TelemetryPayload) -> None:
    """Test telemetry failures never propagate."""
    with patch(
        "chapa_cli.upload.telemetry.create_session", side_effect=RuntimeError("no network")
    ):
        await send_telemetry("https://chapa.example", payload)


@pytest.mark.asyncio
async def test_fire_returns_immediately_and_drain_waits(payload: TelemetryPayload) -> None:
    """Test the task runs detached and drain lets it finish."""
    finished = asyncio.Event()

    async def slow_send(*args: object, **kwargs: object) -> None:
        await asyncio.sleep(0.01)
        finished.set()

    with patch("chapa_cli.upload.telemetry.send_telemetry", side_effect=slow_send):
        task = fire_telemetry("https://chapa.example", payload)
        assert not finished.is_set()
        assert task in telemetry._background_tasks

        await drain_telemetry(timeout_seconds=1.0)

    assert finished.is_set()
    assert task.done()
    assert task not in telemetry._background_tasks


@pytest.mark.asyncio
async def test_drain_cancels_after_timeout(payload: TelemetryPayload) -> None:
    """Test a hung telemetry request is abandoned after the grace period."""

    async def hung_send(*args: object, **kwargs: object) -> None:
        await asyncio.sleep(60)

    with patch("chapa_cli.upload.telemetry.send_telemetry", side_effect=hung_send):
        task = fire_telemetry("https://chapa.example", payload)
        await drain_telemetry(timeout_seconds=0.01)

    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()


@pytest.mark.asyncio
async def test_drain_without_tasks_returns() -> None:
    await drain_telemetry(timeout_seconds=0.01)
