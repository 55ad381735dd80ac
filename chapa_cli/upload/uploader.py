"""Upload supplemental (EMU) stats to the Chapa server."""

import asyncio
from typing import Any

import aiohttp
from pydantic import BaseModel, Field

from chapa_cli.core.logging import get_logger
from chapa_cli.shared.http import create_session, normalize_base_url
from chapa_cli.stats.models import StatsData

logger = get_logger(__name__)


class UploadResult(BaseModel):
    """Outcome of a supplemental stats upload.

    Attributes:
        success: Whether the server accepted the stats
        error: Human-readable failure reason when success is False
    """

    success: bool = Field(..., description="Whether the upload succeeded")
    error: str | None = Field(None, description="Failure reason")


async def _error_from_response(response: aiohttp.ClientResponse) -> str:
    try:
        body: Any = await response.json()
    except (aiohttp.ContentTypeError, ValueError):
        body = {}
    message = body.get("error") if isinstance(body, dict) else None
    return f"Server returned {response.status}: {message or 'Unknown error'}"


async def upload_supplemental_stats(
    target_handle: str,
    source_handle: str,
    stats: StatsData,
    token: str,
    server_url: str,
    verify_tls: bool = True,
    session: aiohttp.ClientSession | None = None,
) -> UploadResult:
    """POST stats to <server>/api/supplemental. Never raises and never retries.

    Args:
        target_handle: Personal GitHub handle that owns the badge
        source_handle: EMU handle the stats were fetched for
        stats: Aggregated stats to upload
        token: Chapa bearer token
        server_url: Chapa server URL
        verify_tls: Verify server certificates (False for --insecure)
        session: Existing aiohttp session to reuse (caller keeps ownership)

    Returns:
        UploadResult with success flag and error message
    """
    url = f"{normalize_base_url(server_url)}/api/supplemental"
    payload = {
        "targetHandle": target_handle,
        "sourceHandle": source_handle,
        "stats": stats.to_payload(),
    }
    headers = {"Authorization": f"Bearer {token}"}

    owns_session = session is None
    http = session or create_session(verify_tls=verify_tls)
    try:
        async with http.post(url, json=payload, headers=headers) as response:
            if not 200 <= response.status < 300:
                error = await _error_from_response(response)
                logger.warning("upload.rejected", status=response.status, target=target_handle)
                return UploadResult(success=False, error=error)
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        logger.warning("upload.failed", error=str(e), target=target_handle)
        return UploadResult(success=False, error=f"Upload failed: {str(e) or type(e).__name__}")
    finally:
        if owns_session:
            await http.close()

    logger.info("upload.complete", target=target_handle, source=source_handle)
    return UploadResult(success=True)
