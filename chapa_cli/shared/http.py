"""HTTP session construction and URL/timestamp helpers shared by all clients."""

from datetime import UTC, datetime

import aiohttp

USER_AGENT = "chapa-cli"


def normalize_base_url(url: str) -> str:
    """Strip trailing slashes so endpoint paths can be appended directly.

    Args:
        url: Server base URL as given by the user or stored credentials

    Returns:
        URL without trailing slashes (e.g., 'https://host/' -> 'https://host')
    """
    return url.rstrip("/")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_session(
    verify_tls: bool = True,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = None,
) -> aiohttp.ClientSession:
    """Create an aiohttp session honouring the TLS verification switch.

    Args:
        verify_tls: When False, certificate verification is disabled for
            every request made through this session only
        headers: Extra default headers for every request
        timeout_seconds: Total per-request timeout, or None for aiohttp's default

    Returns:
        New aiohttp ClientSession (caller owns closing it)
    """
    connector = aiohttp.TCPConnector(ssl=verify_tls)
    session_headers = {"User-Agent": USER_AGENT}
    if headers:
        session_headers.update(headers)

    if timeout_seconds is None:
        return aiohttp.ClientSession(connector=connector, headers=session_headers)

    return aiohttp.ClientSession(
        connector=connector,
        headers=session_headers,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds),
    )
