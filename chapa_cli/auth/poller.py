"""Browser-approved login: create a session, show the approval URL, poll until done."""

import asyncio
import uuid
from dataclasses import dataclass
from typing import Any, Literal

import aiohttp
from pydantic import BaseModel, ValidationError

from chapa_cli.auth.tls import collect_error_chain, is_tls_error, root_error_message
from chapa_cli.core.credentials import Credentials, CredentialStore
from chapa_cli.core.logging import Console, get_logger
from chapa_cli.shared.exceptions import AuthTimeoutError, SessionExpiredError
from chapa_cli.shared.http import create_session, normalize_base_url

logger = get_logger(__name__)

AuthState = Literal["polling", "approved", "expired", "timed_out"]

POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_ATTEMPTS = 150  # 5 minutes at 2s intervals
PROGRESS_EVERY = 5


@dataclass
class AuthSession:
    """One login attempt, alive for the duration of AuthPoller.login().

    Attributes:
        session_id: Unguessable identifier shared with the browser via the URL
        base_url: Chapa server base URL without trailing slash
        poll_count: Poll requests issued so far
        state: Current state; anything but "polling" is terminal
    """

    session_id: str
    base_url: str
    poll_count: int = 0
    state: AuthState = "polling"

    @property
    def authorize_url(self) -> str:
        return f"{self.base_url}/cli/authorize?session={self.session_id}"

    @property
    def poll_url(self) -> str:
        return f"{self.base_url}/api/cli/auth/poll"

    @property
    def is_terminal(self) -> bool:
        return self.state != "polling"


class PollResponse(BaseModel):
    """Body of GET /api/cli/auth/poll."""

    status: str = ""
    token: str | None = None
    handle: str | None = None

    @property
    def is_approved(self) -> bool:
        """Approved and carrying everything needed to save credentials."""
        return self.status == "approved" and bool(self.token) and bool(self.handle)

    @property
    def is_expired(self) -> bool:
        return self.status == "expired"


class AuthPoller:
    """Drives the browser approval handshake against a Chapa server.

    Per-poll failures (non-2xx, network, TLS) are reported and polling
    continues; only an expired session or running out of attempts ends the
    login unsuccessfully.

    Attributes:
        FAILURE_HTTP: Failure category for non-success HTTP statuses
        FAILURE_NETWORK: Failure category for transport errors
        FAILURE_TLS: Failure category for certificate-trust errors
    """

    FAILURE_HTTP = "http"
    FAILURE_NETWORK = "network"
    FAILURE_TLS = "tls"

    def __init__(
        self,
        server_url: str,
        store: CredentialStore,
        console: Console,
        verify_tls: bool = True,
        verbose: bool = False,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
        progress_every: int = PROGRESS_EVERY,
    ) -> None:
        """Initialize the poller.

        Args:
            server_url: Chapa server URL (trailing slashes are ignored)
            store: Where approved credentials are saved
            console: Operator-facing output
            verify_tls: Verify server certificates (False for --insecure)
            verbose: Report every poll instead of one line per failure kind
            poll_interval_seconds: Wait before each poll
            max_poll_attempts: Polls before giving up
            progress_every: Print a progress dot every N polls
        """
        self.base_url = normalize_base_url(server_url)
        self.store = store
        self.console = console
        self.verify_tls = verify_tls
        self.verbose = verbose
        self.poll_interval_seconds = poll_interval_seconds
        self.max_poll_attempts = max_poll_attempts
        self.progress_every = progress_every
        self.http: aiohttp.ClientSession | None = None
        self._reported_failures: set[str] = set()

    def new_session(self) -> AuthSession:
        """Create a fresh session with a random UUID4 identifier."""
        return AuthSession(session_id=str(uuid.uuid4()), base_url=self.base_url)

    async def login(self) -> Credentials:
        """Run the approval handshake to completion.

        Returns:
            Credentials saved to the store

        Raises:
            SessionExpiredError: If the server reports the session expired
            AuthTimeoutError: If no terminal status arrives within max attempts
        """
        session = self.new_session()
        self._reported_failures = set()
        self._show_instructions(session)

        owns_http = self.http is None
        if owns_http:
            self.http = create_session(verify_tls=self.verify_tls)

        try:
            return await self._poll_until_done(session)
        finally:
            if owns_http and self.http is not None:
                await self.http.close()
                self.http = None

    def _show_instructions(self, session: AuthSession) -> None:
        self.console.notice(
            "\nOpen this URL in a browser where your personal GitHub account is logged in:"
        )
        self.console.notice(f"\n  {session.authorize_url}\n")
        self.console.notice("Tip: If your default browser has your work (EMU) account,")
        self.console.notice("     use a different browser or an incognito/private window.\n")
        self.console.notice("Waiting for approval...")
        logger.info("auth.session.started", base_url=session.base_url)

    async def _poll_until_done(self, session: AuthSession) -> Credentials:
        for attempt in range(self.max_poll_attempts):
            await asyncio.sleep(self.poll_interval_seconds)

            # Cosmetic progress only
            if attempt > 0 and attempt % self.progress_every == 0:
                self.console.progress(".")

            session.poll_count += 1
            response = await self._poll_once(session)
            if response is None:
                continue

            if response.is_approved:
                return self._approve(session, response)

            if response.is_expired:
                session.state = "expired"
                logger.info("auth.session.expired", polls=session.poll_count)
                self.console.error("\nSession expired. Please try again.")
                raise SessionExpiredError("Login session expired before approval")

            # "pending", unknown statuses and incomplete approvals keep polling

        session.state = "timed_out"
        logger.info("auth.session.timed_out", polls=session.poll_count)
        self.console.error("\nTimed out waiting for approval. Please try again.")
        raise AuthTimeoutError(
            f"No approval after {session.poll_count} polls "
            f"({session.poll_count * self.poll_interval_seconds:.0f}s)"
        )

    def _approve(self, session: AuthSession, response: PollResponse) -> Credentials:
        # is_approved guarantees token and handle are present
        credentials = Credentials(
            token=response.token or "",
            handle=response.handle or "",
            server=session.base_url,
        )
        self.store.save(credentials)
        session.state = "approved"
        logger.info("auth.session.approved", handle=credentials.handle, polls=session.poll_count)
        self.console.notice(f"\nLogged in as {credentials.handle}!")
        self.console.notice(f"Credentials saved to {self.store.file_path}")
        return credentials

    async def _poll_once(self, session: AuthSession) -> PollResponse | None:
        """Issue one poll request.

        Returns:
            Parsed response, or None when this tick produced nothing usable
        """
        if self.http is None:
            raise RuntimeError("HTTP session not initialized")

        tick = session.poll_count
        try:
            async with self.http.get(
                session.poll_url, params={"session": session.session_id}
            ) as response:
                if not 200 <= response.status < 300:
                    self._report_http_failure(tick, response.status)
                    return None

                try:
                    data: Any = await response.json()
                except (aiohttp.ContentTypeError, ValueError):
                    self.console.debug(f"[poll {tick}] unreadable response body")
                    return None
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self._report_network_failure(tick, e)
            return None

        try:
            parsed = PollResponse.model_validate(data)
        except ValidationError:
            self.console.debug(f"[poll {tick}] malformed response")
            return None

        self.console.debug(f"[poll {tick}] {parsed.status or 'no status'}")
        return parsed

    def _first_report(self, category: str) -> bool:
        if category in self._reported_failures:
            return False
        self._reported_failures.add(category)
        return True

    def _report_http_failure(self, tick: int, status: int) -> None:
        logger.debug("auth.poll.http_error", poll=tick, status=status)
        if self.verbose:
            self.console.debug(f"[poll {tick}] HTTP {status}")
        elif self._first_report(self.FAILURE_HTTP):
            self.console.error(f"\nServer returned {status}. Retrying...")

    def _report_network_failure(self, tick: int, error: BaseException) -> None:
        root_message = root_error_message(error)
        logger.debug("auth.poll.network_error", poll=tick, error=root_message)
        if self.verbose:
            self.console.debug(f"[poll {tick}] network error: {root_message}")

        if self.verify_tls and is_tls_error(collect_error_chain(error)):
            if self.verbose or self._first_report(self.FAILURE_TLS):
                self.console.error(f"\nTLS certificate error: {root_message}")
                self.console.error("This looks like a corporate network with TLS interception.")
                self.console.error("  try: chapa login --insecure\n")
        elif not self.verbose and self._first_report(self.FAILURE_NETWORK):
            self.console.error(f"\nNetwork error: {root_message}. Retrying...")
