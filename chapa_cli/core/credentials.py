"""Credential persistence using a JSON file with atomic, owner-only writes."""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from chapa_cli.core.logging import get_logger
from chapa_cli.shared.exceptions import CredentialsError

logger = get_logger(__name__)

DIR_MODE = 0o700
FILE_MODE = 0o600


class Credentials(BaseModel):
    """Saved login for the Chapa server.

    Attributes:
        token: Bearer token issued after browser approval
        handle: Personal GitHub handle the token belongs to
        server: Server base URL the token was issued by
    """

    token: str = Field(..., min_length=1, description="Chapa bearer token")
    handle: str = Field(..., min_length=1, description="Personal GitHub handle")
    server: str = Field(..., min_length=1, description="Chapa server base URL")


class CredentialStore:
    """Single-record credential file (default ~/.chapa/credentials.json)."""

    def __init__(self, file_path: str | Path) -> None:
        """Initialize CredentialStore with file path.

        Args:
            file_path: Path to JSON credentials file
        """
        self.file_path = Path(file_path).expanduser()

    def load(self) -> Credentials | None:
        """Read saved credentials.

        Returns:
            Credentials, or None when the file is missing, unreadable,
            corrupted, or missing required fields
        """
        if not self.file_path.exists():
            return None

        try:
            data = json.loads(self.file_path.read_text(encoding="utf-8"))
            return Credentials.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "credentials.file.invalid",
                path=str(self.file_path),
                error=str(e),
            )
            return None

    def save(self, credentials: Credentials) -> None:
        """Write credentials, replacing any existing record.

        Args:
            credentials: Credentials to persist

        Raises:
            CredentialsError: If the file cannot be written
        """
        temp_path = self.file_path.with_suffix(".tmp")
        try:
            self.file_path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)

            # Write to temp file first, created with owner-only permissions
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            try:
                fh = os.fdopen(fd, "w", encoding="utf-8")
            except OSError:
                os.close(fd)
                raise
            with fh:
                fh.write(json.dumps(credentials.model_dump(), indent=2) + "\n")
            os.chmod(temp_path, FILE_MODE)

            # Atomic rename (POSIX-safe)
            temp_path.replace(self.file_path)
        except OSError as e:
            # Leave no partial temp file behind
            with contextlib.suppress(OSError):
                temp_path.unlink()
            logger.error(
                "credentials.file.write_failed",
                path=str(self.file_path),
                error=str(e),
                exc_info=True,
            )
            raise CredentialsError(f"Failed to write credentials file: {e}") from e

        logger.debug("credentials.saved", path=str(self.file_path), handle=credentials.handle)

    def delete(self) -> bool:
        """Remove saved credentials.

        Returns:
            True if a credentials file existed and was removed

        Raises:
            CredentialsError: If the file exists but cannot be removed
        """
        if not self.file_path.exists():
            return False

        try:
            self.file_path.unlink()
        except OSError as e:
            raise CredentialsError(f"Failed to remove credentials file: {e}") from e

        logger.debug("credentials.deleted", path=str(self.file_path))
        return True


def resolve_token(flag: str | None, env_var: str) -> str | None:
    """Pick a token from an explicit flag, then an environment variable.

    Args:
        flag: Value passed on the command line, if any
        env_var: Environment variable to fall back to (e.g., GITHUB_EMU_TOKEN)

    Returns:
        The token, or None when neither source provides a non-blank value
    """
    if flag:
        return flag
    env_value = os.environ.get(env_var, "").strip()
    return env_value or None
