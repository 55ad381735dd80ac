"""Custom exception hierarchy for the Chapa CLI."""


class ChapaError(Exception):
    """Base exception for all CLI errors."""

    pass


class ConfigError(ChapaError):
    """Raised when configuration validation fails."""

    pass


class CredentialsError(ChapaError):
    """Raised when stored credentials cannot be written or removed."""

    pass


class GitHubAPIError(ChapaError):
    """Raised when GitHub GraphQL requests fail."""

    pass


class AuthSessionError(ChapaError):
    """Raised when a browser login session ends without approval."""

    pass


class SessionExpiredError(AuthSessionError):
    """Raised when the server reports the login session as expired."""

    pass


class AuthTimeoutError(AuthSessionError):
    """Raised when polling gives up before the session is approved."""

    pass
