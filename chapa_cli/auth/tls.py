"""Classify network failures whose root cause is an untrusted TLS certificate."""

from collections.abc import Iterable, Iterator

# Matched case-insensitively against every message, code and type name in
# an exception chain
TLS_ERROR_PATTERNS = (
    # OpenSSL / ssl module reasons and exception types
    "CERTIFICATE_VERIFY_FAILED",
    "SSLCertVerificationError",
    "ClientConnectorCertificateError",
    "UNABLE_TO_VERIFY_LEAF_SIGNATURE",
    "CERT_HAS_EXPIRED",
    "DEPTH_ZERO_SELF_SIGNED_CERT",
    "SELF_SIGNED_CERT_IN_CHAIN",
    # Human-readable verification messages
    "certificate verify failed",
    "self-signed certificate",
    "self signed certificate",
    "unable to get local issuer certificate",
    "unable to verify",
    "certificate has expired",
)

# Attributes carrying machine-readable detail on ssl / aiohttp errors
_CODE_ATTRIBUTES = ("code", "reason", "verify_message")

# aiohttp keeps the underlying error on these instead of __cause__
_WRAPPED_ERROR_ATTRIBUTES = ("certificate_error", "os_error")


def _next_error(error: BaseException) -> BaseException | None:
    for attr in _WRAPPED_ERROR_ATTRIBUTES:
        try:
            inner = getattr(error, attr, None)
        except AttributeError:
            inner = None
        if isinstance(inner, BaseException) and inner is not error:
            return inner
    return error.__cause__ or error.__context__


def iter_error_chain(error: BaseException | None) -> Iterator[BaseException]:
    """Yield an error followed by each error it wraps, outermost first."""
    seen: set[int] = set()
    while error is not None and id(error) not in seen:
        seen.add(id(error))
        yield error
        error = _next_error(error)


def collect_error_chain(error: BaseException) -> list[str]:
    """Flatten an error chain into type names, messages and codes.

    Args:
        error: Outermost exception

    Returns:
        Strings from every error in the chain, outermost first
    """
    parts: list[str] = []
    for link in iter_error_chain(error):
        parts.append(type(link).__name__)
        message = str(link)
        if message:
            parts.append(message)
        for attr in _CODE_ATTRIBUTES:
            value = getattr(link, attr, None)
            if value is not None and not callable(value):
                parts.append(str(value))
    return parts


def root_error_message(error: BaseException) -> str:
    """Message of the innermost error in the chain (type name if it has none)."""
    root = error
    for link in iter_error_chain(error):
        root = link
    return str(root) or type(root).__name__


def is_tls_error(parts: Iterable[str]) -> bool:
    """Check whether any chain entry matches a known certificate-trust failure.

    Args:
        parts: Output of collect_error_chain

    Returns:
        True if a TLS/certificate pattern appears anywhere in the chain
    """
    lowered = [part.lower() for part in parts]
    return any(pattern.lower() in part for part in lowered for pattern in TLS_ERROR_PATTERNS)
