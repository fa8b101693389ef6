"""Error taxonomy for ttsreader.

Every failure the core reports falls into one of these classes, so callers
can tell whether to retry, reconfigure, or report.
"""

import socket

import httpx


class TTSReaderError(Exception):
    """Base exception for all ttsreader errors."""

    def __init__(
        self, message: str, original_error: Exception | None = None
    ) -> None:
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(TTSReaderError):
    """Exception raised when a provider's configuration is missing or invalid.

    This typically occurs when:
    - A required credential (API key, group id) is blank or absent
    - A provider reports itself as not configured
    - The settings file holds an invalid value
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        missing: tuple[str, ...] = (),
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.provider = provider
        self.missing = missing


class UnsupportedProviderError(TTSReaderError):
    """Exception raised when a provider name is not in the supported set."""

    def __init__(self, name: str, kind: str | None = None) -> None:
        label = f"{kind} provider" if kind else "provider"
        super().__init__(f"Unsupported {label}: {name}")
        self.name = name
        self.kind = kind


class ConnectivityError(TTSReaderError):
    """Exception raised when a provider cannot be reached.

    Covers unresolvable hosts, refused connections and timeouts. Text
    processing falls back to the local processor on this error class.
    """


class ProviderRejectionError(TTSReaderError):
    """Exception raised when a reachable provider refuses a request.

    This typically occurs when:
    - The service returns a 4xx or 5xx status
    - The response body reports an application-level error code
    - A local engine exits with a non-zero status
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.status_code = status_code


class ProviderAuthError(ProviderRejectionError):
    """Exception raised for authentication failures (401/403)."""


class CacheIOError(TTSReaderError):
    """Exception raised when the durable audio cache cannot read or write."""


class InvalidRequestError(TTSReaderError):
    """Exception raised for requests that can never succeed as given."""


def is_connectivity_failure(error: BaseException) -> bool:
    """Return True if error means the provider was unreachable.

    Authentication, rejection and validation failures are not connectivity
    failures.
    """
    if isinstance(error, ConnectivityError):
        return True
    if isinstance(error, TTSReaderError):
        return False
    return isinstance(
        error,
        (
            ConnectionError,
            TimeoutError,
            socket.gaierror,
            httpx.NetworkError,
            httpx.TimeoutException,
        ),
    )


def connectivity_error(provider: str, error: Exception) -> ConnectivityError:
    """Wrap a transport-level exception from provider in ConnectivityError."""
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return ConnectivityError(f"{provider} request timed out: {error}", error)
    return ConnectivityError(f"Failed to connect to {provider}: {error}", error)


def rejection_error(
    provider: str, status_code: int, detail: str = ""
) -> ProviderRejectionError:
    """Build the rejection error matching an HTTP status from provider."""
    message = f"{provider} API error: {status_code}"
    if detail:
        message = f"{message} - {detail}"
    if status_code in (401, 403):
        return ProviderAuthError(f"Authentication failed: {message}", status_code)
    return ProviderRejectionError(message, status_code)
