"""
Exception types and helpers shared by the subscription clients.

Usage:
    from active_sse.utils.exceptions import raise_for_response, SSEConnectionError

    raise_for_response(response)
"""

from typing import NoReturn, Optional

import httpx

SSE_CONTENT_TYPE = "text/event-stream"


class SSEError(Exception):
    """Base class for every error raised by active_sse."""


class ConfigError(SSEError):
    """The subscription configuration is not usable."""


class IncompatibleConfigError(ConfigError):
    """A setter was called on the wrong kind of config."""


class ContractNotSetError(ConfigError):
    """An event name was given before a contract."""


class InvalidConfigError(ConfigError, ValueError):
    """A config value is empty or malformed."""


class SSEConnectionError(SSEError):
    """The stream could not be opened or was lost."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(SSEConnectionError):
    """The node rejected the request credentials."""


class StreamClosedError(SSEError):
    """The event stream has ended and no more events will arrive."""


def raise_incompatible(setter: str, kind: str) -> NoReturn:
    """Raise IncompatibleConfigError for a setter used on the wrong config kind."""
    raise IncompatibleConfigError(f"{setter} cannot be used with an {kind} config")


def raise_connection_error(url: str, error: Exception) -> NoReturn:
    """Raise SSEConnectionError wrapping a transport failure."""
    raise SSEConnectionError(f"Could not connect to {url}: {error}") from error


def raise_for_response(response: httpx.Response) -> None:
    """
    Check that a response opened a usable event stream.

    Raises:
        AuthenticationError: on 401 or 403
        SSEConnectionError: on any other non-2xx status or a non SSE content type
    """
    url = str(response.request.url)
    if response.status_code in (401, 403):
        raise AuthenticationError(
            f"{response.status_code} {response.reason_phrase} from {url}",
            status_code=response.status_code,
        )
    if not response.is_success:
        raise SSEConnectionError(
            f"{response.status_code} {response.reason_phrase} from {url}",
            status_code=response.status_code,
        )

    content_type = response.headers.get("content-type", "")
    if not content_type.startswith(SSE_CONTENT_TYPE):
        raise SSEConnectionError(
            f"Expected {SSE_CONTENT_TYPE} from {url}, got {content_type or 'no content type'}",
            status_code=response.status_code,
        )
