import logging
from typing import Dict, Optional

import httpx

from active_sse.config import Settings, settings as default_settings
from active_sse.models.subscription import SubscriptionConfig
from active_sse.utils.exceptions import (
    SSE_CONTENT_TYPE,
    SSEConnectionError,
    raise_connection_error,
)
from active_sse.utils.sse import SSEDecoder

logger = logging.getLogger(__name__)

# Constants
LAST_EVENT_ID_HEADER = "Last-Event-ID"
NO_CONTENT = 204  # Server asks the client to stop reconnecting


class SubscriptionBase:
    """Shared setup for the async client and the blocking receiver.

    The config is copied on construction so it cannot change once a
    connection has been opened from it.
    """

    def __init__(
        self,
        config: SubscriptionConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
    ):
        self.config = config.model_copy(deep=True)
        self.settings = settings or default_settings
        self._transport = transport

    @property
    def url(self) -> str:
        return self.config.url

    @property
    def timeout(self) -> httpx.Timeout:
        """Connect timeout from the config, read timeout from settings."""
        connect = self.config.timeout or self.settings.connect_timeout
        return httpx.Timeout(self.settings.read_timeout, connect=connect)

    @property
    def reconnect(self) -> bool:
        if self.config.reconnect is not None:
            return self.config.reconnect
        return self.settings.reconnect

    @property
    def max_retries(self) -> Optional[int]:
        if self.config.max_retries is not None:
            return self.config.max_retries
        return self.settings.max_retries

    @property
    def retry_delay(self) -> float:
        if self.config.retry_delay is not None:
            return self.config.retry_delay
        return self.settings.retry_delay

    @property
    def max_retry_delay(self) -> float:
        if self.config.max_retry_delay is not None:
            return self.config.max_retry_delay
        return self.settings.max_retry_delay

    def _request_headers(self, last_event_id: str = "") -> Dict[str, str]:
        headers = {
            "Accept": SSE_CONTENT_TYPE,
            "Cache-Control": "no-cache",
            "User-Agent": self.settings.user_agent,
        }
        headers.update(self.config.headers)
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        if last_event_id:
            headers[LAST_EVENT_ID_HEADER] = last_event_id
        return headers

    def _reconnect_delay(
        self,
        error: httpx.TransportError,
        connected: bool,
        attempt: int,
        decoder: SSEDecoder,
    ) -> float:
        """
        Decide whether a dropped stream should be reopened.

        Args:
            error: The transport error that ended the stream
            connected: Whether any attempt so far opened the stream
            attempt: Consecutive failed attempts, starting at 1
            decoder: The stream decoder, carrying the server retry hint

        Returns:
            Seconds to wait before the next attempt

        Raises:
            SSEConnectionError: if the stream was never opened or retries are exhausted
        """
        if not connected:
            raise_connection_error(self.url, error)
        if not self.reconnect:
            raise SSEConnectionError(f"Lost connection to {self.url}: {error}") from error
        if self.max_retries is not None and attempt > self.max_retries:
            raise SSEConnectionError(
                f"Lost connection to {self.url} after {attempt - 1} reconnect attempts: {error}"
            ) from error

        base = decoder.retry / 1000 if decoder.retry is not None else self.retry_delay
        delay = min(base * 2 ** (attempt - 1), self.max_retry_delay)
        decoder.reset()

        logger.warning(
            f"Lost connection to {self.url}: {error}. "
            f"Reconnecting in {delay:.1f}s (attempt {attempt})"
        )
        return delay
