import asyncio
import logging
import weakref
from typing import AsyncGenerator, AsyncIterator, Optional

import httpx

from active_sse.base import NO_CONTENT, SubscriptionBase
from active_sse.config import Settings
from active_sse.models.event import Event
from active_sse.models.subscription import SubscriptionConfig
from active_sse.receiver import EventReceiver
from active_sse.utils.exceptions import raise_for_response
from active_sse.utils.sse import SSEDecoder, aiter_events

logger = logging.getLogger(__name__)


class ActiveSSE(SubscriptionBase):
    """
    Subscription to an Activeledger node event stream.

    Usage:
        config = SubscriptionConfig.activity("http://localhost:5260")
        async with ActiveSSE(config) as sse:
            async for event in sse.subscribe():
                print(event.json())

    For blocking code, `receiver()` runs the stream on a background thread.
    """

    def __init__(
        self,
        config: SubscriptionConfig,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, settings, transport)
        self._client = client
        self._owns_client = client is None
        self._events: Optional[AsyncGenerator[Event, None]] = None
        self._streams: "weakref.WeakSet[AsyncGenerator[Event, None]]" = weakref.WeakSet()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    def subscribe(self) -> AsyncGenerator[Event, None]:
        """
        Open the stream and yield events as they arrive. `aclose()` closes
        every sequence returned here that is still open.

        The sequence ends when the server closes the stream. A dropped
        connection is reopened according to the reconnection settings,
        resuming from the last event id seen.

        Raises:
            SSEConnectionError: if the first connection fails or retries run out
            AuthenticationError: if the node rejects the credentials
        """
        events = self._stream()
        self._streams.add(events)
        return events

    async def _stream(self) -> AsyncIterator[Event]:
        decoder = SSEDecoder()
        connected = False
        attempt = 0

        while True:
            try:
                async with self._get_client().stream(
                    "GET", self.url, headers=self._request_headers(decoder.last_event_id)
                ) as response:
                    if response.status_code == NO_CONTENT:
                        logger.info(f"{self.url} returned no content, ending subscription")
                        return
                    raise_for_response(response)

                    logger.info(f"Subscribed to {self.url}")
                    connected = True
                    attempt = 0
                    async for event in aiter_events(response.aiter_lines(), decoder):
                        yield event

                logger.info(f"Stream from {self.url} closed by server")
                return

            except httpx.TransportError as e:
                attempt += 1
                delay = self._reconnect_delay(e, connected, attempt, decoder)
                await asyncio.sleep(delay)

    async def next_event(self) -> Optional[Event]:
        """Wait for the next event. Returns None once the stream has ended."""
        try:
            return await self.__aiter__().__anext__()
        except StopAsyncIteration:
            return None

    def receiver(self, transport: Optional[httpx.BaseTransport] = None) -> EventReceiver:
        """Start a blocking receiver for the same subscription."""
        return EventReceiver(self.config, self.settings, transport).start()

    def __aiter__(self) -> AsyncGenerator[Event, None]:
        if self._events is None:
            self._events = self.subscribe()
        return self._events

    async def aclose(self):
        """Close the stream and HTTP client resources."""
        for events in list(self._streams):
            await events.aclose()
        self._streams.clear()
        self._events = None
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "ActiveSSE":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
