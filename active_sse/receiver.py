"""
Blocking receiver for code that does not run an event loop.

The stream is read on a daemon thread and events are handed over through a
queue, so `recv()` behaves like the receiving end of a channel:

    receiver = ActiveSSE(config).receiver()
    while True:
        print(receiver.recv())
"""

import logging
import queue
import threading
from contextlib import closing
from typing import Iterator, Optional, Union

import httpx

from active_sse.base import NO_CONTENT, SubscriptionBase
from active_sse.config import Settings
from active_sse.models.event import Event
from active_sse.models.subscription import SubscriptionConfig
from active_sse.utils.exceptions import (
    SSEConnectionError,
    SSEError,
    StreamClosedError,
    raise_for_response,
)
from active_sse.utils.sse import SSEDecoder, iter_events

logger = logging.getLogger(__name__)

# Maximum time close() waits for the reader thread (seconds)
CLOSE_TIMEOUT = 5.0

_END = object()


class EventReceiver(SubscriptionBase):
    """Receives events from a subscription on a background thread."""

    def __init__(
        self,
        config: SubscriptionConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(config, settings, transport)
        self._queue: "queue.Queue[Union[Event, SSEError, object]]" = queue.Queue()
        self._stop = threading.Event()
        self._response: Optional[httpx.Response] = None
        self._client = httpx.Client(timeout=self.timeout, transport=transport)
        self._thread = threading.Thread(
            target=self._run, name=f"active-sse-{self.config.kind.value}", daemon=True
        )

    def start(self) -> "EventReceiver":
        self._thread.start()
        return self

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def recv(self, timeout: Optional[float] = None) -> Event:
        """
        Block until the next event arrives.

        Args:
            timeout: Seconds to wait, or None to wait forever

        Raises:
            TimeoutError: if no event arrived within `timeout`
            StreamClosedError: once the stream has ended
            SSEConnectionError: if the stream failed; later calls raise StreamClosedError
        """
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TimeoutError(f"No event received within {timeout}s") from None

        if item is _END:
            # Leave the marker in place so every later call sees it too
            self._queue.put(_END)
            raise StreamClosedError(f"Event stream from {self.url} has ended")
        if isinstance(item, SSEError):
            raise item
        return item

    def __iter__(self) -> Iterator[Event]:
        while True:
            try:
                yield self.recv()
            except StreamClosedError:
                return

    def close(self):
        """Stop the reader thread and release the connection."""
        self._stop.set()
        response = self._response
        if response is not None:
            response.close()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(CLOSE_TIMEOUT)
            if self._thread.is_alive():
                logger.warning(f"Reader thread for {self.url} did not stop within {CLOSE_TIMEOUT}s")
                return
        self._client.close()

    def __enter__(self) -> "EventReceiver":
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _run(self):
        try:
            with closing(self._iter_events()) as events:
                for event in events:
                    self._queue.put(event)
                    if self._stop.is_set():
                        break
        except SSEError as e:
            if not self._stop.is_set():
                logger.error(f"Subscription to {self.url} failed: {e}")
                self._queue.put(e)
        except httpx.HTTPError as e:
            # close() tears the response down under the reader
            if self._stop.is_set():
                logger.debug(f"Reader for {self.url} stopped: {e}")
            else:
                logger.error(f"Subscription to {self.url} failed: {e}")
                self._queue.put(SSEConnectionError(f"Stream from {self.url} failed: {e}"))
        finally:
            self._client.close()
            self._queue.put(_END)

    def _iter_events(self) -> Iterator[Event]:
        decoder = SSEDecoder()
        connected = False
        attempt = 0

        while not self._stop.is_set():
            try:
                with self._client.stream(
                    "GET", self.url, headers=self._request_headers(decoder.last_event_id)
                ) as response:
                    self._response = response
                    if response.status_code == NO_CONTENT:
                        logger.info(f"{self.url} returned no content, ending subscription")
                        return
                    raise_for_response(response)

                    logger.info(f"Subscribed to {self.url}")
                    connected = True
                    attempt = 0
                    yield from iter_events(response.iter_lines(), decoder)

                logger.info(f"Stream from {self.url} closed by server")
                return

            except httpx.TransportError as e:
                if self._stop.is_set():
                    return
                attempt += 1
                delay = self._reconnect_delay(e, connected, attempt, decoder)
                # Interrupted early by close()
                self._stop.wait(delay)
            finally:
                self._response = None
