import logging
import re
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List, Optional, Union

import orjson

from active_sse.models.event import DEFAULT_EVENT_TYPE, Event

logger = logging.getLogger(__name__)

# Constants
UTF8_BOM = "\ufeff"
SSE_COMMENT_PREFIX = ":"
SSE_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class SSEDecoder:
    """
    Incremental decoder for the text/event-stream format.

    Feed it one line at a time (without the line terminator). A blank line
    completes the pending event, which `decode()` then returns.
    """

    def __init__(self):
        self._event_type = ""
        self._data: List[str] = []
        self._seen_first_line = False
        self.last_event_id = ""
        self.retry: Optional[int] = None

    def decode(self, line: str) -> Optional[Event]:
        if not self._seen_first_line:
            self._seen_first_line = True
            if line.startswith(UTF8_BOM):
                line = line[1:]

        if not line:
            return self._dispatch()
        if line.startswith(SSE_COMMENT_PREFIX):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_type = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            # Ids containing NUL are ignored
            if "\0" not in value:
                self.last_event_id = value
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self.retry = int(value)
            else:
                logger.debug(f"Ignoring invalid retry value: {value!r}")
        else:
            logger.debug(f"Ignoring unknown SSE field: {field!r}")
        return None

    def reset(self) -> None:
        """Prepare for a new stream after a reconnect.

        The pending event is dropped and the next line may carry a BOM again.
        The last event id and retry hint are kept.
        """
        self._event_type = ""
        self._data = []
        self._seen_first_line = False

    def _dispatch(self) -> Optional[Event]:
        if not self._data:
            self._event_type = ""
            return None

        event = Event(
            data="\n".join(self._data),
            event=self._event_type or DEFAULT_EVENT_TYPE,
            id=self.last_event_id or None,
            retry=self.retry,
        )
        self._event_type = ""
        self._data = []
        return event


def iter_events(lines: Iterable[str], decoder: Optional[SSEDecoder] = None) -> Iterator[Event]:
    """Decode events from an iterable of lines, e.g. `response.iter_lines()`."""
    decoder = decoder or SSEDecoder()
    for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event


async def aiter_events(
    lines: AsyncIterable[str], decoder: Optional[SSEDecoder] = None
) -> AsyncIterator[Event]:
    """Decode events from an async iterable of lines, e.g. `response.aiter_lines()`."""
    decoder = decoder or SSEDecoder()
    async for line in lines:
        event = decoder.decode(line)
        if event is not None:
            yield event


def format_sse(
    data: Union[str, dict, list],
    event: Optional[str] = None,
    id: Optional[str] = None,
    retry: Optional[int] = None,
) -> str:
    """Format data as an SSE event. Dicts and lists are JSON encoded.

    Raises:
        ValueError: if `event` or `id` contains a line break
    """
    for name, value in (("event", event), ("id", id)):
        if value is not None and ("\n" in value or "\r" in value):
            raise ValueError(f"SSE {name} must not contain line breaks: {value!r}")

    if not isinstance(data, str):
        data = orjson.dumps(data).decode()

    lines = []
    if event:
        lines.append(f"event: {event}")
    if id is not None:
        lines.append(f"id: {id}")
    if retry is not None:
        lines.append(f"retry: {retry}")
    lines.extend(f"data: {line}" for line in SSE_LINE_BREAK.split(data))
    return "\n".join(lines) + "\n\n"
