from dataclasses import dataclass
from typing import Any, Optional

import orjson

DEFAULT_EVENT_TYPE = "message"


@dataclass
class Event:
    """A single event received from an Activeledger node"""

    data: str
    event: str = DEFAULT_EVENT_TYPE
    id: Optional[str] = None
    retry: Optional[int] = None  # Reconnection time requested by the server (ms)

    def json(self) -> Any:
        """Decode the data field. Activeledger sends JSON payloads."""
        return orjson.loads(self.data)
