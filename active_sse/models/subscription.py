"""
Subscription configuration for the two kinds of Activeledger event streams.

Activity: stream creation and update notifications, optionally limited to one stream.
Event: contract events, optionally limited to one contract and one event name.
"""

from enum import Enum
from typing import Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from active_sse.utils.exceptions import (
    ContractNotSetError,
    InvalidConfigError,
    raise_incompatible,
)

ACTIVITY_PATH = "/api/activity/subscribe"
EVENTS_PATH = "/api/events"


class SubscriptionKind(str, Enum):
    ACTIVITY = "activity"
    EVENT = "event"


def _require(value: str, name: str) -> str:
    value = value.strip() if value else ""
    if not value:
        raise InvalidConfigError(f"{name} must not be empty")
    return value


def _normalize_base_url(url: str) -> str:
    url = _require(url, "url")
    if not url.startswith(("http://", "https://")):
        raise InvalidConfigError(f"url must start with http:// or https://, got {url!r}")
    return url.rstrip("/")


class SubscriptionConfig(BaseModel):
    """Where to connect and what to listen for.

    Build one with `activity()` or `event()` and refine it with the setters,
    which return the config so calls can be chained.
    """

    base_url: str
    kind: SubscriptionKind
    stream_id: Optional[str] = None
    contract: Optional[str] = None
    event_name: Optional[str] = None

    # Request options
    headers: Dict[str, str] = Field(default_factory=dict)
    token: Optional[str] = None

    # Reconnection overrides (None = use settings)
    reconnect: Optional[bool] = None
    max_retries: Optional[int] = Field(default=None, ge=0)
    retry_delay: Optional[float] = Field(default=None, ge=0.0)
    max_retry_delay: Optional[float] = Field(default=None, ge=0.0)
    timeout: Optional[float] = Field(default=None, gt=0.0)

    @classmethod
    def activity(cls, url: str) -> "SubscriptionConfig":
        """Listen for stream activity on the node at `url`.

        Used as is it listens globally; call `set_stream_id()` to follow a single stream.
        """
        return cls(base_url=_normalize_base_url(url), kind=SubscriptionKind.ACTIVITY)

    @classmethod
    def event(cls, url: str) -> "SubscriptionConfig":
        """Listen for contract events on the node at `url`.

        Used as is it receives every event on the network. Narrow it with
        `set_contract()` and then `set_event()`.
        """
        return cls(base_url=_normalize_base_url(url), kind=SubscriptionKind.EVENT)

    def set_stream_id(self, stream_id: str) -> "SubscriptionConfig":
        if self.kind != SubscriptionKind.ACTIVITY:
            raise_incompatible("set_stream_id", self.kind.value)
        self.stream_id = _require(stream_id, "stream_id")
        return self

    def set_contract(self, contract: str) -> "SubscriptionConfig":
        if self.kind != SubscriptionKind.EVENT:
            raise_incompatible("set_contract", self.kind.value)
        self.contract = _require(contract, "contract")
        return self

    def set_event(self, event: str) -> "SubscriptionConfig":
        """Listen for a single event name. A contract must be set first."""
        if self.kind != SubscriptionKind.EVENT:
            raise_incompatible("set_event", self.kind.value)
        if self.contract is None:
            raise ContractNotSetError("set_contract must be called before set_event")
        self.event_name = _require(event, "event")
        return self

    def set_header(self, name: str, value: str) -> "SubscriptionConfig":
        self.headers[_require(name, "header name")] = value
        return self

    def set_token(self, token: str) -> "SubscriptionConfig":
        """Send `token` as a bearer token."""
        self.token = _require(token, "token")
        return self

    @property
    def url(self) -> str:
        """Full endpoint URL for this subscription."""
        if self.kind == SubscriptionKind.ACTIVITY:
            parts = [self.stream_id]
            path = ACTIVITY_PATH
        else:
            parts = [self.contract, self.event_name]
            path = EVENTS_PATH

        for part in parts:
            if part is None:
                break
            path = f"{path}/{quote(part, safe='')}"
        return f"{self.base_url}{path}"
