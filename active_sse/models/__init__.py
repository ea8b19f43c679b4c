from active_sse.models.event import Event
from active_sse.models.subscription import SubscriptionConfig, SubscriptionKind

__all__ = ["Event", "SubscriptionConfig", "SubscriptionKind"]
