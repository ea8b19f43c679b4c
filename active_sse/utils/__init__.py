from active_sse.utils.sse import SSEDecoder, aiter_events, format_sse, iter_events

__all__ = ["SSEDecoder", "aiter_events", "format_sse", "iter_events"]
