"""Tests for the async subscription client."""

import httpx
import pytest
from active_sse.client import ActiveSSE
from active_sse.config import Settings
from active_sse.models.subscription import SubscriptionConfig
from active_sse.utils.exceptions import AuthenticationError, SSEConnectionError
from active_sse.utils.sse import SSEDecoder

ACTIVITY_BODY = (
    ": connected\n\n"
    'event: activity\nid: 1\ndata: {"$stream": "abc"}\n\n'
    'event: activity\nid: 2\ndata: {"$stream": "def"}\n\n'
)


async def collect(sse: ActiveSSE) -> list:
    return [event async for event in sse.subscribe()]


@pytest.mark.asyncio
async def test_subscribe_receives_events_until_stream_closes(activity_config, sse_response):
    requests = []

    def handler(request):
        requests.append(request)
        return sse_response(ACTIVITY_BODY)

    async with ActiveSSE(activity_config, transport=httpx.MockTransport(handler)) as sse:
        events = await collect(sse)

    assert [e.json()["$stream"] for e in events] == ["abc", "def"]
    assert [e.event for e in events] == ["activity", "activity"]
    assert len(requests) == 1
    assert str(requests[0].url) == "http://localhost:5260/api/activity/subscribe"
    assert requests[0].headers["accept"] == "text/event-stream"
    assert "last-event-id" not in requests[0].headers


@pytest.mark.asyncio
async def test_next_event_returns_none_at_end(activity_config, sse_response):
    transport = httpx.MockTransport(lambda request: sse_response("data: only\n\n"))

    async with ActiveSSE(activity_config, transport=transport) as sse:
        first = await sse.next_event()
        assert first.data == "only"
        assert await sse.next_event() is None


@pytest.mark.asyncio
async def test_request_headers_include_token_and_custom_headers(sse_response):
    seen = {}

    def handler(request):
        seen.update(request.headers)
        return sse_response("")

    config = SubscriptionConfig.event("http://localhost:5260").set_contract("c")
    config.set_token("secret").set_header("X-Trace", "t1")

    async with ActiveSSE(config, transport=httpx.MockTransport(handler)) as sse:
        assert await collect(sse) == []

    assert seen["authorization"] == "Bearer secret"
    assert seen["x-trace"] == "t1"
    assert seen["cache-control"] == "no-cache"


@pytest.mark.asyncio
async def test_config_is_copied_when_client_is_created(activity_config):
    sse = ActiveSSE(activity_config)
    activity_config.set_stream_id("changed-later")

    assert sse.url == "http://localhost:5260/api/activity/subscribe"
    await sse.aclose()


@pytest.mark.asyncio
async def test_unreachable_endpoint_raises_connection_error(activity_config, fast_settings):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("Connection refused", request=request)

    sse = ActiveSSE(activity_config, fast_settings, transport=httpx.MockTransport(handler))
    with pytest.raises(SSEConnectionError):
        await collect(sse)
    await sse.aclose()

    # The first connection is not retried
    assert len(calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_rejected_credentials_raise_authentication_error(
    activity_config, sse_response, status_code
):
    transport = httpx.MockTransport(lambda request: sse_response("", status_code=status_code))

    async with ActiveSSE(activity_config, transport=transport) as sse:
        with pytest.raises(AuthenticationError) as exc_info:
            await sse.next_event()

    assert exc_info.value.status_code == status_code


@pytest.mark.asyncio
async def test_server_error_raises_connection_error(activity_config, sse_response):
    transport = httpx.MockTransport(lambda request: sse_response("", status_code=500))

    async with ActiveSSE(activity_config, transport=transport) as sse:
        with pytest.raises(SSEConnectionError) as exc_info:
            await sse.next_event()

    assert exc_info.value.status_code == 500
    assert not isinstance(exc_info.value, AuthenticationError)


@pytest.mark.asyncio
async def test_wrong_content_type_raises_connection_error(activity_config, sse_response):
    transport = httpx.MockTransport(
        lambda request: sse_response("<html></html>", content_type="text/html")
    )

    async with ActiveSSE(activity_config, transport=transport) as sse:
        with pytest.raises(SSEConnectionError):
            await sse.next_event()


@pytest.mark.asyncio
async def test_no_content_ends_subscription(activity_config):
    transport = httpx.MockTransport(lambda request: httpx.Response(204))

    async with ActiveSSE(activity_config, transport=transport) as sse:
        assert await collect(sse) == []


@pytest.mark.asyncio
async def test_dropped_stream_reconnects_with_last_event_id(
    activity_config, sse_response, fast_settings
):
    requests = []

    async def dropping_body():
        yield b"id: 1\ndata: first\n\n"
        yield b"data: never-completed"
        raise httpx.ReadError("Connection reset")

    def handler(request):
        requests.append(request)
        if len(requests) == 1:
            return sse_response(dropping_body())
        return sse_response("id: 2\ndata: second\n\n")

    sse = ActiveSSE(activity_config, fast_settings, transport=httpx.MockTransport(handler))
    events = await collect(sse)
    await sse.aclose()

    assert [e.data for e in events] == ["first", "second"]
    assert len(requests) == 2
    assert requests[1].headers["last-event-id"] == "1"


@pytest.mark.asyncio
async def test_reconnect_gives_up_after_max_retries(activity_config, sse_response, fast_settings):
    calls = []

    async def dropping_body():
        yield b"data: first\n\n"
        raise httpx.ReadError("Connection reset")

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return sse_response(dropping_body())
        raise httpx.ConnectError("Connection refused", request=request)

    sse = ActiveSSE(activity_config, fast_settings, transport=httpx.MockTransport(handler))
    received = []
    with pytest.raises(SSEConnectionError):
        async for event in sse.subscribe():
            received.append(event)
    await sse.aclose()

    assert [e.data for e in received] == ["first"]
    # One connection plus max_retries reconnect attempts
    assert len(calls) == 1 + fast_settings.max_retries


@pytest.mark.asyncio
async def test_reconnect_disabled_raises_on_drop(sse_response, fast_settings):
    async def dropping_body():
        yield b"data: first\n\n"
        raise httpx.ReadError("Connection reset")

    config = SubscriptionConfig.activity("http://localhost:5260")
    config.reconnect = False
    transport = httpx.MockTransport(lambda request: sse_response(dropping_body()))

    async with ActiveSSE(config, fast_settings, transport=transport) as sse:
        assert (await sse.next_event()).data == "first"
        with pytest.raises(SSEConnectionError):
            await sse.next_event()


def test_reconnect_delay_backs_off_and_honours_server_retry(activity_config):
    settings = Settings(retry_delay=1.0, max_retry_delay=5.0, max_retries=None)
    sse = ActiveSSE(activity_config, settings)
    decoder = SSEDecoder()
    error = httpx.ReadError("Connection reset")

    assert sse._reconnect_delay(error, True, 1, decoder) == 1.0
    assert sse._reconnect_delay(error, True, 3, decoder) == 4.0
    assert sse._reconnect_delay(error, True, 10, decoder) == 5.0

    decoder.decode("retry: 500")
    assert sse._reconnect_delay(error, True, 1, decoder) == 0.5


def test_config_overrides_settings(activity_config):
    settings = Settings(retry_delay=1.0, max_retries=5, connect_timeout=10.0)
    activity_config.retry_delay = 0.25
    activity_config.max_retries = 0
    activity_config.timeout = 2.0

    sse = ActiveSSE(activity_config, settings)
    assert sse.retry_delay == 0.25
    assert sse.max_retries == 0
    assert sse.timeout.connect == 2.0
    assert sse.timeout.read is None


@pytest.mark.asyncio
async def test_reconnected_stream_may_start_with_bom(activity_config, sse_response, fast_settings):
    calls = []

    async def dropping_body():
        yield b"\xef\xbb\xbfdata: first\n\n"
        raise httpx.ReadError("Connection reset")

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return sse_response(dropping_body())
        return sse_response(b"\xef\xbb\xbfdata: second\n\n")

    sse = ActiveSSE(activity_config, fast_settings, transport=httpx.MockTransport(handler))
    events = await collect(sse)
    await sse.aclose()

    assert [e.data for e in events] == ["first", "second"]


@pytest.mark.asyncio
async def test_aclose_closes_subscriptions_left_open(idle_stream_url):
    sse = ActiveSSE(SubscriptionConfig.activity(idle_stream_url))
    events = sse.subscribe()
    async for event in events:
        assert event.data == "hello"
        break

    await sse.aclose()

    with pytest.raises(StopAsyncIteration):
        await events.__anext__()
    assert sse._client is None


@pytest.mark.asyncio
async def test_aclose_after_leaving_async_for(idle_stream_url):
    async with ActiveSSE(SubscriptionConfig.activity(idle_stream_url)) as sse:
        events = sse.__aiter__()
        async for event in sse:
            assert event.data == "hello"
            break

    with pytest.raises(StopAsyncIteration):
        await events.__anext__()
