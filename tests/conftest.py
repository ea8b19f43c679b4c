import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import httpx
import pytest

from active_sse.config import Settings
from active_sse.models.subscription import SubscriptionConfig

NODE_URL = "http://localhost:5260"

# Upper bound on how long the idle stream handler keeps a connection open (seconds)
IDLE_STREAM_TIMEOUT = 10.0


class IdleStreamHandler(BaseHTTPRequestHandler):
    """Sends one event, then keeps the stream open without writing."""

    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "text/event-stream")
        self.end_headers()
        self.wfile.write(b"data: hello\n\n")
        self.wfile.flush()
        self.server.release.wait(IDLE_STREAM_TIMEOUT)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def fast_settings():
    """Settings with no reconnect delay so retry tests run instantly."""
    return Settings(reconnect=True, max_retries=2, retry_delay=0.0, max_retry_delay=0.0)


@pytest.fixture
def activity_config():
    return SubscriptionConfig.activity(NODE_URL)


@pytest.fixture
def idle_stream_url():
    """Base URL of a local node whose streams stay open until the test ends."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), IdleStreamHandler)
    server.daemon_threads = True
    server.release = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield f"http://127.0.0.1:{server.server_address[1]}"

    server.release.set()
    server.shutdown()
    server.server_close()


@pytest.fixture
def sse_response():
    """Build an event stream response from a body (str, bytes or byte iterator)."""

    def _build(body, status_code: int = 200, content_type: str = "text/event-stream"):
        if isinstance(body, str):
            body = body.encode()
        return httpx.Response(
            status_code, headers={"content-type": content_type}, content=body
        )

    return _build
