"""Run the mock NutriApp API on a free local port for the duration of a test or session."""
import logging
import threading
import time

import httpx
import pytest
from werkzeug.serving import make_server

from nutriapp_tests.mock_nutriapp_api import MockState, create_mock_api_app

logger = logging.getLogger(__name__)

STARTUP_TIMEOUT = 5.0


class MockNutriAppServer:
    """werkzeug server for the mock app, serving from a daemon thread."""

    def __init__(self, host="127.0.0.1", port=0):
        self.host = host
        self.port = port
        self.state = MockState()
        self.app = create_mock_api_app(self.state)
        self.server = None
        self.thread = None

    @property
    def url(self):
        return f"http://{self.host}:{self.port}"

    def start(self):
        """Bind (port 0 picks a free one), serve, and block until /api/health answers."""
        self.server = make_server(self.host, self.port, self.app, threaded=True)
        self.port = self.server.server_port
        self.thread = threading.Thread(target=self.server.serve_forever, name="mock-nutriapp", daemon=True)
        self.thread.start()

        deadline = time.monotonic() + STARTUP_TIMEOUT
        while True:
            try:
                httpx.get(f"{self.url}/api/health", timeout=0.5).raise_for_status()
                break
            except httpx.HTTPError:
                if time.monotonic() > deadline:
                    self.stop()
                    raise RuntimeError(f"Mock NutriApp API did not start on {self.url}")
                time.sleep(0.1)
        logger.info("Mock NutriApp API listening on %s", self.url)

    def stop(self):
        if self.server is None:
            return
        self.server.shutdown()
        self.thread.join(timeout=5)
        self.server = None


@pytest.fixture(scope="function")
def mock_nutriapp_server():
    """A fresh mock API (empty users and dishes) per test.

    Usage:
        async def test_something(mock_nutriapp_server):
            async with NutriAppApiClient(base_url=mock_nutriapp_server.url) as api:
                ...
    """
    server = MockNutriAppServer()
    server.start()
    yield server
    server.stop()
