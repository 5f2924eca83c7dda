"""
ChartWallet Test Configuration
- API keys scrubbed from the environment
- In-memory WebSocket doubles (no network access in tests)
"""

import asyncio
import json

import pytest

_CLOSE = object()


@pytest.fixture(autouse=True)
def scrub_api_keys(monkeypatch, tmp_path):
    """Keep a developer's .env keys and store out of the tests."""
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)
    monkeypatch.delenv("FMP_API_KEY", raising=False)
    monkeypatch.delenv("CHARTWALLET_LOG_LEVEL", raising=False)
    monkeypatch.setenv("CHARTWALLET_STORE", str(tmp_path / "store.json"))


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self.fail_send = False
        self._incoming = asyncio.Queue()

    async def send(self, data):
        if self.fail_send:
            raise OSError("broken pipe")
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True
        self._incoming.put_nowait(_CLOSE)

    def feed(self, message):
        """Queue a server frame (dicts are JSON encoded)."""
        if isinstance(message, (dict, list)):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def drop(self):
        """Server closes the connection."""
        self._incoming.put_nowait(_CLOSE)

    def fail(self, exc):
        """Next receive raises ``exc``."""
        self._incoming.put_nowait(exc)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        if isinstance(item, Exception):
            raise item
        return item


class FakeConnector:
    """
    Socket factory handed to the clients.

    ``failures`` connection attempts fail before one succeeds; with
    ``always_fail`` every attempt fails. ``gate`` holds the handshake open
    until it is set.
    """

    def __init__(self, failures=0, always_fail=False):
        self.failures = failures
        self.always_fail = always_fail
        self.gate = None
        self.urls = []
        self.sockets = []

    async def __call__(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.always_fail or self.failures > 0:
            self.failures = max(0, self.failures - 1)
            raise OSError("connection refused")
        ws = FakeSocket()
        self.sockets.append(ws)
        return ws

    @property
    def calls(self):
        return len(self.urls)

    @property
    def latest(self):
        return self.sockets[-1]


async def wait_until(predicate, timeout=2.0, interval=0.005):
    """Poll ``predicate`` on the running loop until true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met within %.1fs" % timeout)
        await asyncio.sleep(interval)


@pytest.fixture
def connector():
    return FakeConnector()
