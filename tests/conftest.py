import httpx
import pytest

from docfetch.retry import RetryingFetch
from docfetch.transport import Transport


class TrackingStream(httpx.SyncByteStream):
    """Response body that remembers whether it was closed."""

    def __init__(self, chunks, on_chunk=None):
        self.chunks = list(chunks)
        self.on_chunk = on_chunk
        self.closed = False

    def __iter__(self):
        for chunk in self.chunks:
            if self.on_chunk:
                self.on_chunk()
            yield chunk

    def close(self):
        self.closed = True


class ScriptedServer:
    """
    MockTransport handler that plays back one step per request; the last
    step repeats. A step is an httpx exception class (raised), bytes (200
    response), or a callable taking the request.
    """

    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []
        self.streams = []

    def __call__(self, request):
        self.requests.append(request)
        step = self.steps[min(len(self.requests), len(self.steps)) - 1]
        if isinstance(step, type) and issubclass(step, Exception):
            raise step("scripted failure", request=request)
        if isinstance(step, bytes):
            stream = TrackingStream([step])
            self.streams.append(stream)
            return httpx.Response(200, stream=stream)
        return step(request)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def events():
    return []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_fetcher(sleeps, events, clock):
    def _make(server):
        transport = Transport(httpx.MockTransport(server), clock=clock)
        return RetryingFetch(transport, sleep=sleeps.append, on_progress=events.append)
    return _make
