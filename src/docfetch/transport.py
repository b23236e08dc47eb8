"""
Single HTTP round-trip with a connect timeout and an absolute transfer deadline.

httpx only offers per-operation timeouts, so the total budget is enforced here:
the deadline starts when the TCP connection completes (httpx trace hook) and is
checked once headers arrive and again on every body chunk.
"""

import logging
import time
from typing import Callable, Iterator, Optional
from urllib.parse import urlencode

import httpx

from .config import USER_AGENT
from .errors import ConnectTimeout, TransferTimeout, TransportError
from .request import RequestSpec, resolve

logger = logging.getLogger(__name__)

CONNECTED_EVENT = "connection.connect_tcp.complete"


def encode_form(form_fields) -> Optional[bytes]:
    if not form_fields:
        return None
    return urlencode(sorted(form_fields.items())).encode("ascii")


class FetchOutcome:
    """A live, not-yet-consumed response. Owns the per-attempt client."""

    def __init__(self, client: httpx.Client, response: httpx.Response, deadline: float,
                 clock: Callable[[], float] = time.monotonic):
        self._client = client
        self._response = response
        self._deadline = deadline
        self._clock = clock
        self.closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def url(self) -> str:
        return str(self._response.url)

    def _check_deadline(self):
        if self._clock() > self._deadline:
            raise TransferTimeout(f"transfer deadline exceeded reading {self.url}")

    def iter_bytes(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_bytes(chunk_size):
                self._check_deadline()
                yield chunk
        except httpx.TimeoutException as exc:
            raise TransferTimeout(f"timed out reading {self.url}: {exc}", exc) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"error reading {self.url}: {exc}", exc) from exc

    def read(self) -> bytes:
        return b"".join(self.iter_bytes())

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self._response.close()
        finally:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class Transport:
    """Performs exactly one request per attempt() call on a fresh client."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._transport = transport
        self._clock = clock

    def attempt(self, spec: RequestSpec) -> FetchOutcome:
        settings = resolve(spec)
        client = httpx.Client(
            transport=self._transport,
            timeout=httpx.Timeout(settings.total_timeout, connect=settings.connect_timeout),
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
        )
        deadline = None

        def trace(event_name, info):
            nonlocal deadline
            if event_name == CONNECTED_EVENT:
                deadline = self._clock() + settings.total_timeout

        try:
            # Form fields become the body for every method, GET included
            request = client.build_request(
                settings.method,
                spec.url,
                headers=spec.header_items(),
                content=encode_form(spec.form_fields),
                extensions={"trace": trace},
            )
            sent_at = self._clock()
            response = client.send(request, stream=True)
        except httpx.ConnectTimeout as exc:
            client.close()
            raise ConnectTimeout(
                f"connecting to {spec.url} took longer than {settings.connect_timeout}s", exc
            ) from exc
        except httpx.TimeoutException as exc:
            client.close()
            raise TransferTimeout(
                f"{settings.method} {spec.url} exceeded {settings.total_timeout}s", exc
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            client.close()
            raise TransportError(f"{settings.method} {spec.url} failed: {exc}", exc) from exc
        except BaseException:
            client.close()
            raise

        if deadline is None:
            # No connect event seen (reused or in-process connection)
            deadline = sent_at + settings.total_timeout

        outcome = FetchOutcome(client, response, deadline, self._clock)
        if self._clock() > deadline:
            outcome.close()
            raise TransferTimeout(f"{settings.method} {spec.url} exceeded {settings.total_timeout}s")

        logger.debug(f"{settings.method} {spec.url} -> {response.status_code}")
        return outcome
