import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from .errors import FetchExhausted, TransportError
from .request import RequestSpec, resolve
from .transport import FetchOutcome, Transport

logger = logging.getLogger(__name__)

ATTEMPT_FAILED = "attempt_failed"
INVALID_DATA = "invalid_data"


@dataclass(frozen=True)
class ProgressEvent:
    kind: str
    attempt: int
    url: str
    error: Optional[BaseException] = None


def log_progress(event: ProgressEvent) -> None:
    """Default reporter: one warning per failed attempt or refetch."""
    if event.kind == ATTEMPT_FAILED:
        logger.warning(f"Request failed, retrying: {event.attempt} ({event.url}: {event.error})")
    elif event.kind == INVALID_DATA:
        logger.warning(f"Invalid data, refetching: {event.attempt} ({event.url}: {event.error})")
    else:
        logger.info(f"{event.kind}: {event.attempt} ({event.url})")


class RetryingFetch:
    """
    Bounded retry loop around Transport.attempt().

    Transport errors are retried with a fixed delay. The delay is also slept
    after the final failed attempt, before FetchExhausted is raised, so an
    always-failing fetch takes retry_count * (attempt + delay).
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    ):
        self.transport = transport or Transport()
        self.sleep = sleep
        self.on_progress = on_progress or log_progress

    def report(self, kind: str, attempt: int, url: str, error: Optional[BaseException] = None) -> None:
        self.on_progress(ProgressEvent(kind=kind, attempt=attempt, url=url, error=error))

    def fetch(self, spec: RequestSpec) -> FetchOutcome:
        settings = resolve(spec)

        def after_failure(state: RetryCallState):
            self.report(ATTEMPT_FAILED, state.attempt_number, spec.url, state.outcome.exception())

        def exhausted(state: RetryCallState):
            last_error = state.outcome.exception()
            self.sleep(settings.retry_delay)
            raise FetchExhausted(spec.url, state.attempt_number, last_error) from last_error

        retrying = Retrying(
            stop=stop_after_attempt(settings.retry_count),
            wait=wait_fixed(settings.retry_delay),
            retry=retry_if_exception_type(TransportError),
            after=after_failure,
            sleep=self.sleep,
            retry_error_callback=exhausted,
        )
        return retrying(self.transport.attempt, spec)
