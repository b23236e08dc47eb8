"""
JSON fetching with refetch on malformed payloads.

Two retry policies are composed here: every outer attempt runs a complete
RetryingFetch (its own attempts and delays), and only a body that fails to
parse moves the outer loop on. Transport exhaustion ends the call at once.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt

from .errors import MalformedJson, TransportError
from .request import RequestSpec, resolve
from .retry import INVALID_DATA, RetryingFetch
from .transport import FetchOutcome

logger = logging.getLogger(__name__)


@dataclass
class DecodedJson:
    data: Any

    def get(self, *keys, default=None):
        """Walk nested objects/arrays, e.g. get("items", 0, "name")."""
        current = self.data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            elif isinstance(current, list) and isinstance(key, int) and -len(current) <= key < len(current):
                current = current[key]
            else:
                return default
        return current


def decode_json(outcome: FetchOutcome) -> DecodedJson:
    with outcome:
        try:
            body = outcome.read()
        except TransportError as exc:
            raise MalformedJson(f"incomplete body from {outcome.url}: {exc}", exc) from exc
    try:
        return DecodedJson(json.loads(body))
    except ValueError as exc:
        raise MalformedJson(f"invalid JSON from {outcome.url}: {exc}", exc) from exc


def fetch_json(spec: RequestSpec, fetcher: Optional[RetryingFetch] = None) -> DecodedJson:
    fetcher = fetcher or RetryingFetch()
    settings = resolve(spec)

    def after_invalid(state: RetryCallState):
        fetcher.report(INVALID_DATA, state.attempt_number, spec.url, state.outcome.exception())

    retrying = Retrying(
        stop=stop_after_attempt(settings.retry_count),
        retry=retry_if_exception_type(MalformedJson),
        after=after_invalid,
        reraise=True,
    )
    return retrying(lambda: decode_json(fetcher.fetch(spec)))
