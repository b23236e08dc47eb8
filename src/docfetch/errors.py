from typing import Optional


class FetchError(Exception):
    """Base class for everything the fetch pipeline raises."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransportError(FetchError):
    """Network-layer failure of a single attempt (DNS, refusal, reset, ...). Retryable."""


class ConnectTimeout(TransportError):
    """Connection not established within the connect timeout."""


class TransferTimeout(TransportError):
    """Request/response exchange did not finish before the absolute deadline."""


class FetchExhausted(FetchError):
    """Every attempt failed. Carries the last transport error as the cause."""

    def __init__(self, url: str, attempts: int, cause: Optional[BaseException] = None):
        message = f"failed to open {url} after {attempts} attempt(s)"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, cause)
        self.url = url
        self.attempts = attempts


class MalformedDocument(FetchError):
    """HTML body could not be decoded or parsed."""


class MalformedJson(FetchError):
    """JSON body could not be read or parsed."""
