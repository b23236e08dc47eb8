import codecs
import logging
from typing import Iterable, Iterator, Optional

from bs4 import BeautifulSoup, FeatureNotFound

from .config import DEFAULT_PARSER
from .errors import MalformedDocument, TransportError
from .request import RequestSpec
from .retry import RetryingFetch
from .transport import FetchOutcome

logger = logging.getLogger(__name__)


def transcode(chunks: Iterable[bytes], encoding: str) -> Iterator[str]:
    """Decode a byte stream labelled with `encoding` into text, chunk by chunk."""
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    for chunk in chunks:
        text = decoder.decode(chunk)
        if text:
            yield text
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def decode_document(outcome: FetchOutcome, target_encoding: str = "",
                    features: str = DEFAULT_PARSER) -> BeautifulSoup:
    """
    Parse a response body as HTML. The body is always released.

    Any non-empty target_encoding goes through transcode(), "utf-8" included;
    an empty one parses the raw bytes as UTF-8.
    """
    with outcome:
        if target_encoding:
            try:
                codecs.lookup(target_encoding)
            except LookupError as exc:
                raise MalformedDocument(f"unknown encoding {target_encoding!r} for {outcome.url}", exc) from exc
        try:
            if target_encoding:
                markup = "".join(transcode(outcome.iter_bytes(), target_encoding))
                options = {}
            else:
                markup = outcome.read()
                options = {"from_encoding": "utf-8"}
        except TransportError as exc:
            raise MalformedDocument(f"incomplete body from {outcome.url}: {exc}", exc) from exc

    try:
        return BeautifulSoup(markup, features, **options)
    except FeatureNotFound:
        raise
    except Exception as exc:
        raise MalformedDocument(f"could not parse HTML from {outcome.url}: {exc}", exc) from exc


def fetch_document(spec: RequestSpec, fetcher: Optional[RetryingFetch] = None,
                   features: str = DEFAULT_PARSER) -> BeautifulSoup:
    fetcher = fetcher or RetryingFetch()
    outcome = fetcher.fetch(spec)
    logger.debug(f"Decoding document from {outcome.url} (status {outcome.status_code})")
    return decode_document(outcome, spec.target_encoding, features)
