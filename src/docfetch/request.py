"""
Fetch intent and default resolution.

A RequestSpec is immutable; every layer that needs timeouts or retry
settings calls resolve() on it rather than reading the raw fields, so a
zero or negative value always means "use the default".
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence, Tuple, Union

from .config import DEFAULTS

HeaderValues = Union[str, Sequence[str]]


def _copy_headers(headers: Mapping[str, HeaderValues]) -> Dict[str, Tuple[str, ...]]:
    out = {}
    for name, values in (headers or {}).items():
        if isinstance(values, str):
            values = (values,)
        values = tuple(values)
        # HTTP/1.1 header lines are sent as ASCII
        for text in (name, *values):
            if not text.isascii():
                raise ValueError(f"header {name!r} contains non-ASCII text: {text!r}")
        out[name] = values
    return out


@dataclass(frozen=True)
class RequestSpec:
    url: str
    method: str = ""
    headers: Mapping[str, HeaderValues] = field(default_factory=dict)
    form_fields: Mapping[str, str] = field(default_factory=dict)
    connect_timeout: float = 0
    total_timeout: float = 0
    retry_count: int = 0
    retry_delay: float = 0
    target_encoding: str = ""

    def __post_init__(self):
        if not self.url:
            raise ValueError("RequestSpec.url must be a non-empty string")
        # Own copies so a caller mutating its dicts cannot leak into later attempts
        object.__setattr__(self, "headers", _copy_headers(self.headers))
        object.__setattr__(self, "form_fields", dict(self.form_fields or {}))

    def __hash__(self):
        return hash((
            self.url,
            self.method,
            tuple(self.headers.items()),
            tuple(sorted(self.form_fields.items())),
            self.connect_timeout,
            self.total_timeout,
            self.retry_count,
            self.retry_delay,
            self.target_encoding,
        ))

    def header_items(self):
        """Flatten headers into (name, value) pairs, one per value, in order."""
        return [(name, value) for name, values in self.headers.items() for value in values]


@dataclass(frozen=True)
class Settings:
    method: str
    connect_timeout: float
    total_timeout: float
    retry_count: int
    retry_delay: float


def _positive(value, default):
    return value if value and value > 0 else default


def resolve(spec: RequestSpec) -> Settings:
    """Apply defaults to a spec. Pure; safe to call at every layer."""
    return Settings(
        method=(spec.method or DEFAULTS.method).upper(),
        connect_timeout=_positive(spec.connect_timeout, DEFAULTS.connect_timeout),
        total_timeout=_positive(spec.total_timeout, DEFAULTS.total_timeout),
        retry_count=int(_positive(spec.retry_count, DEFAULTS.retry_count)),
        retry_delay=_positive(spec.retry_delay, DEFAULTS.retry_delay),
    )
