import httpx
import pytest

from conftest import ScriptedServer, TrackingStream
from docfetch.errors import FetchExhausted, MalformedJson
from docfetch.jsondata import DecodedJson, fetch_json
from docfetch.request import RequestSpec
from docfetch.retry import ATTEMPT_FAILED, INVALID_DATA

URL = "http://api.example.com/items"


def test_invalid_payload_triggers_full_refetch(make_fetcher, events, sleeps):
    server = ScriptedServer(b"{not json", b'{"a":1}')

    result = fetch_json(RequestSpec(url=URL, retry_count=2), make_fetcher(server))

    assert result == DecodedJson({"a": 1})
    assert len(server.requests) == 2
    assert [(e.kind, e.attempt) for e in events] == [(INVALID_DATA, 1)]
    assert sleeps == []
    assert all(stream.closed for stream in server.streams)


def test_outer_loop_exhaustion_raises_last_parse_error(make_fetcher, events):
    server = ScriptedServer(b"<html>oops</html>")

    with pytest.raises(MalformedJson) as info:
        fetch_json(RequestSpec(url=URL, retry_count=3), make_fetcher(server))

    assert "invalid JSON" in str(info.value)
    assert isinstance(info.value.cause, ValueError)
    assert len(server.requests) == 3
    assert [e.attempt for e in events if e.kind == INVALID_DATA] == [1, 2, 3]
    assert len(server.streams) == 3
    assert all(stream.closed for stream in server.streams)


def test_zero_retry_count_means_three_outer_attempts(make_fetcher):
    server = ScriptedServer(b"nope")
    with pytest.raises(MalformedJson):
        fetch_json(RequestSpec(url=URL, retry_count=0), make_fetcher(server))
    assert len(server.requests) == 3


def test_transport_exhaustion_is_terminal(make_fetcher, events, sleeps):
    server = ScriptedServer(httpx.ConnectError)

    with pytest.raises(FetchExhausted):
        fetch_json(RequestSpec(url=URL, retry_count=2, retry_delay=1), make_fetcher(server))

    # one inner fetch only; the outer loop does not retry exhaustion
    assert len(server.requests) == 2
    assert sleeps == [1, 1]
    assert all(e.kind == ATTEMPT_FAILED for e in events)


def test_nested_retries_compose(make_fetcher, events, sleeps):
    server = ScriptedServer(httpx.ConnectError, b"{bad", httpx.ConnectError, b'{"ok": true}')

    result = fetch_json(RequestSpec(url=URL, retry_count=2, retry_delay=1), make_fetcher(server))

    assert result.data == {"ok": True}
    assert len(server.requests) == 4
    assert sleeps == [1, 1]
    assert [(e.kind, e.attempt) for e in events] == [
        (ATTEMPT_FAILED, 1),
        (INVALID_DATA, 1),
        (ATTEMPT_FAILED, 1),
    ]


def test_truncated_body_counts_as_invalid_data(make_fetcher, clock, events):
    slow = TrackingStream([b'{"a":', b"1}"], on_chunk=lambda: clock.advance(8))
    steps = iter([
        lambda request: httpx.Response(200, stream=slow),
        lambda request: httpx.Response(200, content=b'{"a": 1}'),
    ])
    server = ScriptedServer(lambda request: next(steps)(request))

    result = fetch_json(RequestSpec(url=URL, retry_count=2), make_fetcher(server))

    assert result.data == {"a": 1}
    assert slow.closed
    assert [e.kind for e in events] == [INVALID_DATA]


def test_decoded_json_path_lookup():
    value = DecodedJson({"items": [{"name": "drill"}, {"name": "saw"}], "total": 2})
    assert value.get("items", 1, "name") == "saw"
    assert value.get("items", -1, "name") == "saw"
    assert value.get("total") == 2
    assert value.get("items", 5, default="none") == "none"
    assert value.get("missing", "deeper") is None
