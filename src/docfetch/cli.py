import json
import logging
from typing import List, Optional

import typer

from .config import ENV_CONNECT_TIMEOUT, ENV_ENCODING, ENV_RETRIES, ENV_RETRY_DELAY, ENV_TIMEOUT
from .document import fetch_document
from .errors import FetchError
from .jsondata import fetch_json
from .request import RequestSpec
from .retry import RetryingFetch

app = typer.Typer(help="Fetch HTML or JSON with timeouts and retries")


def _parse_headers(raw: List[str]) -> dict:
    headers = {}
    for line in raw or []:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"header must look like 'Name: value', got {line!r}")
        headers.setdefault(name.strip(), []).append(value.strip())
    return headers


def _parse_form(raw: List[str]) -> dict:
    form = {}
    for pair in raw or []:
        key, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"form field must look like key=value, got {pair!r}")
        form[key] = value
    return form


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _build_spec(url, method, header, data, connect_timeout, timeout, retries, retry_delay, encoding) -> RequestSpec:
    try:
        return RequestSpec(
            url=url,
            method=method,
            headers=_parse_headers(header),
            form_fields=_parse_form(data),
            connect_timeout=connect_timeout,
            total_timeout=timeout,
            retry_count=retries,
            retry_delay=retry_delay,
            target_encoding=encoding,
        )
    except ValueError as e:
        raise typer.BadParameter(str(e))


# Shared options; zero means "use the built-in default"
METHOD = typer.Option("", "--method", "-X", help="HTTP method (default GET)")
HEADER = typer.Option(None, "--header", "-H", help="Request header 'Name: value' (repeatable)")
DATA = typer.Option(None, "--data", "-d", help="Form field key=value sent as the body (repeatable)")
CONNECT_TIMEOUT = typer.Option(0.0, envvar=ENV_CONNECT_TIMEOUT, help="Connect timeout in seconds")
TIMEOUT = typer.Option(0.0, envvar=ENV_TIMEOUT, help="Total transfer timeout in seconds")
RETRIES = typer.Option(0, envvar=ENV_RETRIES, help="Attempts per fetch")
RETRY_DELAY = typer.Option(0.0, envvar=ENV_RETRY_DELAY, help="Seconds between attempts")
VERBOSE = typer.Option(False, "--verbose", "-v", help="Debug logging")


@app.command()
def document(
    url: str,
    select: Optional[str] = typer.Option(None, "--select", "-s", help="CSS selector to print"),
    encoding: str = typer.Option("", "--encoding", "-e", envvar=ENV_ENCODING, help="Source charset to transcode from"),
    method: str = METHOD,
    header: List[str] = HEADER,
    data: List[str] = DATA,
    connect_timeout: float = CONNECT_TIMEOUT,
    timeout: float = TIMEOUT,
    retries: int = RETRIES,
    retry_delay: float = RETRY_DELAY,
    verbose: bool = VERBOSE,
):
    """
    Fetch a page and print its title, or the text of elements matching --select.

    Examples:
      docfetch document https://example.com
      docfetch document https://example.com --select "h1, h2"
      docfetch document http://legacy.example.cn -e gbk
    """
    _setup_logging(verbose)
    spec = _build_spec(url, method, header, data, connect_timeout, timeout, retries, retry_delay, encoding)
    try:
        soup = fetch_document(spec, RetryingFetch())
    except FetchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    if select:
        for el in soup.select(select):
            typer.echo(el.get_text(strip=True))
    else:
        title = soup.title.get_text(strip=True) if soup.title else ""
        typer.echo(title)


@app.command("json")
def json_command(
    url: str,
    path: Optional[str] = typer.Option(None, "--path", "-p", help="Dotted path into the value, e.g. items.0.name"),
    method: str = METHOD,
    header: List[str] = HEADER,
    data: List[str] = DATA,
    connect_timeout: float = CONNECT_TIMEOUT,
    timeout: float = TIMEOUT,
    retries: int = RETRIES,
    retry_delay: float = RETRY_DELAY,
    verbose: bool = VERBOSE,
):
    """
    Fetch a JSON document, refetching while the payload is invalid.

    Examples:
      docfetch json https://api.example.com/items
      docfetch json https://api.example.com/items --path items.0.name
    """
    _setup_logging(verbose)
    spec = _build_spec(url, method, header, data, connect_timeout, timeout, retries, retry_delay, "")
    try:
        value = fetch_json(spec, RetryingFetch())
    except FetchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    result = value.data
    if path:
        keys = [int(k) if k.lstrip("-").isdigit() else k for k in path.split(".")]
        result = value.get(*keys)
    typer.echo(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
