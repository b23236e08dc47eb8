from dataclasses import dataclass

@dataclass(frozen=True)
class FetchDefaults:
    connect_timeout: float = 5.0   # seconds to establish the TCP connection
    total_timeout: float = 10.0    # seconds for send + headers + body, measured once connected
    retry_count: int = 3           # attempts per fetch (not retries after the first)
    retry_delay: float = 3.0       # fixed pause after every failed attempt
    method: str = "GET"

DEFAULTS = FetchDefaults()

# HTML parser handed to BeautifulSoup
DEFAULT_PARSER = "lxml"

USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"

# Environment overrides read by the CLI
ENV_CONNECT_TIMEOUT = "DOCFETCH_CONNECT_TIMEOUT"
ENV_TIMEOUT = "DOCFETCH_TIMEOUT"
ENV_RETRIES = "DOCFETCH_RETRIES"
ENV_RETRY_DELAY = "DOCFETCH_RETRY_DELAY"
ENV_ENCODING = "DOCFETCH_ENCODING"
