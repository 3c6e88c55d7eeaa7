from typing import NamedTuple
from urllib.parse import urljoin, urlparse

DEFAULT_BASE_URL = "http://localhost"


class Recording(NamedTuple):
    method: str
    scheme: str
    netloc: str
    path: str
    query: str


def parse_recording(method: str | None, url: str, base_url: str | None = None) -> Recording:
    """Split a request into its parts, resolving relative URLs against ``base_url``."""
    if "://" not in url:
        url = urljoin(base_url or DEFAULT_BASE_URL, url)
    parsed = urlparse(url)
    return Recording(
        method=(method or "GET").upper(),
        scheme=parsed.scheme,
        netloc=parsed.netloc,
        path=parsed.path or "/",
        query=parsed.query,
    )
