"""Thin HTTP helpers over urllib used for records, tokens, and asset bytes."""

import json
import logging
from urllib.request import Request, urlopen


log = logging.getLogger(__name__)


def open_url(url: str, headers: dict[str, str] | None = None):
    """Open a GET request and return the response.

    Non-2xx statuses raise ``urllib.error.HTTPError`` and transport failures
    raise ``urllib.error.URLError``; callers translate them into their own
    error types.
    """
    assert url, "url cannot be empty"
    # Signed hrefs carry SAS tokens in the query.
    log.debug(f"GET\n    {url.split('?', 1)[0]}")
    return urlopen(Request(url, headers=headers or {}))  # nosec B310


def get_json(url: str, headers: dict[str, str] | None = None):
    """GET a URL and decode the body as JSON."""
    with open_url(url, headers=headers) as response:
        return json.loads(response.read().decode("utf-8"))
