"""Pytest fixtures for pcdownload tests."""

import io, json, logging, threading
from email.message import Message
from urllib.error import HTTPError, URLError

import pytest


API_URL = "https://stac.example.test/api/stac/v1"
TOKEN_URL = "https://stac.example.test/api/sas/v1/token"


class FakeResponse:
    """Minimal stand-in for an ``http.client.HTTPResponse``."""

    def __init__(self, body: bytes, headers: dict | None = None):
        self._stream = io.BytesIO(body)
        self.headers = {"Content-Length": str(len(body))} if headers is None else headers
        self.status = 200

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._stream.close()
        return False


class FakeHttp:
    """URL-routed fake for ``urlopen`` that records every request."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.requests = []
        self._lock = threading.Lock()

    def add_json(self, url: str, payload) -> None:
        self.routes[url] = json.dumps(payload).encode("utf-8")

    def add_bytes(self, url: str, body: bytes) -> None:
        self.routes[url] = body

    def add_status(self, url: str, status: int) -> None:
        self.routes[url] = status

    def add_exception(self, url: str, exc: Exception) -> None:
        self.routes[url] = exc

    def calls_to(self, url: str) -> int:
        return sum(1 for request in self.requests if request.full_url == url)

    def urlopen(self, request):
        with self._lock:
            self.requests.append(request)
        url = request.full_url
        if url not in self.routes:
            raise URLError(f"no route for {url}")
        route = self.routes[url]
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            raise HTTPError(url, route, "fake status", Message(), None)
        return FakeResponse(route)


def build_record(item_id: str = "item-1", assets: dict | None = None, links: list | None = None) -> dict:
    """Build a minimal STAC item payload."""
    return {
        "type": "Feature",
        "stac_version": "1.0.0",
        "id": item_id,
        "collection": "test-collection",
        "geometry": None,
        "properties": {"datetime": "2023-01-01T00:00:00Z"},
        "assets": assets if assets is not None else {},
        "links": links
        if links is not None
        else [
            {"rel": "self", "href": f"{API_URL}/collections/test-collection/items/{item_id}", "type": "application/geo+json"},
            {"rel": "collection", "href": f"{API_URL}/collections/test-collection", "type": "application/json"},
        ],
    }


#===============================================================================
# pytest custom config------------
#===============================================================================


def pytest_runtest_teardown(item, nextitem):
    """Custom teardown message."""
    test_name = item.name
    print(f"\n{'='*20} Test completed: {test_name} {'='*20}\n\n\n")


def pytest_report_header(config):
    """Show pytest invocation arguments in the test header."""
    return f"pytest arguments: {' '.join(config.invocation_params.args)}"


# -------------------
# ----- Fixtures -----
# -------------------
@pytest.fixture(scope="session")
def logger():
    """Simple logger fixture for the function under test."""
    log = logging.getLogger("pytest")
    log.setLevel(logging.DEBUG)
    # keep handlers minimal to avoid duplicate logs across runs
    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter("%(levelname)s:%(name)s:%(message)s")
        handler.setFormatter(formatter)
        log.addHandler(handler)
    return log


@pytest.fixture(autouse=True)
def isolated_endpoints(monkeypatch: pytest.MonkeyPatch):
    """Point endpoint resolution at test hosts and clear the subscription key."""
    monkeypatch.setenv("PCDOWNLOAD_API_URL", API_URL)
    monkeypatch.setenv("PCDOWNLOAD_TOKEN_URL", TOKEN_URL)
    monkeypatch.delenv("PC_SDK_SUBSCRIPTION_KEY", raising=False)


@pytest.fixture(scope="function")
def fake_http(monkeypatch: pytest.MonkeyPatch) -> FakeHttp:
    """Route all pcdownload HTTP traffic to an in-memory fake."""
    fake = FakeHttp()
    monkeypatch.setattr("pcdownload.transport.urlopen", fake.urlopen)
    return fake
