"""SAS signing of asset hrefs that live in private Azure Blob Storage."""

import logging
import threading
from dataclasses import dataclass
from urllib.error import URLError
from urllib.parse import parse_qsl, urlsplit

from pcdownload.endpoints import get_subscription_key, token_request_url
from pcdownload.errors import MalformedUrlError, TokenFetchError
from pcdownload.transport import get_json


BLOB_STORAGE_SUFFIX = ".blob.core.windows.net"
PUBLIC_ASSET_HOSTS = frozenset({"ai4edatasetspublicassets.blob.core.windows.net"})
SAS_QUERY_KEYS = frozenset({"st", "se", "sp"})

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    """One Azure Blob Storage container."""

    account: str
    name: str

    @property
    def key(self) -> str:
        return f"{self.account}/{self.name}"


def classify(url: str) -> Container | None:
    """Return the container an href needs a token for, or None when no signing applies."""
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
    except ValueError as err:
        raise MalformedUrlError(f"unable to parse asset href '{url}' ({err})") from err

    if not host or not host.endswith(BLOB_STORAGE_SUFFIX) or host in PUBLIC_ASSET_HOSTS:
        return None

    # Already-signed hrefs carry SAS parameters in the query.
    query_keys = {key for key, _ in parse_qsl(parsed.query, keep_blank_values=True)}
    if query_keys & SAS_QUERY_KEYS:
        return None

    account = host.split(".")[0]
    path_parts = parsed.path.split("/")
    container_name = path_parts[1] if len(path_parts) > 1 else ""
    if not account or not container_name:
        raise MalformedUrlError(f"unable to resolve storage account/container from '{url}'")
    return Container(account=account, name=container_name)


def sign(href: str, token: str) -> str:
    """Append a SAS token to an href.

    The href is assumed to carry no query; one that does ends up with two '?'.
    """
    return f"{href}?{token}"


class TokenCache:
    """Per-container SAS token cache.

    Tokens are fetched on first use of a container and reused for the lifetime
    of the cache. Entries never expire.
    """

    def __init__(self, token_url: str | None = None, subscription_key: str | None = None, logger=None):
        self.token_url = token_url
        self.subscription_key = subscription_key if subscription_key is not None else get_subscription_key()
        self.log = logger or log
        self.fetch_count = 0
        self._tokens: dict[str, str] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._tokens)

    def __contains__(self, key: str) -> bool:
        with self._registry_lock:
            return key in self._tokens

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def _fetch_token(self, container: Container) -> str:
        request_url = token_request_url(container.account, container.name, token_url=self.token_url)
        headers = {"Ocp-Apim-Subscription-Key": self.subscription_key} if self.subscription_key else None
        self.log.debug(f"requesting SAS token for container '{container.key}'")
        with self._registry_lock:
            self.fetch_count += 1
        try:
            payload = get_json(request_url, headers=headers)
        except URLError as err:
            # HTTPError is a URLError subclass and carries the status code.
            raise TokenFetchError(f"failed to fetch SAS token from '{request_url}' ({err})") from err
        except ValueError as err:
            raise TokenFetchError(f"unparseable SAS token response from '{request_url}' ({err})") from err

        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise TokenFetchError(f"SAS token response from '{request_url}' has no 'token' field")
        return token

    def get_token(self, container: Container) -> str:
        """Return the cached token for a container, fetching it on first use."""
        key = container.key
        with self._lock_for(key):
            with self._registry_lock:
                token = self._tokens.get(key)
            if token is not None:
                self.log.debug(f"SAS token cache hit for '{key}'")
                return token
            token = self._fetch_token(container)
            with self._registry_lock:
                self._tokens[key] = token
            return token

    def sign_href(self, href: str) -> str:
        """Return the href with a SAS token appended when its container requires one."""
        container = classify(href)
        if container is None:
            return href
        return sign(href, self.get_token(container))

    def sign_asset(self, asset: dict) -> dict:
        """Return a copy of the asset with a signed href; unsigned assets are returned as is."""
        href = asset.get("href")
        if not isinstance(href, str) or not href:
            raise MalformedUrlError(f"asset has no usable href: {asset!r}")
        signed_href = self.sign_href(href)
        if signed_href == href:
            return asset
        return {**asset, "href": signed_href}
