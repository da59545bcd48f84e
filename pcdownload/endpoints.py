"""Planetary Computer endpoint configuration and URL builders."""

import logging
import os


API_URL = "https://planetarycomputer.microsoft.com/api/stac/v1"
TOKEN_URL = "https://planetarycomputer.microsoft.com/api/sas/v1/token"

API_URL_ENV = "PCDOWNLOAD_API_URL"
TOKEN_URL_ENV = "PCDOWNLOAD_TOKEN_URL"
SUBSCRIPTION_KEY_ENV = "PC_SDK_SUBSCRIPTION_KEY"

log = logging.getLogger(__name__)


def _resolve_base_url(explicit: str | None, env_var: str, default: str) -> str:
    """Resolve one base URL from explicit value, then environment, then default."""
    if explicit:
        return explicit.rstrip("/")
    from_env = os.environ.get(env_var)
    if from_env:
        log.debug(f"using ${env_var}={from_env}")
        return from_env.rstrip("/")
    return default


def resolve_api_url(api_url: str | None = None) -> str:
    """Return the STAC API base URL."""
    return _resolve_base_url(api_url, API_URL_ENV, API_URL)


def resolve_token_url(token_url: str | None = None) -> str:
    """Return the SAS token endpoint base URL."""
    return _resolve_base_url(token_url, TOKEN_URL_ENV, TOKEN_URL)


def get_subscription_key() -> str | None:
    """Return the optional Planetary Computer subscription key from the environment."""
    key = os.environ.get(SUBSCRIPTION_KEY_ENV, "").strip()
    if key:
        log.debug(f"using subscription key from ${SUBSCRIPTION_KEY_ENV}")
        return key
    return None


def item_url(collection_id: str, item_id: str, api_url: str | None = None) -> str:
    """Build the URL of one STAC item."""
    assert collection_id, "collection_id cannot be empty"
    assert item_id, "item_id cannot be empty"
    return f"{resolve_api_url(api_url)}/collections/{collection_id}/items/{item_id}"


def token_request_url(account: str, container_name: str, token_url: str | None = None) -> str:
    """Build the SAS token request URL for one storage container."""
    return f"{resolve_token_url(token_url)}/{account}/{container_name}"
