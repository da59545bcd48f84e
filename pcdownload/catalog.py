"""Read-only STAC lookups for items and collections."""

import logging

from pcdownload.endpoints import resolve_api_url


log = logging.getLogger(__name__)


def _open_client(api_url: str | None = None):
    """Open a STAC API client for the configured endpoint."""
    try:
        from pystac_client import Client
    except ImportError as err:  # pragma: no cover - guarded by runtime dependency.
        raise RuntimeError("pystac_client is required for catalog lookups") from err

    resolved_url = resolve_api_url(api_url)
    log.debug(f"opening STAC API\n    {resolved_url}")
    return Client.open(resolved_url)


def get_collection(collection_id: str, *, api_url: str | None = None) -> dict:
    """Return one STAC collection as a JSON-ready dictionary."""
    assert collection_id, "collection_id cannot be empty"
    collection = _open_client(api_url).get_collection(collection_id)
    return collection.to_dict(transform_hrefs=False)


def get_item(collection_id: str, item_id: str, *, api_url: str | None = None) -> dict:
    """Return one STAC item as a JSON-ready dictionary."""
    assert item_id, "item_id cannot be empty"
    collection = _open_client(api_url).get_collection(collection_id)
    item = collection.get_item(item_id)
    if item is None:
        raise LookupError(f"item '{item_id}' not found in collection '{collection_id}'")
    return item.to_dict(transform_hrefs=False)
