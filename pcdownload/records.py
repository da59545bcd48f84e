"""Fetch STAC items and rewrite them to reference downloaded assets."""

import copy
import json
import logging
from pathlib import Path
from urllib.error import URLError

from pcdownload.download import DownloadFailure, DownloadOutcome, DownloadSuccess
from pcdownload.errors import RecordFetchError, RecordWriteError
from pcdownload.transport import get_json


GEOJSON_MEDIA_TYPE = "application/geo+json"
# Derived references that are not downloadable files; never written back.
SKIPPED_ASSET_KEYS = frozenset({"tilejson"})
log = logging.getLogger(__name__)


def fetch_record(url: str, logger=None) -> dict:
    """Fetch one STAC item as a JSON object."""
    log = logger or logging.getLogger(__name__)
    # Raw JSON keeps every field verbatim for the rewrite; no pystac round-trip.
    try:
        record = get_json(url)
    except URLError as err:
        raise RecordFetchError(f"failed to fetch item from '{url}' ({err})") from err
    except ValueError as err:
        raise RecordFetchError(f"item response from '{url}' is not valid JSON ({err})") from err

    if not isinstance(record, dict) or "id" not in record:
        raise RecordFetchError(f"item response from '{url}' is not a STAC item")
    if not isinstance(record.get("assets", {}), dict):
        raise RecordFetchError(f"item '{record['id']}' field 'assets' must be an object")
    record.setdefault("assets", {})
    record.setdefault("links", [])
    log.debug(f"fetched item '{record['id']}' with {len(record['assets']):,} asset(s)")
    return record


def record_path(record: dict, directory: str | Path) -> Path:
    """Return the path the rewritten item is written to."""
    return Path(directory) / f"{record['id']}.json"


def _build_link(rel: str, href: str) -> dict:
    return {"rel": rel, "href": href, "type": GEOJSON_MEDIA_TYPE}


def reconcile(
    record: dict,
    outcomes: dict[str, DownloadOutcome],
    record_url: str,
    *,
    record_fp: str | Path,
    logger=None,
) -> dict:
    """Merge download outcomes into a copy of the item and replace its provenance links.

    Successful assets point at their local copy; failed and skipped assets
    are dropped. All ``self`` links are replaced by one pointing at ``record_fp``, and a
    ``canonical`` link to ``record_url`` is appended after it.
    """
    log = logger or logging.getLogger(__name__)
    record = copy.deepcopy(record)
    assets = record.setdefault("assets", {})
    for key in SKIPPED_ASSET_KEYS:
        assets.pop(key, None)

    for key, outcome in outcomes.items():
        if isinstance(outcome, DownloadSuccess):
            assets[key]["href"] = outcome.href
        elif isinstance(outcome, DownloadFailure):
            assets.pop(key, None)
            log.warning(f"error when downloading asset '{key}': {outcome.message}")
        else:
            raise TypeError(f"unsupported outcome for asset '{key}': {type(outcome)!r}")

    links = [link for link in record.get("links", []) if link.get("rel") != "self"]
    links.append(_build_link("self", Path(record_fp).as_posix()))
    links.append(_build_link("canonical", record_url))
    record["links"] = links
    return record


def write_record(record: dict, directory: str | Path, logger=None) -> Path:
    """Write the item as pretty-printed JSON to ``<directory>/<id>.json``."""
    log = logger or logging.getLogger(__name__)
    out_fp = record_path(record, directory)
    try:
        out_fp.write_text(json.dumps(record, indent=2), encoding="utf-8")
    except OSError as err:
        raise RecordWriteError(f"failed to write item to\n    {out_fp}\n({err})") from err
    log.info(f"wrote item to\n    {out_fp}")
    return out_fp
