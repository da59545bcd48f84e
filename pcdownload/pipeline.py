"""Download one STAC item and its assets to a local directory."""

import logging
from dataclasses import dataclass
from pathlib import Path

from pcdownload.download import DownloadFailure, DownloadOutcome, DownloadSuccess, download_all
from pcdownload.endpoints import item_url
from pcdownload.errors import MalformedUrlError, TokenFetchError
from pcdownload.records import SKIPPED_ASSET_KEYS, fetch_record, reconcile, record_path, write_record
from pcdownload.signing import TokenCache


@dataclass(frozen=True)
class ItemDownloadResult:
    """Structured output for one item download."""

    record_fp: Path
    record: dict
    downloaded: list[str]
    failed: dict[str, str]


def sign_assets(
    assets: dict[str, dict],
    token_cache: TokenCache,
    *,
    fail_fast: bool = False,
    logger=None,
) -> tuple[dict[str, dict], dict[str, DownloadFailure]]:
    """Sign every downloadable asset sequentially.

    Returns the signed assets and, unless ``fail_fast`` is set, the failures
    for assets that could not be signed.
    """
    log = logger or logging.getLogger(__name__)
    signed: dict[str, dict] = {}
    failures: dict[str, DownloadFailure] = {}
    for key, asset in assets.items():
        if key in SKIPPED_ASSET_KEYS:
            log.debug(f"skipping asset '{key}'")
            continue
        try:
            signed[key] = token_cache.sign_asset(asset)
        except (MalformedUrlError, TokenFetchError) as err:
            if fail_fast:
                raise
            log.debug(f"signing failed for asset '{key}'", exc_info=True)
            failures[key] = DownloadFailure(key=key, error=err)
    return signed, failures


def download_item(
    *,
    collection_id: str,
    item_id: str,
    directory: str | Path | None = None,
    api_url: str | None = None,
    token_url: str | None = None,
    fail_fast_signing: bool = False,
    show_progress: bool = False,
    logger=None,
) -> ItemDownloadResult:
    """Fetch an item, sign and download its assets, and write the rewritten item."""
    log = logger or logging.getLogger(__name__)
    directory = Path(directory).expanduser() if directory is not None else Path.cwd()
    remote_url = item_url(collection_id, item_id, api_url=api_url)

    log.info(f"[1/3] getting item\n    {remote_url}")
    record = fetch_record(remote_url, logger=log)

    log.info(f"[2/3] signing {len(record['assets']):,} asset href(s)")
    token_cache = TokenCache(token_url=token_url, logger=log)
    signed, signing_failures = sign_assets(
        record["assets"],
        token_cache,
        fail_fast=fail_fast_signing,
        logger=log,
    )
    log.debug(f"issued {token_cache.fetch_count:,} SAS token request(s)")

    log.info(f"[3/3] downloading {len(signed):,} asset(s)")
    outcomes: dict[str, DownloadOutcome] = dict(signing_failures)
    outcomes.update(download_all(signed, directory, show_progress=show_progress, logger=log))

    # download_all created and resolved the directory.
    directory = directory.resolve()
    rewritten = reconcile(
        record,
        outcomes,
        remote_url,
        record_fp=record_path(record, directory),
        logger=log,
    )
    record_fp = write_record(rewritten, directory, logger=log)

    downloaded = sorted(key for key, outcome in outcomes.items() if isinstance(outcome, DownloadSuccess))
    failed = {key: outcome.message for key, outcome in outcomes.items() if isinstance(outcome, DownloadFailure)}
    if failed:
        log.warning(f"{len(failed):,} of {len(outcomes):,} asset(s) failed: {', '.join(sorted(failed))}")
    return ItemDownloadResult(record_fp=record_fp, record=rewritten, downloaded=downloaded, failed=failed)
