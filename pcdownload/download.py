"""Concurrent asset downloads with per-asset outcomes."""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit

from tqdm import tqdm

from pcdownload.errors import DownloadError, MalformedUrlError
from pcdownload.transport import open_url


CHUNK_SIZE = 1024 * 1024
log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadSuccess:
    """One asset written to disk."""

    key: str
    href: str
    path: Path
    num_bytes: int


@dataclass(frozen=True)
class DownloadFailure:
    """One asset that could not be downloaded."""

    key: str
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


DownloadOutcome = DownloadSuccess | DownloadFailure


def asset_file_name(href: str) -> str:
    """Return the local file name for an href: its last path segment, query ignored."""
    file_name = urlsplit(href).path.rsplit("/", 1)[-1]
    if not file_name:
        raise MalformedUrlError(f"unable to derive a file name from '{href}'")
    return file_name


def _stream_response_to_destination(response, destination: Path, progress_bar, chunk_size: int = CHUNK_SIZE) -> int:
    """Stream an HTTP response to disk, advancing the progress bar per chunk."""
    downloaded = 0
    with destination.open("wb") as stream:
        chunk = response.read(chunk_size)
        while chunk:
            stream.write(chunk)
            downloaded += len(chunk)
            progress_bar.update(len(chunk))
            chunk = response.read(chunk_size)
    return downloaded


def download_asset(
    key: str,
    href: str,
    directory: Path,
    *,
    position: int = 0,
    total: int = 1,
    show_progress: bool = False,
    logger=None,
) -> DownloadSuccess:
    """Download one signed asset href into directory."""
    log = logger or logging.getLogger(__name__)
    file_name = asset_file_name(href)
    destination = directory / file_name
    # Tasks sharing a file name each stream to their own partial file; last rename wins.
    part_fp = destination.with_name(f"{file_name}.{position}.part")

    try:
        response = open_url(href)
    except HTTPError as err:
        raise DownloadError(f"failed to download asset '{key}' (HTTP {err.code})") from err
    except URLError as err:
        raise DownloadError(f"failed to download asset '{key}' ({err.reason})") from err

    # Parse response size so progress can report percent complete.
    total_bytes = response.headers.get("Content-Length")
    try:
        total_size = int(total_bytes) if total_bytes else None
    except ValueError:
        total_size = None

    # Stream to a partial file first and rename on success.
    try:
        with response, tqdm(
            total=total_size,
            desc=f"[{position + 1}/{total}] {file_name}",
            unit="B",
            unit_scale=True,
            unit_divisor=1024,
            position=position,
            disable=not show_progress,
        ) as progress_bar:
            num_bytes = _stream_response_to_destination(response, part_fp, progress_bar)
        part_fp.replace(destination)
    except OSError as err:
        raise DownloadError(f"failed to write asset '{key}' to\n    {destination}\n({err})") from err
    finally:
        if part_fp.is_file():
            part_fp.unlink()

    log.debug(f"downloaded {num_bytes:,} bytes for asset '{key}' to\n    {destination}")
    return DownloadSuccess(key=key, href=f"./{file_name}", path=destination, num_bytes=num_bytes)


def download_all(
    assets: dict[str, dict],
    directory: str | Path,
    *,
    show_progress: bool = False,
    logger=None,
) -> dict[str, DownloadOutcome]:
    """Download every asset concurrently and return one outcome per asset key.

    Every task runs to completion; a failure in one asset never cancels the
    others. The returned mapping has exactly the keys of ``assets``.
    """
    log = logger or logging.getLogger(__name__)
    directory = Path(directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    directory = directory.resolve()
    if not assets:
        log.info("no assets to download")
        return {}

    log.info(f"downloading {len(assets):,} asset(s) to\n    {directory}")
    outcomes: dict[str, DownloadOutcome] = {}
    total = len(assets)

    # One worker per asset so every download starts immediately.
    with ThreadPoolExecutor(max_workers=total) as executor:
        future_to_key = {}
        for position, (key, asset) in enumerate(assets.items()):
            future = executor.submit(
                download_asset,
                key,
                asset.get("href", ""),
                directory,
                position=position,
                total=total,
                show_progress=show_progress,
                logger=log,
            )
            future_to_key[future] = key

        for future, key in future_to_key.items():
            try:
                outcomes[key] = future.result()
            except Exception as err:
                log.debug(f"download task for asset '{key}' failed", exc_info=True)
                outcomes[key] = DownloadFailure(key=key, error=err)

    assert set(outcomes) == set(assets), "download outcomes must cover every asset"
    return outcomes
