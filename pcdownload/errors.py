"""Exception types raised while signing, downloading, and rewriting items."""


class PcDownloadError(Exception):
    """Base class for pcdownload errors."""


class MalformedUrlError(PcDownloadError, ValueError):
    """An asset href cannot be parsed or split into account/container."""


class TokenFetchError(PcDownloadError, RuntimeError):
    """The SAS token endpoint failed or returned an unusable body."""


class DownloadError(PcDownloadError, RuntimeError):
    """One asset could not be fetched or written to disk."""


class RecordFetchError(PcDownloadError, RuntimeError):
    """The STAC item could not be retrieved."""


class RecordWriteError(PcDownloadError, OSError):
    """The rewritten STAC item could not be written to disk."""
