"""grabfile: integrity and naming helpers for file downloads."""
from grabfile.download import (
    DownloadResult,
    ResponseMetadata,
    checksum,
    download,
    guess_filename,
    mkdirp,
    sanitize_filename,
    set_last_modified,
)
from grabfile.errors import (
    ChecksumMismatch,
    GrabError,
    NoFilenameAvailable,
    TransferCancelled,
)

__all__ = [
    "ChecksumMismatch",
    "DownloadResult",
    "GrabError",
    "NoFilenameAvailable",
    "ResponseMetadata",
    "TransferCancelled",
    "checksum",
    "download",
    "guess_filename",
    "mkdirp",
    "sanitize_filename",
    "set_last_modified",
]
