"""Download core: safe naming, directory provisioning, timestamps and checksums.

The helpers here are what a download loop calls around the byte transfer.
Network orchestration stays with the caller; :func:`download` is a thin
single-request wrapper around the same helpers.
"""
from grabfile.download._manifest import (
    checksum,
    file_sha256,
    verify_checksum,
    write_manifest,
)
from grabfile.download._metadata import ResponseMetadata
from grabfile.download._transfer import FanOutSink, HashSink, copy_stream
from grabfile.download._utils import (
    guess_filename,
    mkdirp,
    resolve_destination,
    sanitize_filename,
    set_last_modified,
)
from grabfile.download.fetch import DownloadResult, download

__all__ = [
    "DownloadResult",
    "FanOutSink",
    "HashSink",
    "ResponseMetadata",
    "checksum",
    "copy_stream",
    "download",
    "file_sha256",
    "guess_filename",
    "mkdirp",
    "resolve_destination",
    "sanitize_filename",
    "set_last_modified",
    "verify_checksum",
    "write_manifest",
]
