"""Single-request HTTP download built on the naming and integrity helpers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from grabfile.download._manifest import as_digest, new_hasher, raise_mismatch
from grabfile.download._metadata import ResponseMetadata
from grabfile.download._transfer import (
    CancelSignal,
    FanOutSink,
    HashSink,
    copy_stream,
)
from grabfile.download._utils import mkdirp, resolve_destination, set_last_modified
from grabfile.errors import TransferCancelled

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadResult:
    path: Path
    bytes_written: int = 0
    digest: bytes | None = None
    skipped: bool = False


def download(
    client: httpx.Client,
    url: str,
    dest: str | Path,
    *,
    force: bool = False,
    cancel: CancelSignal | None = None,
    algorithm: str | Any | None = None,
    expected_checksum: bytes | str | None = None,
    delete_on_error: bool = False,
) -> DownloadResult:
    """Download ``url`` into ``dest`` (a directory or a file path).

    The filename comes from the response when ``dest`` is a directory. An
    existing file is left alone unless ``force`` is set. When ``algorithm``
    is given the digest is computed while the body is written; with
    ``expected_checksum`` it is verified, raising ChecksumMismatch on a
    difference. A transfer that is cancelled or fails removes its partial file.
    """
    if expected_checksum is not None and algorithm is None:
        raise ValueError("expected_checksum requires an algorithm")

    with client.stream("GET", url) as resp:
        resp.raise_for_status()
        meta = ResponseMetadata.from_response(resp)
        target = resolve_destination(dest, meta)
        if target.exists() and not force:
            logger.debug("Skipping (exists): %s", target)
            return DownloadResult(path=target, skipped=True)

        mkdirp(target)
        hash_sink = HashSink(new_hasher(algorithm)) if algorithm is not None else None
        logger.info("Downloading %s -> %s", url, target)
        try:
            with open(target, "wb") as f:
                sink = FanOutSink(f, hash_sink) if hash_sink is not None else f
                written = copy_stream(resp.iter_bytes(), sink, cancel=cancel)
        except TransferCancelled:
            logger.warning("Download cancelled, removing partial file %s", target)
            target.unlink(missing_ok=True)
            raise
        except BaseException:
            logger.warning("Download of %s failed, removing partial file %s", url, target)
            target.unlink(missing_ok=True)
            raise

    set_last_modified(meta, target)

    digest = hash_sink.digest() if hash_sink is not None else None
    if expected_checksum is not None and digest is not None:
        want = as_digest(expected_checksum)
        if digest != want:
            raise_mismatch(target, want, digest, delete_on_error=delete_on_error)
    return DownloadResult(path=target, bytes_written=written, digest=digest)
