"""File checksums and download manifests."""
from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from grabfile.config import CHECKSUM_ALGORITHM, CHUNK_SIZE
from grabfile.download._transfer import CancelSignal, HashSink, copy_stream
from grabfile.download._utils import mkdirp
from grabfile.errors import ChecksumMismatch

logger = logging.getLogger(__name__)


def new_hasher(algorithm: str | Any) -> Any:
    """Return a fresh hash object for a hashlib name, or ``algorithm`` itself.

    Anything exposing ``update`` and ``digest`` is accepted as-is.
    """
    if isinstance(algorithm, str):
        try:
            return hashlib.new(algorithm)
        except ValueError as e:
            raise ValueError(f"Unsupported checksum algorithm {algorithm!r}") from e
    return algorithm


def checksum(
    path: str | Path,
    algorithm: str | Any = CHECKSUM_ALGORITHM,
    *,
    cancel: CancelSignal | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> bytes:
    """Return the digest of the full contents of ``path``.

    The file is streamed through the same cancellable copy used for
    downloads. Cancellation raises TransferCancelled and read errors
    propagate; the file is closed either way and no partial digest is
    returned.
    """
    sink = HashSink(new_hasher(algorithm))
    with open(path, "rb") as f:
        copy_stream(f, sink, cancel=cancel, chunk_size=chunk_size)
    return sink.digest()


def file_sha256(path: str | Path) -> str:
    """Hex SHA-256 of a file."""
    return checksum(path, "sha256").hex()


def as_digest(expected: bytes | str) -> bytes:
    if isinstance(expected, str):
        return bytes.fromhex(expected.strip())
    return expected


def verify_checksum(
    path: str | Path,
    algorithm: str | Any,
    expected: bytes | str,
    *,
    delete_on_error: bool = False,
    cancel: CancelSignal | None = None,
) -> bytes:
    """Check ``path`` against an expected digest (bytes or hex string).

    Returns the digest on success. On mismatch raises ChecksumMismatch,
    removing the file first when ``delete_on_error`` is set.
    """
    path = Path(path)
    want = as_digest(expected)
    got = checksum(path, algorithm, cancel=cancel)
    if got != want:
        raise_mismatch(path, want, got, delete_on_error=delete_on_error)
    return got


def raise_mismatch(
    path: Path, expected: bytes, actual: bytes, *, delete_on_error: bool
) -> None:
    logger.warning(
        "Checksum mismatch for %s: expected %s, got %s",
        path,
        expected.hex(),
        actual.hex(),
    )
    if delete_on_error:
        path.unlink(missing_ok=True)
    raise ChecksumMismatch(path, expected, actual)


def write_manifest(
    manifest_path: Path,
    source_url: str,
    files_with_hashes: list[tuple[Path, str | None]],
    *,
    base_dir: Path,
    sources: list[str] | None = None,
) -> None:
    """Write a JSON manifest listing downloaded files and their hashes.

    File paths are stored relative to ``base_dir`` when possible.
    """
    files: list[dict[str, Any]] = []
    for path, file_hash in files_with_hashes:
        try:
            rel = path.relative_to(base_dir).as_posix()
        except ValueError:
            rel = path.as_posix()
        try:
            size: int | None = path.stat().st_size
        except OSError:
            size = None
        files.append({"path": rel, "file_hash": file_hash, "size": size})

    manifest = {
        "source_url": source_url,
        "downloaded_at": datetime.now(timezone.utc).isoformat(),
        "sources": sources or [source_url],
        "files": files,
    }
    mkdirp(manifest_path)
    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
