"""Environment-driven settings for grabfile."""
from __future__ import annotations

import os
from pathlib import Path


def _env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


# Shared timeout for download HTTP requests (seconds)
DOWNLOAD_TIMEOUT = _env_float("GRABFILE_DOWNLOAD_TIMEOUT", 60.0)

# Bytes read per iteration of the streaming copy; cancellation is polled between chunks.
CHUNK_SIZE = _env_int("GRABFILE_CHUNK_SIZE", 32 * 1024)

CHECKSUM_ALGORITHM = os.environ.get("GRABFILE_CHECKSUM_ALGORITHM") or "sha256"

DEST_DIR = Path(os.environ.get("GRABFILE_DEST_DIR") or "downloads")
