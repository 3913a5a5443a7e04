"""Exceptions raised by grabfile.

Filesystem failures are not wrapped: they surface as the ``OSError`` the
operating system raised.
"""
from __future__ import annotations

from pathlib import Path


class GrabError(Exception):
    """Base class for recoverable grabfile errors."""


class NoFilenameAvailable(GrabError):
    """No safe filename could be derived from the response or candidate string."""


class TransferCancelled(GrabError):
    """A streaming copy observed its cancellation signal and stopped."""


class ChecksumMismatch(GrabError):
    """A file's digest does not match the expected value."""

    def __init__(self, path: Path, expected: bytes, actual: bytes) -> None:
        self.path = path
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"checksum mismatch for {path}: expected {expected.hex()}, got {actual.hex()}"
        )
