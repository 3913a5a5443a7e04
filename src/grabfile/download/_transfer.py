"""Chunked, cancellable streaming copy shared by downloads and checksums.

A copy moves bytes from a source (a binary reader or an iterable of byte
chunks, such as ``httpx.Response.iter_bytes()``) into a sink exposing
``write``. The cancel signal is polled before every chunk, so a running copy
stops within one chunk of the signal being set.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, BinaryIO, Protocol

from grabfile.config import CHUNK_SIZE
from grabfile.errors import TransferCancelled


class Sink(Protocol):
    def write(self, data: bytes, /) -> Any: ...


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


class HashSink:
    """Adapts a hash object (``update``/``digest``) to the sink interface."""

    def __init__(self, hasher: Any) -> None:
        self.hasher = hasher

    def write(self, data: bytes) -> int:
        self.hasher.update(data)
        return len(data)

    def digest(self) -> bytes:
        return self.hasher.digest()


class FanOutSink:
    """Writes every chunk to each of its sinks, in order."""

    def __init__(self, *sinks: Sink) -> None:
        self.sinks = sinks

    def write(self, data: bytes) -> int:
        for sink in self.sinks:
            sink.write(data)
        return len(data)


def _iter_chunks(source: BinaryIO | Iterable[bytes], chunk_size: int) -> Iterator[bytes]:
    read = getattr(source, "read", None)
    if read is not None:
        return iter(lambda: read(chunk_size), b"")
    return iter(source)


def copy_stream(
    source: BinaryIO | Iterable[bytes],
    sink: Sink,
    *,
    cancel: CancelSignal | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy ``source`` into ``sink`` chunk by chunk and return the byte count.

    Raises TransferCancelled as soon as ``cancel`` is observed set; errors
    from reading or writing propagate unchanged.
    """
    chunks = _iter_chunks(source, chunk_size)
    written = 0
    while True:
        if cancel is not None and cancel.is_set():
            raise TransferCancelled(f"copy cancelled after {written} bytes")
        chunk = next(chunks, None)
        if chunk is None:
            return written
        if not chunk:
            continue
        sink.write(chunk)
        written += len(chunk)
