"""Chunked gzip compression for byte streams and in-memory buffers."""

from __future__ import annotations

import io
import logging
import zlib
from typing import BinaryIO, Tuple

__all__ = [
    "COMPRESS_CHUNK_SIZE",
    "DECOMPRESS_CHUNK_SIZE",
    "DEFAULT_LEVEL",
    "compress_stream",
    "compress",
    "decompress",
]

logger = logging.getLogger(__name__)

COMPRESS_CHUNK_SIZE = 128 * 1024
DECOMPRESS_CHUNK_SIZE = 1024 * 1024
DEFAULT_LEVEL = 6

# 15 window bits; +16 writes a gzip header/trailer, +32 auto-detects gzip or zlib.
_GZIP_WBITS = 15 + 16
_AUTO_WBITS = 15 + 32
_MEM_LEVEL = 9
# Typical deflate output is about 32% of the input size.
_EXPECTED_RATIO = 0.32


def compress_stream(source: BinaryIO, dest: BinaryIO, level: int = DEFAULT_LEVEL) -> bool:
    """Compress everything readable from ``source`` into ``dest`` as gzip.

    Input is consumed in :data:`COMPRESS_CHUNK_SIZE` pieces so memory use does
    not depend on the input size. Returns ``False`` when the codec cannot be
    initialised or when reading or writing fails; nothing is retried.
    """

    try:
        deflater = zlib.compressobj(level, zlib.DEFLATED, _GZIP_WBITS, _MEM_LEVEL, zlib.Z_DEFAULT_STRATEGY)
    except (ValueError, zlib.error) as exc:
        logger.warning("Cannot initialise gzip encoder at level %s: %s", level, exc)
        return False

    try:
        while True:
            chunk = source.read(COMPRESS_CHUNK_SIZE)
            if not chunk:
                break
            dest.write(deflater.compress(chunk))
        dest.write(deflater.flush(zlib.Z_FINISH))
    except (OSError, ValueError, zlib.error) as exc:
        logger.warning("Gzip stream compression failed: %s", exc)
        return False
    return True


def compress(data: bytes, level: int = DEFAULT_LEVEL) -> Tuple[bytes, bool]:
    """Compress an in-memory buffer; empty input yields ``(b"", True)``."""

    if not data:
        return b"", True
    output = io.BytesIO()
    ok = compress_stream(io.BytesIO(data), output, level)
    if not ok:
        return b"", False
    return output.getvalue(), True


class _OutputBuffer:
    """Growable byte buffer pre-sized from an expected final length."""

    def __init__(self, expected: int) -> None:
        self._data = bytearray(max(expected, 0))
        self._length = 0

    def append(self, chunk: bytes) -> None:
        end = self._length + len(chunk)
        if end > len(self._data):
            self._data.extend(bytes(max(end - len(self._data), len(self._data))))
        self._data[self._length : end] = chunk
        self._length = end

    def getvalue(self) -> bytes:
        return bytes(self._data[: self._length])


def decompress(data: bytes) -> Tuple[bytes, bool]:
    """Inflate a gzip or zlib container, detecting the format from its header.

    Malformed, truncated or unsupported input returns ``(b"", False)``; partial
    output is never handed back. Data after the end of the first stream is
    ignored.
    """

    if not data:
        return b"", True

    try:
        inflater = zlib.decompressobj(_AUTO_WBITS)
    except zlib.error as exc:
        logger.warning("Cannot initialise gzip decoder: %s", exc)
        return b"", False

    output = _OutputBuffer(int(len(data) / _EXPECTED_RATIO))
    pending = bytes(data)
    try:
        while not inflater.eof:
            chunk = inflater.decompress(pending, DECOMPRESS_CHUNK_SIZE)
            output.append(chunk)
            pending = inflater.unconsumed_tail
            if not chunk and not pending:
                break
    except zlib.error as exc:
        logger.debug("Gzip decoding failed: %s", exc)
        return b"", False

    if not inflater.eof:
        logger.debug("Gzip input ended before the end of stream marker")
        return b"", False
    return output.getvalue(), True
