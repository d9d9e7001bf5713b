"""Transparent payload compression."""

from __future__ import annotations

import gzip
import zlib
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class Codec:
    name: str
    compress: Callable[[bytes], bytes]
    decompress: Callable[[bytes], bytes]


CODECS: dict[str, Codec] = {
    "gzip": Codec("gzip", gzip.compress, gzip.decompress),
    "deflate": Codec("deflate", zlib.compress, zlib.decompress),
}


def codec_for_encoding(content_encoding: str | None) -> Codec | None:
    """Return the codec named by a Content-Encoding value, if any."""
    if not content_encoding:
        return None
    token = content_encoding.split(",")[0].strip().lower()
    for name, codec in CODECS.items():
        if token.startswith(name):
            return codec
    return None


class Compressor:
    """Applies one configured codec on write and reverses any known codec on read.

    The write decision uses the size threshold; the read decision uses only
    the Content-Encoding tag the adapter reports, so objects written by a
    client with a different threshold (or no compression at all) are still
    read correctly.
    """

    def __init__(self, codec: str | None = None, limit: int = 0):
        self._codec = CODECS[codec] if codec else None
        self._limit = limit

    @property
    def encoding(self) -> str | None:
        """Content-Encoding marker recorded for compressed payloads."""
        return self._codec.name if self._codec else None

    def should_compress(self, data: bytes) -> bool:
        return self._codec is not None and len(data) >= self._limit

    def compress(self, data: bytes) -> bytes:
        if self._codec is None:
            raise RuntimeError("compression is not configured")
        return self._codec.compress(data)

    def decode(self, data: bytes, content_encoding: str | None) -> bytes:
        """Reverse the encoding named by ``content_encoding``."""
        codec = codec_for_encoding(content_encoding)
        if codec is None:
            return data
        return codec.decompress(data)
