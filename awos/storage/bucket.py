"""Bucket resolution strategies: map an object key to a bucket name."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from awos.config import ClientOptions


class BucketResolver(ABC):
    """Pure, deterministic key -> bucket mapping."""

    @abstractmethod
    def resolve(self, key: str) -> str:
        """Return the bucket that holds ``key``."""
        ...


class FixedBucketResolver(BucketResolver):
    """Every key lives in the same bucket."""

    def __init__(self, bucket: str):
        self._bucket = bucket

    def resolve(self, key: str) -> str:
        return self._bucket


class PrefixBucketResolver(BucketResolver):
    """The bucket is the key segment before the first separator.

    ``"avatars/u1.png"`` resolves to ``"avatars"``.
    """

    def __init__(self, separator: str = "/"):
        self._separator = separator

    def resolve(self, key: str) -> str:
        bucket, sep, _ = key.partition(self._separator)
        if not sep or not bucket:
            raise ValueError(
                f"key {key!r} has no bucket segment before {self._separator!r}"
            )
        return bucket


class ShardBucketResolver(BucketResolver):
    """Spread keys over ``{bucket}-{shard}`` buckets by the key's last character."""

    def __init__(self, bucket: str, shards: Sequence[str]):
        self._bucket = bucket
        self._shards = list(shards)

    def resolve(self, key: str) -> str:
        if not key:
            raise ValueError("cannot pick a shard for an empty key")
        shard = self._shards[ord(key[-1]) % len(self._shards)]
        return f"{self._bucket}-{shard}"


def make_resolver(options: "ClientOptions") -> BucketResolver:
    """Build the resolver named by ``options.bucket_strategy``."""
    if options.bucket_strategy == "prefix":
        return PrefixBucketResolver(options.bucket_separator)
    if options.bucket_strategy == "shard":
        return ShardBucketResolver(options.bucket, options.shards)
    return FixedBucketResolver(options.bucket)
