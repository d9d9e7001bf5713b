"""Backend adapters and the shared base they are built on."""

from awos.storage.base import AbstractClient
from awos.storage.bucket import (
    BucketResolver,
    FixedBucketResolver,
    PrefixBucketResolver,
    ShardBucketResolver,
)
from awos.storage.compression import Compressor

__all__ = [
    "AbstractClient",
    "BucketResolver",
    "Compressor",
    "FixedBucketResolver",
    "PrefixBucketResolver",
    "ShardBucketResolver",
]
