"""
awos - one async interface over S3-compatible storage and Alibaba Cloud OSS.

Exports the AWOS facade, the build() factory and the option/result types.
"""

from awos._core import AWOS, MAX_DELETE_KEYS, build
from awos.config import ClientOptions, CompressOptions, validate_options
from awos.errors import (
    AWOSError,
    ConfigurationError,
    InvalidArgumentError,
    InvalidOptionsError,
)
from awos.storage.base import AbstractClient
from awos.types import (
    CopyObjectOptions,
    GetBufferedObjectResponse,
    GetObjectResponse,
    HeadOptions,
    ListObjectOptions,
    ListObjectOutput,
    ListObjectV2Options,
    ListObjectV2Output,
    ObjectDescriptor,
    ObjectHeaders,
    PutObjectOptions,
    SignatureUrlOptions,
)

__all__ = [
    "AWOS",
    "AWOSError",
    "AbstractClient",
    "ClientOptions",
    "CompressOptions",
    "ConfigurationError",
    "CopyObjectOptions",
    "GetBufferedObjectResponse",
    "GetObjectResponse",
    "HeadOptions",
    "InvalidArgumentError",
    "InvalidOptionsError",
    "ListObjectOptions",
    "ListObjectOutput",
    "ListObjectV2Options",
    "ListObjectV2Output",
    "MAX_DELETE_KEYS",
    "ObjectDescriptor",
    "ObjectHeaders",
    "PutObjectOptions",
    "SignatureUrlOptions",
    "build",
    "validate_options",
]
