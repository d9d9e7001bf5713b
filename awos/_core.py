"""AWOS main class (facade pattern)."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from awos.config import ClientOptions, validate_options
from awos.errors import InvalidArgumentError
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
    PutObjectOptions,
    SignatureUrlOptions,
)

logger = logging.getLogger(__name__)

# Protocol-wide ceiling on keys per multi-delete request.
MAX_DELETE_KEYS = 1000


def build(options: ClientOptions | Mapping[str, Any]) -> AbstractClient:
    """Validate ``options`` and construct the matching backend adapter.

    Raises:
        ConfigurationError: if a required option is missing. Nothing is
            constructed in that case.
    """
    if not isinstance(options, ClientOptions):
        options = ClientOptions.from_mapping(options)
    options = validate_options(options)

    if options.storage_type == "oss":
        from awos.storage.oss import OSSClient

        return OSSClient(options)

    from awos.storage.s3 import S3Client

    return S3Client(options)


class AWOS:
    """Unified object storage facade - one adapter, chosen once.

    Args:
        options: ClientOptions, or a flat dict such as
            ``{"storage_type": "oss", "access_key_id": ..., "bucket": ...}``.

    Usage:
        storage = AWOS(ClientOptions(
            storage_type="aws",
            access_key_id="...",
            access_key_secret="...",
            bucket="assets",
            region="us-east-1",
        ))
        await storage.put("a/b.txt", "hello", PutObjectOptions(meta={"x": 1}))
        obj = await storage.get("a/b.txt", ["x"])  # None when missing
    """

    def __init__(self, options: ClientOptions | Mapping[str, Any]):
        self._client = build(options)
        logger.debug("AWOS using %s", type(self._client).__name__)

    @property
    def client(self) -> AbstractClient:
        return self._client

    async def __aenter__(self) -> "AWOS":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None

    async def get(
        self, key: str, meta_keys: Iterable[str] = ()
    ) -> GetObjectResponse | None:
        return await self._client.get(key, meta_keys)

    async def get_as_buffer(
        self, key: str, meta_keys: Iterable[str] = ()
    ) -> GetBufferedObjectResponse | None:
        return await self._client.get_as_buffer(key, meta_keys)

    async def put(
        self, key: str, data: str | bytes, options: PutObjectOptions | None = None
    ) -> None:
        return await self._client.put(key, data, options)

    async def copy(
        self, key: str, source: str, options: CopyObjectOptions | None = None
    ) -> None:
        return await self._client.copy(key, source, options)

    async def delete(self, key: str) -> None:
        return await self._client.delete(key)

    async def delete_multi(self, keys: list[str]) -> list[str]:
        """Delete up to 1000 keys sharing one bucket; returns the deleted keys.

        Raises:
            InvalidArgumentError: more than 1000 keys. No request is sent.
        """
        if len(keys) > MAX_DELETE_KEYS:
            raise InvalidArgumentError(
                f"delete_multi accepts at most {MAX_DELETE_KEYS} keys, got {len(keys)}"
            )
        return await self._client.delete_multi(keys)

    async def head(
        self, key: str, options: HeadOptions | None = None
    ) -> dict[str, str] | None:
        return await self._client.head(key, options)

    async def list_object(
        self, key: str, options: ListObjectOptions | None = None
    ) -> list[str]:
        return await self._client.list_object(key, options)

    async def list_object_v2(
        self, key: str, options: ListObjectV2Options | None = None
    ) -> list[str]:
        return await self._client.list_object_v2(key, options)

    async def list_details(
        self, key: str, options: ListObjectOptions | None = None
    ) -> ListObjectOutput:
        return await self._client.list_details(key, options)

    async def list_details_v2(
        self, key: str, options: ListObjectV2Options | None = None
    ) -> ListObjectV2Output:
        return await self._client.list_details_v2(key, options)

    async def signature_url(
        self, key: str, options: SignatureUrlOptions | None = None
    ) -> str | None:
        return await self._client.signature_url(key, options)
