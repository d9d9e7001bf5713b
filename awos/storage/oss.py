"""Alibaba Cloud OSS object storage."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import oss2
from oss2.exceptions import NotFound, ServerError

from awos.config import ClientOptions
from awos.storage.base import AbstractClient, FetchedObject, ObjectStat
from awos.storage.compression import codec_for_encoding
from awos.types import (
    ListObjectOptions,
    ListObjectOutput,
    ListObjectV2Options,
    ListObjectV2Output,
    ObjectDescriptor,
    ObjectHeaders,
)

logger = logging.getLogger(__name__)

META_PREFIX = "x-oss-meta-"
DEFAULT_MAX_KEYS = 100


def _user_meta(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        k[len(META_PREFIX):].lower(): v
        for k, v in headers.items()
        if k.lower().startswith(META_PREFIX)
    }


def _utc(seconds: int | None) -> datetime | None:
    if seconds is None:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def _descriptors(object_list) -> list[ObjectDescriptor]:
    return [
        ObjectDescriptor(
            key=o.key,
            etag=o.etag,
            last_modified=_utc(o.last_modified),
            size=int(o.size or 0),
        )
        for o in object_list or []
    ]


class OSSClient(AbstractClient):
    """OSS adapter built on oss2.

    oss2 binds a client to one bucket, so the adapter keeps one auth and one
    HTTP session and hands out a cached ``oss2.Bucket`` per resolved bucket.
    """

    def __init__(self, options: ClientOptions):
        super().__init__(options)
        self._endpoint = options.endpoint
        self._auth, self._session = self._build_client(options)
        self._buckets: dict[str, Any] = {}
        logger.info("OSS client ready: endpoint=%s", options.endpoint)

    @staticmethod
    def _build_client(options: ClientOptions) -> tuple[Any, Any]:
        """Create the oss2 auth and shared session from validated options."""
        auth = oss2.Auth(options.access_key_id, options.access_key_secret)
        return auth, oss2.Session()

    def _bucket(self, name: str) -> Any:
        bucket = self._buckets.get(name)
        if bucket is None:
            bucket = oss2.Bucket(self._auth, self._endpoint, name, session=self._session)
            self._buckets[name] = bucket
        return bucket

    def _is_not_found(self, error: BaseException) -> bool:
        return isinstance(error, NotFound)

    def _is_transient(self, error: BaseException) -> bool:
        if isinstance(error, ServerError) and 400 <= error.status < 500:
            return error.status in (408, 429)
        return True

    async def _get_object(self, bucket: str, key: str) -> FetchedObject:
        result = await asyncio.to_thread(self._bucket(bucket).get_object, key)
        body = await asyncio.to_thread(result.read)
        content_encoding = result.headers.get("Content-Encoding")
        # requests has already inflated gzip and deflate bodies.
        if codec_for_encoding(content_encoding) is not None:
            content_encoding = None
        return FetchedObject(
            body=body,
            content_encoding=content_encoding,
            metadata=_user_meta(result.headers),
            content_type=result.content_type,
            etag=result.etag,
            content_length=result.content_length,
        )

    async def _head(self, bucket: str, key: str) -> ObjectStat:
        result = await asyncio.to_thread(self._bucket(bucket).head_object, key)
        last_modified = result.last_modified
        return ObjectStat(
            metadata=_user_meta(result.headers),
            standard={
                "content-type": result.content_type,
                "content-length": result.content_length,
                "accept-ranges": result.headers.get("Accept-Ranges"),
                "etag": result.etag,
                "last-modified": last_modified * 1000 if last_modified is not None else None,
            },
        )

    @staticmethod
    def _request_headers(
        meta: dict[str, str], content_type: str, headers: ObjectHeaders
    ) -> dict[str, str]:
        request_headers = {"Content-Type": content_type}
        if headers.cache_control:
            request_headers["Cache-Control"] = headers.cache_control
        if headers.content_disposition:
            request_headers["Content-Disposition"] = headers.content_disposition
        if headers.content_encoding:
            request_headers["Content-Encoding"] = headers.content_encoding
        for k, v in meta.items():
            request_headers[META_PREFIX + k] = v
        return request_headers

    async def _put(
        self,
        bucket: str,
        key: str,
        body: bytes,
        *,
        meta: dict[str, str],
        content_type: str,
        headers: ObjectHeaders,
    ) -> None:
        await asyncio.to_thread(
            self._bucket(bucket).put_object,
            key,
            body,
            headers=self._request_headers(meta, content_type, headers),
        )

    async def _copy(
        self,
        bucket: str,
        key: str,
        source_bucket: str,
        source: str,
        *,
        meta: dict[str, str],
        directive: str,
        content_type: str,
        headers: ObjectHeaders,
    ) -> None:
        request_headers = self._request_headers(meta, content_type, headers)
        request_headers["x-oss-metadata-directive"] = directive
        await asyncio.to_thread(
            self._bucket(bucket).copy_object,
            source_bucket,
            source,
            key,
            headers=request_headers,
        )

    async def _delete(self, bucket: str, key: str) -> None:
        await asyncio.to_thread(self._bucket(bucket).delete_object, key)

    async def _delete_multi(self, bucket: str, keys: list[str]) -> list[str]:
        # oss2 does not expose quiet mode; deleted_keys lists what OSS confirmed.
        result = await asyncio.to_thread(self._bucket(bucket).batch_delete_objects, keys)
        return [k for k in result.deleted_keys or [] if k]

    async def _list_details(
        self, bucket: str, options: ListObjectOptions
    ) -> ListObjectOutput:
        result = await asyncio.to_thread(
            self._bucket(bucket).list_objects,
            prefix=options.prefix or "",
            delimiter=options.delimiter or "",
            marker=options.marker or "",
            max_keys=options.max_keys or DEFAULT_MAX_KEYS,
        )
        return ListObjectOutput(
            is_truncated=bool(result.is_truncated),
            objects=_descriptors(result.object_list),
            prefixes=list(result.prefix_list or []),
            next_marker=result.next_marker or None,
        )

    async def _list_details_v2(
        self, bucket: str, options: ListObjectV2Options
    ) -> ListObjectV2Output:
        result = await asyncio.to_thread(
            self._bucket(bucket).list_objects_v2,
            prefix=options.prefix or "",
            delimiter=options.delimiter or "",
            continuation_token=options.continuation_token or "",
            max_keys=options.max_keys or DEFAULT_MAX_KEYS,
        )
        return ListObjectV2Output(
            is_truncated=bool(result.is_truncated),
            objects=_descriptors(result.object_list),
            prefixes=list(result.prefix_list or []),
            next_continuation_token=result.next_continuation_token or None,
        )

    async def _signature_url(
        self, bucket: str, key: str, expires: int, method: str
    ) -> str | None:
        url = await asyncio.to_thread(
            self._bucket(bucket).sign_url, method, key, int(expires)
        )
        return url or None
