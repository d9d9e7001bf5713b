"""Abstract base class shared by the backend adapters.

The base owns everything that must behave identically across backends:
bucket resolution, metadata coercion and filtering, transparent compression,
not-found normalization, the copy retry and the listing cursor invariant.
Subclasses only translate between these normalized shapes and their SDK.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from awos.config import ClientOptions
from awos.storage.bucket import make_resolver
from awos.storage.compression import Compressor
from awos.storage.retry import with_retry
from awos.types import (
    CopyObjectOptions,
    GetBufferedObjectResponse,
    GetObjectResponse,
    HeadOptions,
    ListObjectOptions,
    ListObjectOutput,
    ListObjectV2Options,
    ListObjectV2Output,
    ObjectHeaders,
    PutObjectOptions,
    SignatureUrlOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain"
SIGNATURE_METHODS = ("GET", "PUT")

COPY_ATTEMPTS = 3
COPY_MAX_DELAY = 2.0


@dataclass
class FetchedObject:
    """An object body as the SDK returned it, before decoding and filtering."""

    body: bytes
    content_encoding: str | None
    metadata: dict[str, str]
    content_type: str | None = None
    etag: str | None = None
    content_length: int | None = None


@dataclass
class ObjectStat:
    """HEAD result: user metadata plus the standard transport headers.

    ``standard`` uses the external header names (``content-type``,
    ``content-length``, ``accept-ranges``, ``etag``, ``last-modified``) with
    ``last-modified`` already in epoch milliseconds.
    """

    metadata: dict[str, str]
    standard: dict[str, Any] = field(default_factory=dict)


def normalize_meta(meta: Mapping[str, Any] | None) -> dict[str, str]:
    """Coerce user metadata values to strings."""
    if not meta:
        return {}
    return {str(k): str(v) for k, v in meta.items()}


def _to_bytes(data: str | bytes) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class AbstractClient(ABC):
    """Unified object storage contract implemented once per backend."""

    def __init__(self, options: ClientOptions):
        self._resolver = make_resolver(options)
        if options.compress is not None:
            self._compressor = Compressor(options.compress.type, options.compress.limit)
        else:
            self._compressor = Compressor()

    def get_bucket_name(self, key: str) -> str:
        return self._resolver.resolve(key)

    # -- reads --

    async def get(
        self, key: str, meta_keys: Iterable[str] = ()
    ) -> GetObjectResponse | None:
        """Fetch an object as text. Returns None if it does not exist.

        Bytes that are not valid UTF-8 become U+FFFD; use get_as_buffer for
        binary objects.
        """
        r = await self.get_as_buffer(key, meta_keys)
        if r is None:
            return None
        return GetObjectResponse(
            content=r.content.decode("utf-8", errors="replace"),
            meta=r.meta,
            headers=r.headers,
        )

    async def get_as_buffer(
        self, key: str, meta_keys: Iterable[str] = ()
    ) -> GetBufferedObjectResponse | None:
        """Fetch an object as bytes. Returns None if it does not exist."""
        bucket = self.get_bucket_name(key)
        try:
            fetched = await self._get_object(bucket, key)
        except Exception as e:
            if self._is_not_found(e):
                logger.debug("get %s/%s: not found", bucket, key)
                return None
            raise

        meta = {}
        for k in meta_keys:
            value = fetched.metadata.get(k.lower())
            if value:
                meta[k] = value
        headers = {
            "content-type": fetched.content_type,
            "etag": fetched.etag,
            "content-length": fetched.content_length,
        }
        content = self._compressor.decode(fetched.body, fetched.content_encoding)
        return GetBufferedObjectResponse(content=content, meta=meta, headers=headers)

    async def head(
        self, key: str, options: HeadOptions | None = None
    ) -> dict[str, str] | None:
        """Return the object's metadata map, or None if it does not exist."""
        bucket = self.get_bucket_name(key)
        try:
            stat = await self._head(bucket, key)
        except Exception as e:
            if self._is_not_found(e):
                logger.debug("head %s/%s: not found", bucket, key)
                return None
            raise

        meta = dict(stat.metadata)
        if options and options.with_standard_headers:
            for name, value in stat.standard.items():
                if value is not None:
                    meta[name] = str(value)
        return meta

    # -- writes --

    async def put(
        self,
        key: str,
        data: str | bytes,
        options: PutObjectOptions | None = None,
    ) -> None:
        """Store an object.

        When compression is configured and the payload reaches the limit, the
        body is compressed and Content-Encoding is set to the codec marker,
        replacing any encoding the caller supplied.
        """
        options = options or PutObjectOptions()
        bucket = self.get_bucket_name(key)
        body = _to_bytes(data)
        headers = replace(options.headers) if options.headers else ObjectHeaders()

        if self._compressor.should_compress(body):
            body = self._compressor.compress(body)
            headers.content_encoding = self._compressor.encoding

        logger.debug(
            "put %s/%s (%d bytes, encoding=%s)",
            bucket,
            key,
            len(body),
            headers.content_encoding,
        )
        await self._put(
            bucket,
            key,
            body,
            meta=normalize_meta(options.meta),
            content_type=options.content_type or DEFAULT_CONTENT_TYPE,
            headers=headers,
        )

    async def copy(
        self,
        key: str,
        source: str,
        options: CopyObjectOptions | None = None,
    ) -> None:
        """Server-side copy of ``source`` to ``key``.

        A non-empty ``options.meta`` replaces the metadata on the copy;
        otherwise the source metadata is kept. Transient failures are retried
        up to three attempts in total.
        """
        options = options or CopyObjectOptions()
        bucket = self.get_bucket_name(key)
        source_bucket = self.get_bucket_name(source)
        meta = normalize_meta(options.meta)
        directive = "REPLACE" if meta else "COPY"

        logger.debug(
            "copy %s/%s -> %s/%s (%s)", source_bucket, source, bucket, key, directive
        )
        await with_retry(
            lambda: self._copy(
                bucket,
                key,
                source_bucket,
                source,
                meta=meta,
                directive=directive,
                content_type=options.content_type or DEFAULT_CONTENT_TYPE,
                headers=options.headers or ObjectHeaders(),
            ),
            attempts=COPY_ATTEMPTS,
            max_delay=COPY_MAX_DELAY,
            retryable=self._is_transient,
            op=f"copy {key}",
        )

    async def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is not an error."""
        bucket = self.get_bucket_name(key)
        logger.debug("delete %s/%s", bucket, key)
        await self._delete(bucket, key)

    async def delete_multi(self, keys: list[str]) -> list[str]:
        """Delete several objects in one request and return the confirmed keys.

        All keys must live in the same bucket: the bucket is resolved from the
        first key only and used for the whole batch.
        """
        if not keys:
            return []
        bucket = self.get_bucket_name(keys[0])
        logger.debug("delete_multi %s (%d keys)", bucket, len(keys))
        return await self._delete_multi(bucket, list(keys))

    # -- listing --

    async def list_object(
        self, key: str, options: ListObjectOptions | None = None
    ) -> list[str]:
        """v1 listing of object keys. ``key`` only selects the bucket."""
        options = replace(options, delimiter=None) if options else None
        page = await self.list_details(key, options)
        return [o.key for o in page.objects]

    async def list_object_v2(
        self, key: str, options: ListObjectV2Options | None = None
    ) -> list[str]:
        """v2 listing of object keys. ``key`` only selects the bucket."""
        options = replace(options, delimiter=None) if options else None
        page = await self.list_details_v2(key, options)
        return [o.key for o in page.objects]

    async def list_details(
        self, key: str, options: ListObjectOptions | None = None
    ) -> ListObjectOutput:
        """One v1 listing page; continue with ``marker=page.next_marker``."""
        bucket = self.get_bucket_name(key)
        page = await self._list_details(bucket, options or ListObjectOptions())
        if not page.is_truncated:
            page.next_marker = None
        return page

    async def list_details_v2(
        self, key: str, options: ListObjectV2Options | None = None
    ) -> ListObjectV2Output:
        """One v2 listing page; continue with ``continuation_token=page.next_continuation_token``."""
        bucket = self.get_bucket_name(key)
        page = await self._list_details_v2(bucket, options or ListObjectV2Options())
        if not page.is_truncated:
            page.next_continuation_token = None
        return page

    # -- urls --

    async def signature_url(
        self, key: str, options: SignatureUrlOptions | None = None
    ) -> str | None:
        """Pre-signed, time-limited URL for GET or PUT on ``key``."""
        options = options or SignatureUrlOptions()
        method = options.method.upper()
        if method not in SIGNATURE_METHODS:
            raise ValueError(f"unsupported signature method: {options.method}")
        bucket = self.get_bucket_name(key)
        return await self._signature_url(bucket, key, options.expires, method)

    # -- backend hooks --

    @abstractmethod
    def _is_not_found(self, error: BaseException) -> bool:
        """True when ``error`` is the backend's missing-object error."""
        ...

    @abstractmethod
    def _is_transient(self, error: BaseException) -> bool:
        """True when retrying ``error`` may succeed."""
        ...

    @abstractmethod
    async def _get_object(self, bucket: str, key: str) -> FetchedObject:
        ...

    @abstractmethod
    async def _head(self, bucket: str, key: str) -> ObjectStat:
        ...

    @abstractmethod
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
        ...

    @abstractmethod
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
        ...

    @abstractmethod
    async def _delete(self, bucket: str, key: str) -> None:
        ...

    @abstractmethod
    async def _delete_multi(self, bucket: str, keys: list[str]) -> list[str]:
        ...

    @abstractmethod
    async def _list_details(
        self, bucket: str, options: ListObjectOptions
    ) -> ListObjectOutput:
        ...

    @abstractmethod
    async def _list_details_v2(
        self, bucket: str, options: ListObjectV2Options
    ) -> ListObjectV2Output:
        ...

    @abstractmethod
    async def _signature_url(
        self, bucket: str, key: str, expires: int, method: str
    ) -> str | None:
        ...
