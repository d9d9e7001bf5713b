"""S3-compatible object storage (AWS S3 / MinIO)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from awos.config import ClientOptions
from awos.storage.base import AbstractClient, FetchedObject, ObjectStat
from awos.types import (
    ListObjectOptions,
    ListObjectOutput,
    ListObjectV2Options,
    ListObjectV2Output,
    ObjectDescriptor,
    ObjectHeaders,
)

logger = logging.getLogger(__name__)

# HEAD responses carry no error body, so botocore reports the bare status.
NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}

STANDARD_HEADERS_KEYMAP = {
    "ContentType": "content-type",
    "ContentLength": "content-length",
    "AcceptRanges": "accept-ranges",
    "ETag": "etag",
    "LastModified": "last-modified",
}


def _error_code(error: BaseException) -> str:
    response = getattr(error, "response", None) or {}
    return str((response.get("Error") or {}).get("Code") or "")


def _http_status(error: BaseException) -> int | None:
    response = getattr(error, "response", None) or {}
    status = (response.get("ResponseMetadata") or {}).get("HTTPStatusCode")
    return int(status) if status is not None else None


def _descriptors(contents: list[dict] | None) -> list[ObjectDescriptor]:
    return [
        ObjectDescriptor(
            key=o["Key"],
            etag=o.get("ETag"),
            last_modified=o.get("LastModified"),
            size=int(o.get("Size") or 0),
        )
        for o in contents or []
        if o.get("Key")
    ]


def _prefixes(common_prefixes: list[dict] | None) -> list[str]:
    return [p["Prefix"] for p in common_prefixes or [] if p.get("Prefix") is not None]


class S3Client(AbstractClient):
    """S3-compatible adapter built on a single boto3 client.

    boto3 is blocking, so every request runs in a worker thread.
    """

    def __init__(self, options: ClientOptions):
        super().__init__(options)
        self._client = self._build_client(options)
        logger.info(
            "S3 client ready: endpoint=%s region=%s path_style=%s",
            options.endpoint,
            options.region,
            options.force_path_style,
        )

    @staticmethod
    def _build_client(options: ClientOptions) -> Any:
        """Create a boto3 S3 client from validated options."""
        addressing_style = "path" if options.force_path_style else "auto"
        config = Config(
            signature_version=options.signature_version,
            s3={"addressing_style": addressing_style, "use_accelerate_endpoint": False},
        )
        return boto3.client(
            "s3",
            endpoint_url=options.endpoint,
            region_name=options.region,
            aws_access_key_id=options.access_key_id,
            aws_secret_access_key=options.access_key_secret,
            config=config,
        )

    def _is_not_found(self, error: BaseException) -> bool:
        return isinstance(error, ClientError) and _error_code(error) in NOT_FOUND_CODES

    def _is_transient(self, error: BaseException) -> bool:
        if isinstance(error, ClientError):
            status = _http_status(error)
            if status is not None and 400 <= status < 500:
                return status in (408, 429)
        return True

    async def _get_object(self, bucket: str, key: str) -> FetchedObject:
        resp = await asyncio.to_thread(self._client.get_object, Bucket=bucket, Key=key)
        body = await asyncio.to_thread(resp["Body"].read)
        return FetchedObject(
            body=body,
            content_encoding=resp.get("ContentEncoding"),
            metadata={k.lower(): v for k, v in (resp.get("Metadata") or {}).items()},
            content_type=resp.get("ContentType"),
            etag=resp.get("ETag"),
            content_length=resp.get("ContentLength"),
        )

    async def _head(self, bucket: str, key: str) -> ObjectStat:
        resp = await asyncio.to_thread(self._client.head_object, Bucket=bucket, Key=key)
        standard: dict[str, Any] = {}
        for field_name, header in STANDARD_HEADERS_KEYMAP.items():
            value = resp.get(field_name)
            if header == "last-modified" and value is not None:
                value = int(value.timestamp() * 1000)
            standard[header] = value
        return ObjectStat(
            metadata={k.lower(): v for k, v in (resp.get("Metadata") or {}).items()},
            standard=standard,
        )

    @staticmethod
    def _apply_headers(params: dict[str, Any], headers: ObjectHeaders) -> None:
        if headers.cache_control:
            params["CacheControl"] = headers.cache_control
        if headers.content_disposition:
            params["ContentDisposition"] = headers.content_disposition
        if headers.content_encoding:
            params["ContentEncoding"] = headers.content_encoding

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
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "Body": body,
            "Metadata": meta,
            "ContentType": content_type,
        }
        self._apply_headers(params, headers)
        await asyncio.to_thread(self._client.put_object, **params)

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
        params: dict[str, Any] = {
            "Bucket": bucket,
            "Key": key,
            "CopySource": {"Bucket": source_bucket, "Key": source},
            "Metadata": meta,
            "ContentType": content_type,
            "MetadataDirective": directive,
        }
        self._apply_headers(params, headers)
        await asyncio.to_thread(self._client.copy_object, **params)

    async def _delete(self, bucket: str, key: str) -> None:
        await asyncio.to_thread(self._client.delete_object, Bucket=bucket, Key=key)

    async def _delete_multi(self, bucket: str, keys: list[str]) -> list[str]:
        resp = await asyncio.to_thread(
            self._client.delete_objects,
            Bucket=bucket,
            Delete={"Objects": [{"Key": k} for k in keys], "Quiet": True},
        )
        return [d["Key"] for d in resp.get("Deleted") or [] if d.get("Key")]

    async def _list_details(
        self, bucket: str, options: ListObjectOptions
    ) -> ListObjectOutput:
        params: dict[str, Any] = {"Bucket": bucket}
        if options.prefix:
            params["Prefix"] = options.prefix
        if options.delimiter:
            params["Delimiter"] = options.delimiter
        if options.marker:
            params["Marker"] = options.marker
        if options.max_keys:
            params["MaxKeys"] = options.max_keys

        data = await asyncio.to_thread(self._client.list_objects, **params)
        objects = _descriptors(data.get("Contents"))
        is_truncated = bool(data.get("IsTruncated"))
        next_marker = data.get("NextMarker")
        # S3 only sends NextMarker alongside a delimiter; the last key is the cursor otherwise.
        if is_truncated and not next_marker and objects:
            next_marker = objects[-1].key
        return ListObjectOutput(
            is_truncated=is_truncated,
            objects=objects,
            prefixes=_prefixes(data.get("CommonPrefixes")),
            next_marker=next_marker,
        )

    async def _list_details_v2(
        self, bucket: str, options: ListObjectV2Options
    ) -> ListObjectV2Output:
        params: dict[str, Any] = {"Bucket": bucket}
        if options.prefix:
            params["Prefix"] = options.prefix
        if options.delimiter:
            params["Delimiter"] = options.delimiter
        if options.continuation_token:
            params["ContinuationToken"] = options.continuation_token
        if options.max_keys:
            params["MaxKeys"] = options.max_keys

        data = await asyncio.to_thread(self._client.list_objects_v2, **params)
        return ListObjectV2Output(
            is_truncated=bool(data.get("IsTruncated")),
            objects=_descriptors(data.get("Contents")),
            prefixes=_prefixes(data.get("CommonPrefixes")),
            next_continuation_token=data.get("NextContinuationToken"),
        )

    async def _signature_url(
        self, bucket: str, key: str, expires: int, method: str
    ) -> str | None:
        operation = "put_object" if method == "PUT" else "get_object"
        url = await asyncio.to_thread(
            self._client.generate_presigned_url,
            operation,
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=int(expires),
        )
        return url or None
