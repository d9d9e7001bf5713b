"""Test configuration and fixtures for awos tests.

Both adapters run against in-memory fakes of their SDKs. The fakes raise
the SDKs' real exception types so not-found handling is exercised exactly as
in production. Like requests, the OSS fake inflates gzip and deflate bodies
before oss2 hands them over; boto3 does not, so the S3 fake returns raw bytes.
"""

from __future__ import annotations

import gzip
import hashlib
import io
import time
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch

import oss2
import pytest
from botocore.exceptions import ClientError
from requests.structures import CaseInsensitiveDict

from awos import AWOS, ClientOptions
from awos.storage.s3 import S3Client

TEST_BUCKET = "b"


@dataclass
class StoredObject:
    body: bytes
    metadata: dict[str, str] = field(default_factory=dict)
    content_type: str | None = None
    content_encoding: str | None = None
    cache_control: str | None = None
    content_disposition: str | None = None
    last_modified: float = field(default_factory=time.time)

    @property
    def etag(self) -> str:
        return hashlib.md5(self.body).hexdigest()


def _page(keys: list[str], prefix: str, after: str, delimiter: str, max_keys: int):
    """Shared listing logic: returns (keys, common_prefixes, truncated)."""
    out_keys: list[str] = []
    prefixes: list[str] = []
    truncated = False
    for k in sorted(keys):
        if not k.startswith(prefix) or (after and k <= after):
            continue
        if delimiter:
            rest = k[len(prefix):]
            if delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in prefixes:
                    prefixes.append(common)
                continue
        if len(out_keys) == max_keys:
            truncated = True
            break
        out_keys.append(k)
    return out_keys, prefixes, truncated


def _transport_decode(body: bytes, content_encoding: str | None) -> bytes:
    """Inflate a body the way requests does for gzip and deflate responses."""
    encoding = (content_encoding or "").lower()
    if encoding == "gzip":
        return gzip.decompress(body)
    if encoding == "deflate":
        return zlib.decompress(body)
    return body


def _client_error(code: str, status: int, operation: str) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class FakeS3:
    """The subset of the boto3 S3 client used by S3Client."""

    def __init__(self):
        self.buckets: dict[str, dict[str, StoredObject]] = {}
        self.copy_failures: list[Exception] = []
        self.calls: list[tuple[str, dict]] = []

    def _objects(self, bucket: str) -> dict[str, StoredObject]:
        return self.buckets.setdefault(bucket, {})

    def put_object(self, **params):
        self.calls.append(("put_object", params))
        self._objects(params["Bucket"])[params["Key"]] = StoredObject(
            body=bytes(params["Body"]),
            metadata={k.lower(): v for k, v in params.get("Metadata", {}).items()},
            content_type=params.get("ContentType"),
            content_encoding=params.get("ContentEncoding"),
            cache_control=params.get("CacheControl"),
            content_disposition=params.get("ContentDisposition"),
        )
        return {}

    def get_object(self, Bucket, Key):
        obj = self._objects(Bucket).get(Key)
        if obj is None:
            raise _client_error("NoSuchKey", 404, "GetObject")
        resp = {
            "Body": io.BytesIO(obj.body),
            "Metadata": dict(obj.metadata),
            "ContentType": obj.content_type,
            "ContentLength": len(obj.body),
            "ETag": f'"{obj.etag}"',
        }
        if obj.content_encoding:
            resp["ContentEncoding"] = obj.content_encoding
        return resp

    def head_object(self, Bucket, Key):
        obj = self._objects(Bucket).get(Key)
        if obj is None:
            raise _client_error("404", 404, "HeadObject")
        return {
            "Metadata": dict(obj.metadata),
            "ContentType": obj.content_type,
            "ContentLength": len(obj.body),
            "AcceptRanges": "bytes",
            "ETag": f'"{obj.etag}"',
            "LastModified": datetime.fromtimestamp(int(obj.last_modified), tz=timezone.utc),
        }

    def copy_object(self, **params):
        self.calls.append(("copy_object", params))
        if self.copy_failures:
            raise self.copy_failures.pop(0)
        src = params["CopySource"]
        obj = self._objects(src["Bucket"]).get(src["Key"])
        if obj is None:
            raise _client_error("NoSuchKey", 404, "CopyObject")
        if params.get("MetadataDirective") == "REPLACE":
            metadata = {k.lower(): v for k, v in params.get("Metadata", {}).items()}
            content_type = params.get("ContentType")
        else:
            metadata = dict(obj.metadata)
            content_type = obj.content_type
        self._objects(params["Bucket"])[params["Key"]] = StoredObject(
            body=obj.body,
            metadata=metadata,
            content_type=content_type,
            content_encoding=obj.content_encoding,
        )
        return {}

    def delete_object(self, Bucket, Key):
        self._objects(Bucket).pop(Key, None)
        return {}

    def delete_objects(self, Bucket, Delete):
        self.calls.append(("delete_objects", {"Bucket": Bucket, "Delete": Delete}))
        objects = self._objects(Bucket)
        deleted = []
        for item in Delete["Objects"]:
            if objects.pop(item["Key"], None) is not None:
                deleted.append({"Key": item["Key"]})
        return {"Deleted": deleted} if deleted else {}

    def _contents(self, bucket: str, keys: list[str]) -> list[dict]:
        objects = self._objects(bucket)
        return [
            {
                "Key": k,
                "ETag": f'"{objects[k].etag}"',
                "Size": len(objects[k].body),
                "LastModified": datetime.fromtimestamp(
                    int(objects[k].last_modified), tz=timezone.utc
                ),
            }
            for k in keys
        ]

    def list_objects(self, Bucket, Prefix="", Delimiter="", Marker="", MaxKeys=1000):
        keys, prefixes, truncated = _page(
            list(self._objects(Bucket)), Prefix, Marker, Delimiter, MaxKeys
        )
        resp = {"IsTruncated": truncated, "Contents": self._contents(Bucket, keys)}
        if prefixes:
            resp["CommonPrefixes"] = [{"Prefix": p} for p in prefixes]
        # Like S3, NextMarker is only returned when a delimiter was sent.
        if truncated and Delimiter:
            resp["NextMarker"] = keys[-1]
        return resp

    def list_objects_v2(
        self, Bucket, Prefix="", Delimiter="", ContinuationToken="", MaxKeys=1000
    ):
        after = ContinuationToken[len("token:"):] if ContinuationToken else ""
        keys, prefixes, truncated = _page(
            list(self._objects(Bucket)), Prefix, after, Delimiter, MaxKeys
        )
        resp = {"IsTruncated": truncated, "Contents": self._contents(Bucket, keys)}
        if prefixes:
            resp["CommonPrefixes"] = [{"Prefix": p} for p in prefixes]
        if truncated:
            resp["NextContinuationToken"] = f"token:{keys[-1]}"
        return resp

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return (
            f"https://{Params['Bucket']}.s3.test/{Params['Key']}"
            f"?op={operation}&X-Amz-Expires={ExpiresIn}"
        )


class FakeOSSBucket:
    """The subset of ``oss2.Bucket`` used by OSSClient."""

    def __init__(self, store: "FakeOSS", name: str):
        self._store = store
        self.bucket_name = name

    @property
    def _objects(self) -> dict[str, StoredObject]:
        return self._store.buckets.setdefault(self.bucket_name, {})

    @staticmethod
    def _not_found(key: str):
        return oss2.exceptions.NoSuchKey(
            404, {}, b"", {"Code": "NoSuchKey", "Message": f"{key} does not exist"}
        )

    @staticmethod
    def _split(headers):
        headers = CaseInsensitiveDict(headers or {})
        meta = {
            k[len("x-oss-meta-"):].lower(): v
            for k, v in headers.items()
            if k.lower().startswith("x-oss-meta-")
        }
        return headers, meta

    def _headers(self, obj: StoredObject) -> CaseInsensitiveDict:
        headers = CaseInsensitiveDict(
            {
                "Content-Type": obj.content_type or "application/octet-stream",
                "Content-Length": str(len(obj.body)),
                "Accept-Ranges": "bytes",
                "ETag": f'"{obj.etag.upper()}"',
            }
        )
        if obj.content_encoding:
            headers["Content-Encoding"] = obj.content_encoding
        for k, v in obj.metadata.items():
            headers[f"x-oss-meta-{k}"] = v
        return headers

    def put_object(self, key, data, headers=None):
        self._store.calls.append(("put_object", {"key": key, "headers": headers}))
        headers, meta = self._split(headers)
        self._objects[key] = StoredObject(
            body=bytes(data),
            metadata=meta,
            content_type=headers.get("Content-Type"),
            content_encoding=headers.get("Content-Encoding"),
            cache_control=headers.get("Cache-Control"),
            content_disposition=headers.get("Content-Disposition"),
        )
        return SimpleNamespace(status=200)

    def get_object(self, key):
        obj = self._objects.get(key)
        if obj is None:
            raise self._not_found(key)
        body = io.BytesIO(_transport_decode(obj.body, obj.content_encoding))
        return SimpleNamespace(
            headers=self._headers(obj),
            content_type=obj.content_type,
            content_length=len(obj.body),
            etag=obj.etag.upper(),
            read=body.read,
        )

    def head_object(self, key):
        obj = self._objects.get(key)
        if obj is None:
            # HEAD has no body, so OSS cannot say NoSuchKey.
            raise oss2.exceptions.NotFound(404, {}, b"", {})
        return SimpleNamespace(
            headers=self._headers(obj),
            content_type=obj.content_type,
            content_length=len(obj.body),
            etag=obj.etag.upper(),
            last_modified=int(obj.last_modified),
        )

    def copy_object(self, source_bucket_name, source_key, target_key, headers=None):
        self._store.calls.append(
            (
                "copy_object",
                {
                    "source_bucket": source_bucket_name,
                    "source_key": source_key,
                    "key": target_key,
                    "headers": headers,
                },
            )
        )
        if self._store.copy_failures:
            raise self._store.copy_failures.pop(0)
        src = self._store.buckets.setdefault(source_bucket_name, {}).get(source_key)
        if src is None:
            raise self._not_found(source_key)
        headers, meta = self._split(headers)
        if headers.get("x-oss-metadata-directive") == "REPLACE":
            content_type = headers.get("Content-Type")
        else:
            meta = dict(src.metadata)
            content_type = src.content_type
        self._objects[target_key] = StoredObject(
            body=src.body,
            metadata=meta,
            content_type=content_type,
            content_encoding=src.content_encoding,
        )
        return SimpleNamespace(status=200)

    def delete_object(self, key):
        self._objects.pop(key, None)
        return SimpleNamespace(status=204)

    def batch_delete_objects(self, key_list):
        self._store.calls.append(("batch_delete_objects", {"keys": list(key_list)}))
        deleted = [k for k in key_list if self._objects.pop(k, None) is not None]
        return SimpleNamespace(deleted_keys=deleted)

    def _infos(self, keys: list[str]):
        return [
            SimpleNamespace(
                key=k,
                etag=self._objects[k].etag.upper(),
                last_modified=int(self._objects[k].last_modified),
                size=len(self._objects[k].body),
            )
            for k in keys
        ]

    def list_objects(self, prefix="", delimiter="", marker="", max_keys=100):
        keys, prefixes, truncated = _page(
            list(self._objects), prefix, marker, delimiter, max_keys
        )
        return SimpleNamespace(
            is_truncated=truncated,
            next_marker=keys[-1] if truncated else "",
            object_list=self._infos(keys),
            prefix_list=prefixes,
        )

    def list_objects_v2(
        self, prefix="", delimiter="", continuation_token="", max_keys=100
    ):
        after = continuation_token[len("ct:"):] if continuation_token else ""
        keys, prefixes, truncated = _page(
            list(self._objects), prefix, after, delimiter, max_keys
        )
        return SimpleNamespace(
            is_truncated=truncated,
            next_continuation_token=f"ct:{keys[-1]}" if truncated else "",
            object_list=self._infos(keys),
            prefix_list=prefixes,
        )

    def sign_url(self, method, key, expires):
        return (
            f"https://{self.bucket_name}.oss.test/{key}"
            f"?method={method}&Expires={expires}"
        )


class FakeOSS:
    def __init__(self):
        self.buckets: dict[str, dict[str, StoredObject]] = {}
        self.copy_failures: list[Exception] = []
        self.calls: list[tuple[str, dict]] = []
        self._handles: dict[str, FakeOSSBucket] = {}

    def bucket(self, auth, endpoint, name, session=None) -> FakeOSSBucket:
        return self._handles.setdefault(name, FakeOSSBucket(self, name))


def _options(storage_type: str, **overrides) -> ClientOptions:
    base = {
        "storage_type": storage_type,
        "access_key_id": "test-key",
        "access_key_secret": "test-secret",
        "bucket": TEST_BUCKET,
    }
    if storage_type == "oss":
        base["endpoint"] = "https://oss-cn-hangzhou.aliyuncs.com"
    else:
        base["region"] = "us-east-1"
    base.update(overrides)
    return ClientOptions(**base)


@pytest.fixture
def fake_s3():
    fake = FakeS3()
    with patch.object(S3Client, "_build_client", return_value=fake):
        yield fake


@pytest.fixture
def fake_oss():
    fake = FakeOSS()
    with patch("awos.storage.oss.oss2.Bucket", side_effect=fake.bucket):
        yield fake


@pytest.fixture
def no_sleep():
    """Skip retry back-off waits."""

    async def _sleep(_delay):
        return None

    with patch("awos.storage.retry.asyncio.sleep", side_effect=_sleep) as mock_sleep:
        yield mock_sleep


@pytest.fixture(params=["aws", "oss"])
def backend(request, fake_s3, fake_oss):
    """(storage_type, fake SDK) for each backend."""
    fake = fake_s3 if request.param == "aws" else fake_oss
    return request.param, fake


@pytest.fixture
def make_storage(backend):
    """Build an AWOS facade for the current backend with option overrides."""
    storage_type, _ = backend

    def _make(**overrides) -> AWOS:
        return AWOS(_options(storage_type, **overrides))

    return _make


@pytest.fixture
def storage(make_storage) -> AWOS:
    return make_storage()
