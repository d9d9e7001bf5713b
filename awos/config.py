"""Construction options and their validation.

All checks run before any SDK client is created, so a partially built
adapter is never observable.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any

from dotenv import load_dotenv

from awos.errors import ConfigurationError, InvalidOptionsError

STORAGE_TYPES = {"oss": "oss", "aws": "aws", "s3": "aws"}
BUCKET_STRATEGIES = ("fixed", "prefix", "shard")
COMPRESS_TYPES = ("gzip", "deflate")

# Region used for path-style (MinIO) endpoints when none is given.
DEFAULT_PATH_STYLE_REGION = "cn-north-1"

# Flat option names accepted from callers that speak the camelCase dialect.
_ALIASES = {
    "type": "storage_type",
    "storageType": "storage_type",
    "accessKeyID": "access_key_id",
    "accessKeyId": "access_key_id",
    "accessKeySecret": "access_key_secret",
    "s3ForcePathStyle": "force_path_style",
    "pathStyleAddressing": "force_path_style",
    "signatureVersion": "signature_version",
    "bucketStrategy": "bucket_strategy",
    "bucketSeparator": "bucket_separator",
}


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class CompressOptions:
    """Transparent compression settings.

    Args:
        type: Codec name, ``gzip`` or ``deflate``.
        limit: Payloads shorter than this many bytes are stored as-is.
    """

    type: str = "gzip"
    limit: int = 0


@dataclass
class ClientOptions:
    """Options for building one backend adapter.

    Args:
        storage_type: ``oss``, ``aws`` or its alias ``s3``.
        access_key_id: Access key for the backend.
        access_key_secret: Secret paired with the access key.
        bucket: Fixed bucket name, or the base name for sharded buckets.
        endpoint: Service endpoint. Required for OSS and for path-style S3.
        region: S3 region. Required unless ``force_path_style`` is set.
        force_path_style: Path-style addressing (MinIO and friends).
        bucket_strategy: ``fixed``, ``prefix`` or ``shard``.
        bucket_separator: Separator used by the ``prefix`` strategy.
        shards: Shard suffixes used by the ``shard`` strategy.
        compress: Transparent compression, off when None.
        signature_version: S3 request signature version.
    """

    storage_type: str | None = None
    access_key_id: str | None = None
    access_key_secret: str | None = None
    bucket: str | None = None
    endpoint: str | None = None
    region: str | None = None
    force_path_style: bool = False
    bucket_strategy: str = "fixed"
    bucket_separator: str = "/"
    shards: list[str] = field(default_factory=list)
    compress: CompressOptions | None = None
    signature_version: str = "s3v4"

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "ClientOptions":
        """Build options from a flat dict using snake_case or camelCase names."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        compress_type = options.get("compressType") or options.get("compress_type")
        compress_limit = options.get("compressLimit", options.get("compress_limit"))
        for raw_key, value in options.items():
            key = _ALIASES.get(raw_key, raw_key)
            if key in known:
                kwargs[key] = value
        compress = kwargs.get("compress")
        if isinstance(compress, Mapping):
            kwargs["compress"] = CompressOptions(**compress)
        elif compress is None and compress_type:
            kwargs["compress"] = CompressOptions(
                type=compress_type, limit=int(compress_limit or 0)
            )
        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = "AWOS_") -> "ClientOptions":
        """Read options from the environment (``.env`` is loaded first)."""
        load_dotenv()

        def env(name: str) -> str | None:
            value = os.getenv(prefix + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        compress_type = env("COMPRESS_TYPE")
        compress = None
        if compress_type:
            compress = CompressOptions(
                type=compress_type, limit=int(env("COMPRESS_LIMIT") or 0)
            )
        return cls(
            storage_type=env("STORAGE_TYPE"),
            access_key_id=env("ACCESS_KEY_ID"),
            access_key_secret=env("ACCESS_KEY_SECRET"),
            bucket=env("BUCKET"),
            endpoint=env("ENDPOINT"),
            region=env("REGION"),
            force_path_style=_as_bool(env("FORCE_PATH_STYLE"), False),
            bucket_strategy=env("BUCKET_STRATEGY") or "fixed",
            bucket_separator=env("BUCKET_SEPARATOR") or "/",
            shards=_as_list(env("SHARDS")),
            compress=compress,
        )


def validate_options(options: ClientOptions) -> ClientOptions:
    """Check required option combinations.

    Returns a normalized copy (storage type alias resolved, path-style region
    defaulted). Raises ConfigurationError describing the first violation.
    """
    storage_type = STORAGE_TYPES.get((options.storage_type or "").strip().lower())
    if storage_type is None:
        raise InvalidOptionsError()

    if not options.access_key_id:
        raise ConfigurationError("options.access_key_id is required")
    if not options.access_key_secret:
        raise ConfigurationError("options.access_key_secret is required")

    region = options.region
    if storage_type == "aws":
        if options.force_path_style:
            if not options.endpoint:
                raise ConfigurationError(
                    "options.endpoint is required when options.force_path_style = True"
                )
            region = region or DEFAULT_PATH_STYLE_REGION
        elif not region:
            raise ConfigurationError(
                "options.region is required when options.force_path_style = False"
            )
    elif not options.endpoint:
        raise ConfigurationError("options.endpoint is required for oss")

    strategy = options.bucket_strategy
    if strategy not in BUCKET_STRATEGIES:
        raise ConfigurationError(
            f"options.bucket_strategy must be one of {', '.join(BUCKET_STRATEGIES)}"
        )
    if strategy in ("fixed", "shard") and not options.bucket:
        raise ConfigurationError(
            f"options.bucket is required for the {strategy} bucket strategy"
        )
    if strategy == "shard" and not options.shards:
        raise ConfigurationError("options.shards is required for the shard bucket strategy")
    if strategy == "prefix" and not options.bucket_separator:
        raise ConfigurationError("options.bucket_separator must not be empty")

    if options.compress is not None:
        if options.compress.type not in COMPRESS_TYPES:
            raise ConfigurationError(
                f"options.compress.type must be one of {', '.join(COMPRESS_TYPES)}"
            )
        if options.compress.limit < 0:
            raise ConfigurationError("options.compress.limit must be >= 0")

    return replace(options, storage_type=storage_type, region=region)
