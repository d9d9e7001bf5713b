"""Data model shared by the façade and both backend adapters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal


@dataclass
class GetObjectResponse:
    """Text content of an object plus its filtered metadata."""

    content: str
    meta: dict[str, str] = field(default_factory=dict)
    headers: dict[str, Any] = field(default_factory=dict)


@dataclass
class GetBufferedObjectResponse:
    """Raw bytes of an object plus its filtered metadata."""

    content: bytes
    meta: dict[str, str] = field(default_factory=dict)
    headers: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ObjectDescriptor:
    """One entry of a listing page."""

    key: str
    etag: str | None = None
    last_modified: datetime | None = None
    size: int = 0


@dataclass
class ListObjectOutput:
    """A v1 (marker based) listing page.

    ``next_marker`` is None whenever ``is_truncated`` is False.
    """

    is_truncated: bool = False
    objects: list[ObjectDescriptor] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)
    next_marker: str | None = None


@dataclass
class ListObjectV2Output:
    """A v2 (continuation-token based) listing page.

    ``next_continuation_token`` is None whenever ``is_truncated`` is False.
    """

    is_truncated: bool = False
    objects: list[ObjectDescriptor] = field(default_factory=list)
    prefixes: list[str] = field(default_factory=list)
    next_continuation_token: str | None = None


@dataclass
class ObjectHeaders:
    cache_control: str | None = None
    content_disposition: str | None = None
    content_encoding: str | None = None


@dataclass
class PutObjectOptions:
    meta: Mapping[str, Any] | None = None
    content_type: str | None = None
    headers: ObjectHeaders | None = None


@dataclass
class CopyObjectOptions:
    meta: Mapping[str, Any] | None = None
    content_type: str | None = None
    headers: ObjectHeaders | None = None


@dataclass
class ListObjectOptions:
    prefix: str | None = None
    delimiter: str | None = None
    marker: str | None = None
    max_keys: int | None = None


@dataclass
class ListObjectV2Options:
    prefix: str | None = None
    delimiter: str | None = None
    continuation_token: str | None = None
    max_keys: int | None = None


@dataclass
class HeadOptions:
    with_standard_headers: bool = False


@dataclass
class SignatureUrlOptions:
    expires: int = 600
    method: Literal["GET", "PUT"] = "GET"
