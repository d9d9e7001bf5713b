"""
awos CLI - Typer entry point

Commands: get, put, head, ls, rm, copy, sign. Options are read from AWOS_*
environment variables (and .env).
"""

import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from awos._core import AWOS
from awos.config import ClientOptions
from awos.errors import ConfigurationError
from awos.types import (
    CopyObjectOptions,
    HeadOptions,
    ListObjectV2Options,
    PutObjectOptions,
    SignatureUrlOptions,
)

app = typer.Typer()


def _storage() -> AWOS:
    try:
        return AWOS(ClientOptions.from_env())
    except ConfigurationError as e:
        typer.echo(f"error: {e}", err=True)
        sys.exit(2)


def _parse_meta(pairs: list[str]) -> dict[str, str]:
    meta = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"expected key=value, got {pair!r}")
        k, v = pair.split("=", 1)
        meta[k] = v
    return meta


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """Work with objects on S3-compatible storage or OSS."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)


@app.command()
def get(
    key: str,
    meta: list[str] = typer.Option([], "--meta", "-m"),
) -> None:
    """Print an object's content."""
    result = asyncio.run(_storage().get(key, meta))
    if result is None:
        typer.echo(f"not found: {key}", err=True)
        sys.exit(1)
    if meta:
        typer.echo(json.dumps(result.meta, ensure_ascii=False), err=True)
    typer.echo(result.content, nl=False)


@app.command()
def put(
    key: str,
    value: Optional[str] = typer.Argument(None),
    file: Optional[Path] = typer.Option(None, "--file", "-f"),
    content_type: Optional[str] = typer.Option(None, "--content-type"),
    meta: list[str] = typer.Option([], "--meta", "-m"),
) -> None:
    """Upload VALUE or the content of --file."""
    if file is not None:
        data = file.read_bytes()
    elif value is not None:
        data = value
    else:
        typer.echo("error: VALUE or --file is required", err=True)
        sys.exit(2)
    options = PutObjectOptions(meta=_parse_meta(meta), content_type=content_type)
    asyncio.run(_storage().put(key, data, options))


@app.command()
def head(
    key: str,
    standard_headers: bool = typer.Option(False, "--standard-headers"),
) -> None:
    """Print an object's metadata as JSON."""
    options = HeadOptions(with_standard_headers=standard_headers)
    result = asyncio.run(_storage().head(key, options))
    if result is None:
        typer.echo(f"not found: {key}", err=True)
        sys.exit(1)
    typer.echo(json.dumps(result, ensure_ascii=False, indent=2))


@app.command("ls")
def list_objects(
    key: str = typer.Argument("", help="Any key in the bucket to list."),
    prefix: Optional[str] = typer.Option(None, "--prefix", "-p"),
    delimiter: Optional[str] = typer.Option(None, "--delimiter", "-d"),
    token: Optional[str] = typer.Option(None, "--token"),
    max_keys: Optional[int] = typer.Option(None, "--max-keys"),
) -> None:
    """Print one v2 listing page as JSON."""
    options = ListObjectV2Options(
        prefix=prefix,
        delimiter=delimiter,
        continuation_token=token,
        max_keys=max_keys,
    )
    page = asyncio.run(_storage().list_details_v2(key, options))
    typer.echo(json.dumps(dataclasses.asdict(page), ensure_ascii=False, indent=2, default=str))


@app.command("rm")
def remove(keys: list[str]) -> None:
    """Delete one or more objects."""
    storage = _storage()
    if len(keys) == 1:
        asyncio.run(storage.delete(keys[0]))
        return
    deleted = asyncio.run(storage.delete_multi(keys))
    for k in deleted:
        typer.echo(k)


@app.command()
def copy(
    dest: str,
    source: str,
    meta: list[str] = typer.Option([], "--meta", "-m"),
) -> None:
    """Copy SOURCE to DEST; --meta replaces the metadata."""
    options = CopyObjectOptions(meta=_parse_meta(meta))
    asyncio.run(_storage().copy(dest, source, options))


@app.command()
def sign(
    key: str,
    expires: int = typer.Option(600, "--expires", "-e"),
    method: str = typer.Option("GET", "--method"),
) -> None:
    """Print a pre-signed URL."""
    options = SignatureUrlOptions(expires=expires, method=method.upper())
    url = asyncio.run(_storage().signature_url(key, options))
    if url is None:
        typer.echo("error: backend could not sign the URL", err=True)
        sys.exit(1)
    typer.echo(url)
