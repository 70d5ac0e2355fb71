"""Fetch utilities for downloading artifacts to a local path."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Iterable, Tuple
from urllib.parse import unquote, urlparse

import httpx
import structlog

from hoist_runtime.core.exceptions import TransportError


logger = structlog.get_logger()

# Callback that materialises the artifact at ``location`` into ``dest_path``.
Fetcher = Callable[[str, Path], object]

DEFAULT_MAX_SIZE_BYTES = 1024 * 1024 * 1024
DEFAULT_TIMEOUT_SEC = 300.0


def _parse_s3_url(url: str) -> Tuple[str, str]:
    """Parse s3://bucket/key URL into (bucket, key)."""
    if not url.startswith("s3://"):
        raise ValueError("Not an s3 URL")
    rest = url[len("s3://"):]
    parts = rest.split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValueError("Invalid s3 URL; expected s3://bucket/key")
    return parts[0], parts[1]


def _write_stream_to_file(stream_iter: Iterable[bytes], dest_path: Path, max_size_bytes: int) -> int:
    """Write streaming bytes to file with max-size enforcement.

    Bytes land in ``<dest>.downloading`` and are renamed onto ``dest_path``
    only once complete. Returns number of bytes written.
    """
    tmp_file = dest_path.with_name(dest_path.name + ".downloading")
    bytes_written = 0
    try:
        with open(tmp_file, "wb") as f:
            for chunk in stream_iter:
                if not chunk:
                    continue
                bytes_written += len(chunk)
                if bytes_written > max_size_bytes:
                    raise TransportError(f"Artifact exceeds maximum allowed size of {max_size_bytes} bytes")
                f.write(chunk)
        os.replace(tmp_file, dest_path)
    finally:
        if tmp_file.exists():
            tmp_file.unlink()
    return bytes_written


def _iter_file(path: Path, chunk_size: int = 64 * 1024):
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(chunk_size), b""):
            yield block


def fetch_to_file(
    location: str,
    dest_path: Path,
    *,
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
) -> Path:
    """Fetch artifact bytes to destination path.

    Supports:
    - local paths and file:// URLs
    - http:// and https:// URLs via httpx
    - s3://bucket/key via boto3 GetObject

    A single attempt is made; retry policy belongs to the caller.

    Raises:
        TransportError: If the artifact could not be retrieved
    """
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    parsed = urlparse(location)

    try:
        if parsed.scheme in ("http", "https"):
            logger.info("Downloading artifact", url=location, dest=str(dest_path))
            with httpx.Client(timeout=httpx.Timeout(timeout_sec)) as client:
                resp = client.get(location, follow_redirects=True)
                resp.raise_for_status()
                bytes_written = _write_stream_to_file(resp.iter_bytes(), dest_path, max_size_bytes)
        elif parsed.scheme == "s3":
            bucket, key = _parse_s3_url(location)
            logger.info("Downloading artifact from S3", bucket=bucket, key=key, dest=str(dest_path))
            import boto3
            s3 = boto3.client("s3")
            obj = s3.get_object(Bucket=bucket, Key=key)
            bytes_written = _write_stream_to_file(obj["Body"].iter_chunks(64 * 1024), dest_path, max_size_bytes)
        elif parsed.scheme in ("", "file"):
            src = Path(unquote(parsed.path) if parsed.scheme == "file" else location)
            logger.info("Copying artifact", src=str(src), dest=str(dest_path))
            bytes_written = _write_stream_to_file(_iter_file(src), dest_path, max_size_bytes)
        else:
            raise TransportError(f"Unsupported artifact location scheme {parsed.scheme!r}: {location}")
    except TransportError:
        raise
    except Exception as e:
        logger.warning("Fetch failed", location=location, error=str(e))
        raise TransportError(f"Failed to fetch {location}: {e}") from e

    logger.info("Fetched artifact", location=location, bytes=bytes_written)
    return dest_path

