"""Object storage for generated image bytes.

Two backends share the `BlobStore` interface:

- `S3BlobStore` writes to an S3 bucket through boto3 and returns
  `https://<bucket>.<storage-domain>/<key>` URLs.
- `LocalBlobStore` writes under a local directory with aiofiles; the
  application serves that directory at `/blobs` (development and tests).

Keys come from `make_blob_key` and look like `1700000000000-k3j9x0p2qa7ze.png`.
"""

from __future__ import annotations

import asyncio
import re
import secrets
import string
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import aiofiles
import aiofiles.os

_KEY_ALPHABET = string.ascii_lowercase + string.digits
_KEY_PATTERN = re.compile(r"^\d+-[a-z0-9]+\.[a-z0-9]+$")


def make_blob_key(ext: str, *, now_ms: Optional[int] = None, suffix_length: int = 13) -> str:
    """Build a collision-resistant key `<unix-millis>-<random-alphanumeric>.<ext>`."""
    ext = ext.lstrip(".").lower()
    if not ext:
        raise ValueError("A file extension is required for blob keys.")
    millis = int(time.time() * 1000) if now_ms is None else now_ms
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(suffix_length))
    return f"{millis}-{suffix}.{ext}"


def _check_key(key: str) -> str:
    if not key or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid blob key: {key!r}")
    return key


class BlobStore(ABC):
    """Write-once storage of image blobs addressed by key."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store `data` under `key` and return its public URL."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the blob stored under `key` (missing keys are ignored)."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Public URL of `key`."""


class S3BlobStore(BlobStore):
    """Blob store backed by an S3 bucket.

    Args:
        bucket: Bucket name.
        client: A boto3 S3 client. boto3 is synchronous, so calls run in a
            worker thread.
        storage_domain: Domain used to build public URLs.
    """

    def __init__(self, bucket: str, client: Any, storage_domain: str = "s3.amazonaws.com") -> None:
        if not bucket:
            raise ValueError("An S3 bucket name is required.")
        if client is None:
            raise ValueError("A boto3 S3 client is required.")
        self.bucket = bucket
        self.client = client
        self.storage_domain = storage_domain

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        _check_key(key)
        await asyncio.to_thread(
            self.client.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        _check_key(key)
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.{self.storage_domain}/{key}"


class LocalBlobStore(BlobStore):
    """Blob store writing files under `base_dir`.

    Args:
        base_dir: Directory holding the blobs (created when missing).
        public_base_url: URL prefix the directory is served under.
    """

    def __init__(self, base_dir: Path | str, public_base_url: str) -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self.base_dir / _check_key(key)
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        path = self.base_dir / _check_key(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}/{key}"
