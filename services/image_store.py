"""Helpers for persisting a generated image: blob first, then its record.

The blob is written to the object store before the IMAGE row is inserted,
so a record never points at a missing blob. A failure between the two steps
can leave an unreferenced blob behind.
"""

from __future__ import annotations

import asyncio
import io
from typing import Optional

from PIL import Image, UnidentifiedImageError

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.blob_store import BlobStore, make_blob_key

# Pillow format name -> (extension, content type)
_FORMATS = {
    "PNG": ("png", "image/png"),
    "JPEG": ("jpg", "image/jpeg"),
    "WEBP": ("webp", "image/webp"),
    "GIF": ("gif", "image/gif"),
}
_DEFAULT_FORMAT = _FORMATS["PNG"]


def _extension_from_mime(mime_type: Optional[str]) -> Optional[tuple]:
    if mime_type and "/" in mime_type:
        candidate = mime_type.split("/")[-1].lower()
        if candidate in ("jpeg", "jpg"):
            return _FORMATS["JPEG"]
        if candidate in ("png", "webp", "gif"):
            return _FORMATS[candidate.upper()]
    return None


def detect_image_format(image_bytes: bytes, mime_type: Optional[str] = None) -> tuple:
    """Return `(extension, content_type)` for `image_bytes`.

    The format Pillow detects wins over the declared MIME type; unknown but
    valid formats fall back to the MIME type, then to PNG.

    Raises:
        ValueError: If the bytes are empty or not a readable image.
    """
    if not image_bytes:
        raise ValueError("Image bytes are required for saving.")
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.verify()
            detected = img.format
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise ValueError("Downloaded bytes are not a supported image format") from exc

    if detected in _FORMATS:
        return _FORMATS[detected]
    return _extension_from_mime(mime_type) or _DEFAULT_FORMAT


async def store_blob(blob_store: BlobStore, image_bytes: bytes, mime_type: Optional[str] = None) -> tuple:
    """Write the image to the blob store and return `(key, url)`."""
    # Pillow decoding is blocking -> run in thread
    ext, content_type = await asyncio.to_thread(detect_image_format, image_bytes, mime_type)
    key = make_blob_key(ext)
    url = await blob_store.put(key, image_bytes, content_type)
    return key, url


async def record_image(image_dal: ImageDAL, owner_id: str, prompt: str, key: str, url: str) -> ImageRecord:
    """Insert the IMAGE row for a stored blob."""
    record = ImageRecord(id=None, owner_id=owner_id, prompt=prompt, url=url, blob_key=key)
    return await image_dal.create_image(record)
