"""Owner-facing image operations: listings, visibility and deletion."""

from __future__ import annotations

import logging
from typing import List, Optional

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.blob_store import BlobStore
from services.errors import NotFound, Unauthorized, ValidationError

LOGGER = logging.getLogger(__name__)


class ImageLibrary:
    """Read and manage stored images on behalf of a user."""

    def __init__(self, images: ImageDAL, blob_store: BlobStore, *, public_limit: int = 100) -> None:
        self.images = images
        self.blob_store = blob_store
        self.public_limit = public_limit

    async def list_public(self, limit: Optional[int] = None) -> List[ImageRecord]:
        """Visible images of every user, newest first, at most `limit` rows."""
        limit = self.public_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be a positive integer")
        return await self.images.list_public(limit=min(limit, self.public_limit))

    async def list_for_owner(self, user_id: str) -> List[ImageRecord]:
        return await self.images.list_by_owner(user_id)

    async def latest_for_owner(self, user_id: str) -> Optional[ImageRecord]:
        return await self.images.get_latest_by_owner(user_id)

    async def set_hidden(self, user_id: str, image_id: str, hidden: bool) -> ImageRecord:
        """Show or hide one of the caller's images and return the updated record."""
        await self._owned_image(user_id, image_id)
        updated = await self.images.set_hidden(image_id, hidden)
        if updated is None:
            raise NotFound(f"Image {image_id} not found")
        return updated

    async def delete(self, user_id: str, image_id: str) -> None:
        """Delete one of the caller's images together with its blob.

        The row goes first; a blob that cannot be removed is logged and left behind.
        """
        record = await self._owned_image(user_id, image_id)
        if not await self.images.delete_image(image_id):
            raise NotFound(f"Image {image_id} not found")
        try:
            await self.blob_store.delete(record.blob_key)
        except Exception as exc:
            LOGGER.warning("Failed to delete blob %s of image %s: %s", record.blob_key, image_id, exc)

    async def _owned_image(self, user_id: str, image_id: str) -> ImageRecord:
        if not image_id or not image_id.strip():
            raise ValidationError("id cannot be empty")
        record = await self.images.get_image_by_id(image_id)
        if record is None:
            raise NotFound(f"Image {image_id} not found")
        if record.owner_id != user_id:
            raise Unauthorized("You can only change your own images", status_code=403)
        return record
