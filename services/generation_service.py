"""Credit-gated image generation workflow.

`GenerationOrchestrator.generate` runs the whole request sequentially:

1. validate the prompt,
2. check the caller has at least one credit,
3. ask the provider for an image,
4. download the bytes,
5. store the blob,
6. insert the IMAGE row,
7. spend one credit.

The blob is stored before the row exists and the row exists before the
credit is spent, so a failure never charges a user without giving them an
image. There is no rollback: if spending the credit fails after the row is
written, the user keeps the image uncharged.
"""

from __future__ import annotations

import logging
from typing import Optional

from dal.credit_dal import CreditDAL
from dal.image_dal import ImageDAL
from models.image_record import ImageRecord
from services.blob_store import BlobStore
from services.errors import GenerationFailed, InsufficientCredits, ValidationError
from services.image_downloader import ImageDownloader
from services.image_store import record_image, store_blob
from services.openai.image_generator import ImageGenerator

LOGGER = logging.getLogger(__name__)


def clean_prompt(prompt: Optional[str]) -> str:
    """Return the stripped prompt or raise ValidationError when it is empty."""
    cleaned = (prompt or "").strip()
    if not cleaned:
        raise ValidationError("Prompt cannot be empty")
    return cleaned


class GenerationOrchestrator:
    """Coordinate ledger, provider, blob store and image records for one generation."""

    def __init__(
        self,
        *,
        credits: CreditDAL,
        images: ImageDAL,
        generator: ImageGenerator,
        downloader: ImageDownloader,
        blob_store: BlobStore,
    ) -> None:
        self.credits = credits
        self.images = images
        self.generator = generator
        self.downloader = downloader
        self.blob_store = blob_store

    async def generate(self, user_id: str, prompt: Optional[str]) -> ImageRecord:
        """Generate, store and record an image for `user_id`.

        Raises:
            ValidationError: If the prompt is empty.
            InsufficientCredits: If the user has no credits; nothing else is attempted.
            GenerationFailed: If the provider call, the download or the upload fails.
        """
        prompt = clean_prompt(prompt)

        balance = await self.credits.get_balance(user_id)
        if balance <= 0:
            raise InsufficientCredits()

        provider_url = await self.generator.generate(prompt)
        image_bytes, mime_type = await self.downloader.download(provider_url)

        try:
            key, url = await store_blob(self.blob_store, image_bytes, mime_type)
        except Exception as exc:
            LOGGER.error("Failed to store generated image for user %s: %s", user_id, exc)
            raise GenerationFailed() from exc

        record = await record_image(self.images, user_id, prompt, key, url)
        LOGGER.info("Generated image %s for user %s", record.id, user_id)

        await self._spend_credit(user_id, record)
        return record

    async def _spend_credit(self, user_id: str, record: ImageRecord) -> None:
        try:
            remaining = await self.credits.try_decrement(user_id)
        except Exception:
            LOGGER.exception("Failed to charge user %s for image %s", user_id, record.id)
            return
        if remaining is None:
            # A concurrent generation spent the last credit first.
            LOGGER.warning("No credit left to charge user %s for image %s", user_id, record.id)
