"""Fetch generated images from the provider's temporary URLs."""

from __future__ import annotations

import logging
from typing import Tuple

import httpx

from services.errors import GenerationFailed

LOGGER = logging.getLogger(__name__)


class ImageDownloader:
    """Download image bytes with a shared `httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        if client is None:
            raise ValueError("An httpx.AsyncClient is required.")
        self.client = client

    async def download(self, url: str) -> Tuple[bytes, str]:
        """Return `(body, content_type)` for `url`.

        Raises:
            GenerationFailed: On transport errors, non-2xx responses or empty bodies.
        """
        try:
            response = await self.client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("Error downloading generated image: %s", exc)
            raise GenerationFailed("Error downloading generated image") from exc

        if not response.content:
            LOGGER.error("Generated image download returned an empty body")
            raise GenerationFailed("Error downloading generated image")

        content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        return response.content, content_type
