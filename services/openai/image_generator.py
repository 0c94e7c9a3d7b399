"""Text-to-image generation through the OpenAI Images API."""

import logging
import time
from typing import Any

from openai import AsyncOpenAI

from services.errors import GenerationFailed

DEFAULT_MODEL = "dall-e-2"
DEFAULT_SIZE = "1024x1024"


class ImageGenerator:
    """Ask the provider for a single image and return its download URL."""

    def __init__(self, client: AsyncOpenAI, *, model: str = DEFAULT_MODEL, size: str = DEFAULT_SIZE) -> None:
        """Initialize the generator with a shared OpenAI client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.size = size

    async def generate(self, prompt: str) -> str:
        """Generate one image for `prompt` and return the provider URL.

        Raises:
            GenerationFailed: On any provider error or a response without a URL.
        """
        start_time = time.time()
        response = await self._create_image(prompt)
        url = self._first_url(response)
        logging.info("Image generation latency: %.3fs", time.time() - start_time)
        return url

    async def _create_image(self, prompt: str) -> Any:
        try:
            return await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=self.size,
            )
        except Exception as exc:
            logging.error("Error during OpenAI Images API call: %s", exc)
            raise GenerationFailed() from exc

    @staticmethod
    def _first_url(response: Any) -> str:
        data = getattr(response, "data", None)
        url = getattr(data[0], "url", None) if data else None
        if not url:
            logging.error("OpenAI Images response did not include a URL: %r", response)
            raise GenerationFailed()
        return url
