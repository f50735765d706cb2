"""Image generator — create a 16:9 illustration from a short text prompt.

The Gemini image model answers with a list of content parts; the image is
the first part that carries inline binary data.  It is returned as a
``data:`` URI so the UI can display it and store it in the article record
without a second round-trip.
"""

from __future__ import annotations

import logging

from google import genai
from google.genai import errors, types

from newsletter.config import DEFAULT_IMAGE_MODEL
from newsletter.data_uri import to_data_uri
from newsletter.errors import GenerationError, GenerationShapeError, InputError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


def extract_image_reference(response: types.GenerateContentResponse) -> str:
    """Return a ``data:`` URI for the first inline image part of *response*.

    Text parts are ignored.  Raises ``GenerationShapeError`` when no part
    carries inline data.
    """
    parts: list[types.Part] = []
    if response.candidates:
        content = response.candidates[0].content
        if content and content.parts:
            parts = content.parts

    for part in parts:
        blob = part.inline_data
        if blob and blob.data:
            return to_data_uri(blob.data, blob.mime_type or DEFAULT_MIME_TYPE)

    raise GenerationShapeError("Failed to parse image from response")


class ImageGenerator:
    """Generate images with a Gemini image model."""

    def __init__(
        self,
        client: genai.Client,
        model: str = DEFAULT_IMAGE_MODEL,
        aspect_ratio: str = "16:9",
        image_size: str = "2K",
    ) -> None:
        self._client = client
        self.model = model
        self.aspect_ratio = aspect_ratio
        self.image_size = image_size

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            image_config=types.ImageConfig(
                aspect_ratio=self.aspect_ratio,
                image_size=self.image_size,
            ),
        )

    async def generate(self, prompt: str) -> str:
        """Generate an image for *prompt* and return it as a ``data:`` URI."""
        if not prompt or not prompt.strip():
            raise InputError("Prompt is required")

        logger.info("Generating image with %s: %s...", self.model, prompt[:80])
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._generation_config(),
            )
        except errors.APIError as exc:
            logger.error("Image API error %s: %s", exc.code, exc.message)
            raise GenerationError(
                f"Failed to generate image: {exc.message}",
                status_code=exc.code if exc.code and exc.code >= 400 else 500,
            ) from exc

        try:
            return extract_image_reference(response)
        except GenerationShapeError:
            logger.error("Unexpected image response format: %s", response.model_dump_json(exclude_none=True))
            raise
