"""Record-level editor actions: new records, image generation and selection."""

from __future__ import annotations

import logging
from collections.abc import Callable
from urllib.parse import quote

from newsletter.image_generator import ImageGenerator
from newsletter.models import ArticleRecord, IngestResult

logger = logging.getLogger(__name__)

IMAGE_SEARCH_URL = "https://www.google.com/search?tbm=isch&q="
SUMMARY_PROMPT_CHARS = 100


def new_record() -> ArticleRecord:
    """Empty shell for manual creation, with a fresh id."""
    return ArticleRecord()


def record_from_ingest(result: IngestResult, source_url: str) -> ArticleRecord:
    """Build the new record for a successful ingestion of *source_url*."""
    return ArticleRecord(
        headline=result.headline,
        summary=result.summary,
        image_suggestion=result.image_suggestion,
        source_url=source_url,
        available_images=list(result.available_images),
        image_queries=list(result.image_queries),
    )


def image_prompt_for(record: ArticleRecord) -> str | None:
    """Prompt used to illustrate *record*.

    The image suggestion wins; otherwise the start of the summary.  ``None``
    when the record has neither.
    """
    if record.image_suggestion:
        return record.image_suggestion
    if record.summary:
        return record.summary[:SUMMARY_PROMPT_CHARS]
    return None


def image_search_url(query: str) -> str:
    """Google Images search link for a topic keyword."""
    return f"{IMAGE_SEARCH_URL}{quote(query, safe='')}"


def select_image(record: ArticleRecord, url: str) -> ArticleRecord:
    """Return *record* with *url* as its image."""
    return record.model_copy(update={"image_url": url})


async def generate_record_image(
    record: ArticleRecord,
    get_generator: Callable[[], ImageGenerator],
    query: str | None = None,
) -> ArticleRecord:
    """Generate an image for *record* and return the updated copy.

    With *query* (one of the suggested topics) the topic becomes the new
    image suggestion and the prompt.  Without a usable prompt the record is
    returned unchanged and ``get_generator`` is never called, so a missing
    API key does not matter.
    """
    if query:
        prompt = query
        record = record.model_copy(update={"image_suggestion": query})
    else:
        prompt = image_prompt_for(record)
    if not prompt:
        logger.info("Article %s has no suggestion or summary — skipping image generation", record.id)
        return record

    image_url = await get_generator().generate(prompt)
    return record.model_copy(update={"image_url": image_url})
