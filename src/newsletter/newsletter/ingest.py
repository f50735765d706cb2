"""Ingestion pipeline — URL in, normalized summary + image candidates out.

Steps:
    1. Validate input.
    2. Fetch article text + candidate images through the reader service.
    3. Summarize with the selected Gemini model.
    4. Return the normalized result.

Either every step succeeds and a full ``IngestResult`` comes back, or an
error is raised and nothing is produced.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import httpx

from newsletter.config import Config
from newsletter.errors import InputError
from newsletter.models import IngestResult
from newsletter.reader import fetch_content
from newsletter.summarizer import Summarizer

logger = logging.getLogger(__name__)


async def ingest_article(
    url: str | None,
    model: str | None = None,
    *,
    http_client: httpx.AsyncClient,
    config: Config,
    get_summarizer: Callable[[], Summarizer],
) -> IngestResult:
    """Fetch and summarize *url*.

    ``get_summarizer`` is only called once content has been fetched, so a
    missing API key is reported after fetch and extraction errors.
    """
    if not url or not url.strip():
        raise InputError("URL is required")
    url = url.strip()

    logger.info("Ingesting %s (model=%s)", url, model or config.default_text_model)
    content = await fetch_content(url, http_client, config.reader_base_url)

    summarizer = get_summarizer()
    summary = await summarizer.summarize(content.text, model=model)

    return IngestResult(
        headline=summary.headline,
        summary=summary.summary,
        image_suggestion=summary.image_suggestion,
        image_queries=summary.image_queries,
        available_images=content.images,
    )
