"""Content fetcher — retrieve article text and image candidates via a reader service.

The reader service (Jina Reader by default) renders the page, strips the
boilerplate and returns a markdown-like plain-text body in which images
appear as ``![alt](url)``.  We only issue one GET and scan the result.
"""

from __future__ import annotations

import logging
import re

import httpx

from newsletter.errors import ExtractionError, UpstreamFetchError
from newsletter.models import FetchedContent

logger = logging.getLogger(__name__)

MIN_CONTENT_CHARS = 50
MAX_CANDIDATE_IMAGES = 10

READER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "Accept": "text/plain",
}

# Markdown image syntax: ![alt](url)
_MD_IMAGE_RE = re.compile(r"!\[.*?\]\((.*?)\)")
# Formats that do not belong in an email body
_EXCLUDED_IMAGE_RE = re.compile(r"\.(svg|gif)$", re.IGNORECASE)


def extract_image_urls(text: str) -> list[str]:
    """Return up to 10 unique image URLs from markdown text, in first-seen order.

    ``.svg`` and ``.gif`` URLs are skipped.
    """
    seen: set[str] = set()
    images: list[str] = []
    for match in _MD_IMAGE_RE.finditer(text):
        url = match.group(1)
        if not url or _EXCLUDED_IMAGE_RE.search(url) or url in seen:
            continue
        seen.add(url)
        images.append(url)
        if len(images) == MAX_CANDIDATE_IMAGES:
            break
    return images


def reader_url(url: str, reader_base_url: str) -> str:
    """Return the reader-service URL for *url*."""
    return f"{reader_base_url}{url}"


async def fetch_content(
    url: str,
    client: httpx.AsyncClient,
    reader_base_url: str,
) -> FetchedContent:
    """Fetch *url* through the reader service.

    Raises
    ------
    UpstreamFetchError
        The reader call failed or returned a non-success status.
    ExtractionError
        The returned text is empty or shorter than ``MIN_CONTENT_CHARS``.
    """
    try:
        response = await client.get(reader_url(url, reader_base_url), headers=READER_HEADERS)
    except httpx.HTTPError as exc:
        logger.error("Reader request failed for %s: %s", url, exc)
        raise UpstreamFetchError("Failed to fetch content from this URL.") from exc

    if not response.is_success:
        logger.error(
            "Failed to fetch via reader: %d %s (%s)",
            response.status_code,
            response.reason_phrase,
            url,
        )
        raise UpstreamFetchError(
            "Failed to fetch content from this URL.",
            status_code=response.status_code,
        )

    text = response.text
    images = extract_image_urls(text)

    if len(text) < MIN_CONTENT_CHARS:
        logger.warning("Reader returned %d chars for %s — too short", len(text), url)
        raise ExtractionError("Could not extract meaningful content from this URL.")

    logger.info("Fetched %d chars and %d candidate images from %s", len(text), len(images), url)
    return FetchedContent(text=text, images=images)
