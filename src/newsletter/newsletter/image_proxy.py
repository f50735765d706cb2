"""Image proxy — relay third-party images through the local server.

The crop step draws image pixels onto a canvas, which browsers refuse for
cross-origin images.  Serving the bytes from our own origin (with a
permissive CORS header) sidesteps that.  Bytes are passed through
untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from newsletter.errors import ProxyError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/jpeg"
CACHE_CONTROL = "public, max-age=3600"


@dataclass
class ProxiedImage:
    """Downloaded image content + metadata."""
    data: bytes
    content_type: str


def proxy_headers() -> dict[str, str]:
    """Headers attached to every proxied image response."""
    return {
        "Cache-Control": CACHE_CONTROL,
        "Access-Control-Allow-Origin": "*",
    }


async def fetch_image(url: str, client: httpx.AsyncClient) -> ProxiedImage:
    """Download *url* and return its bytes with the upstream content type.

    Raises ``ProxyError`` carrying the upstream status on non-success, or
    500 when the request itself fails.
    """
    try:
        response = await client.get(url, follow_redirects=True)
    except httpx.HTTPError as exc:
        logger.error("Proxy error for %s: %s", url, exc)
        raise ProxyError("Failed to fetch image", status_code=500) from exc

    if not response.is_success:
        logger.warning("Proxy upstream %d for %s", response.status_code, url)
        raise ProxyError(
            f"Failed to fetch image: {response.reason_phrase}",
            status_code=response.status_code,
        )

    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    logger.debug("Proxied %s (%d bytes, %s)", url, len(response.content), content_type)
    return ProxiedImage(data=response.content, content_type=content_type)
