"""Tests for newsletter.reader — reader-service fetch and image extraction."""

from __future__ import annotations

import httpx
import pytest

from conftest import ARTICLE_TEXT
from newsletter.errors import ExtractionError, FetchError, UpstreamFetchError
from newsletter.reader import (
    MAX_CANDIDATE_IMAGES,
    READER_HEADERS,
    extract_image_urls,
    fetch_content,
    reader_url,
)

_READER = "https://r.jina.ai/"


# ---------------------------------------------------------------------------
# Image extraction
# ---------------------------------------------------------------------------


class TestExtractImageUrls:
    """Tests for extract_image_urls()."""

    def test_finds_markdown_images(self) -> None:
        text = "Intro ![a](https://x.com/1.jpg) middle ![b](https://x.com/2.png) end"
        assert extract_image_urls(text) == ["https://x.com/1.jpg", "https://x.com/2.png"]

    def test_skips_svg_and_gif_case_insensitive(self) -> None:
        text = (
            "![](https://x.com/icon.svg) ![](https://x.com/anim.GIF) "
            "![](https://x.com/photo.webp) ![](https://x.com/logo.SVG)"
        )
        assert extract_image_urls(text) == ["https://x.com/photo.webp"]

    def test_dedupes_preserving_first_seen_order(self) -> None:
        text = "![](https://x.com/b.jpg) ![](https://x.com/a.jpg) ![again](https://x.com/b.jpg)"
        assert extract_image_urls(text) == ["https://x.com/b.jpg", "https://x.com/a.jpg"]

    def test_caps_at_ten(self) -> None:
        text = " ".join(f"![img](https://x.com/{i}.jpg)" for i in range(25))
        result = extract_image_urls(text)
        assert len(result) == MAX_CANDIDATE_IMAGES
        assert result[0] == "https://x.com/0.jpg"
        assert result[-1] == "https://x.com/9.jpg"

    def test_duplicates_do_not_count_toward_cap(self) -> None:
        urls = ["https://x.com/dup.jpg"] * 5 + [f"https://x.com/{i}.jpg" for i in range(10)]
        text = " ".join(f"![]({u})" for u in urls)
        result = extract_image_urls(text)
        assert len(result) == 10
        assert result.count("https://x.com/dup.jpg") == 1

    def test_plain_links_are_not_images(self) -> None:
        assert extract_image_urls("[link](https://x.com/page.jpg)") == []

    def test_no_images(self) -> None:
        assert extract_image_urls("just text") == []


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


class TestFetchContent:
    """Tests for fetch_content()."""

    def test_reader_url(self) -> None:
        assert reader_url("https://news.example.com/a", _READER) == "https://r.jina.ai/https://news.example.com/a"

    @pytest.mark.asyncio
    async def test_returns_text_and_images(self, make_http_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text=ARTICLE_TEXT)

        async with make_http_client(handler) as client:
            content = await fetch_content("https://news.example.com/a", client, _READER)

        assert content.text == ARTICLE_TEXT
        assert content.images == [
            "https://images.example.com/lab.jpg",
            "https://images.example.com/chart.png",
        ]
        assert str(seen[0].url).startswith("https://r.jina.ai/")
        assert seen[0].headers["accept"] == READER_HEADERS["Accept"]
        assert "Mozilla" in seen[0].headers["user-agent"]

    @pytest.mark.asyncio
    async def test_upstream_status_is_propagated(self, make_http_client) -> None:
        async with make_http_client(lambda r: httpx.Response(403)) as client:
            with pytest.raises(UpstreamFetchError) as excinfo:
                await fetch_content("https://news.example.com/a", client, _READER)

        assert excinfo.value.status_code == 403
        assert excinfo.value.message == "Failed to fetch content from this URL."

    @pytest.mark.asyncio
    async def test_transport_failure_is_upstream_error(self, make_http_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("dns failure", request=request)

        async with make_http_client(handler) as client:
            with pytest.raises(UpstreamFetchError) as excinfo:
                await fetch_content("https://news.example.com/a", client, _READER)

        assert excinfo.value.status_code == 502

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", ["", "   \n  ", "a" * 49, "Too short to be an article."])
    async def test_short_text_is_extraction_error(self, make_http_client, body) -> None:
        async with make_http_client(lambda r: httpx.Response(200, text=body)) as client:
            with pytest.raises(ExtractionError) as excinfo:
                await fetch_content("https://news.example.com/a", client, _READER)

        assert excinfo.value.status_code == 422
        assert isinstance(excinfo.value, FetchError)

    @pytest.mark.asyncio
    async def test_exactly_fifty_chars_is_accepted(self, make_http_client) -> None:
        async with make_http_client(lambda r: httpx.Response(200, text="b" * 50)) as client:
            content = await fetch_content("https://news.example.com/a", client, _READER)

        assert len(content.text) == 50
        assert content.images == []

    @pytest.mark.asyncio
    async def test_length_counts_surrounding_whitespace(self, make_http_client) -> None:
        body = "\n\n" + "Brief note." + " " * 45
        async with make_http_client(lambda r: httpx.Response(200, text=body)) as client:
            content = await fetch_content("https://news.example.com/a", client, _READER)

        assert content.text == body
