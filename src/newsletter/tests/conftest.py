"""Shared test fixtures for newsletter tests.

No test touches the network: upstream HTTP goes through
``httpx.MockTransport`` and the Gemini client is a ``MagicMock`` whose
``aio.models.generate_content`` is an ``AsyncMock``.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from PIL import Image

from newsletter.config import Config
from newsletter.data_uri import to_data_uri
from newsletter.models import ArticleRecord

ARTICLE_TEXT = (
    "Title: Quantum chips reach a new milestone\n\n"
    "Researchers announced on Tuesday that their processor kept qubits coherent "
    "for a record time, a step toward practical error correction.\n\n"
    "![Lab photo](https://images.example.com/lab.jpg)\n"
    "![Logo](https://images.example.com/logo.svg)\n"
    "![Chart](https://images.example.com/chart.png)\n"
)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        gemini_api_key="test-key",
        reader_base_url="https://r.jina.ai/",
        store_path=tmp_path / "articles.json",
    )


@pytest.fixture
def make_http_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Factory for an ``httpx.AsyncClient`` backed by a request handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def mock_genai_client() -> MagicMock:
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    return client


def png_bytes(size: tuple[int, int] = (64, 48), color: str = "navy") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def png_data_uri(size: tuple[int, int] = (64, 48), color: str = "navy") -> str:
    return to_data_uri(png_bytes(size, color), "image/png")


def make_records(*headlines: str) -> list[ArticleRecord]:
    return [
        ArticleRecord(
            id=f"id-{h.lower()}",
            headline=h,
            summary=f"Summary of {h}.",
            source_url=f"https://news.example.com/{h.lower()}",
        )
        for h in headlines
    ]
