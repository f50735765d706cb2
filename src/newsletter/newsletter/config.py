"""Service configuration — loads environment variables into a typed object.

Usage:
    from newsletter.config import load_config
    config = load_config()
    print(config.default_text_model)

The config object is built once by the server and handed to the components
that need it.  No component reads the process environment on its own, so
tests construct a ``Config`` directly or pass a plain mapping to
``load_config``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from newsletter.errors import ConfigurationError

DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-3-pro-image-preview"
DEFAULT_READER_BASE_URL = "https://r.jina.ai/"


def _find_env_file() -> Path | None:
    """Search for .env file starting from this file's directory, then up."""
    current = Path(__file__).resolve().parent.parent  # src/newsletter/
    candidates = [
        current / ".env",
        current.parent.parent / ".env",  # repo root
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    # Gemini API key; empty means "not configured", checked on first use
    gemini_api_key: str = ""

    # Summarization model used when the caller does not pick one
    default_text_model: str = DEFAULT_TEXT_MODEL

    # Image generation
    image_model: str = DEFAULT_IMAGE_MODEL
    image_aspect_ratio: str = "16:9"
    image_size: str = "2K"

    # Reader service that turns a page into markdown-ish text
    reader_base_url: str = DEFAULT_READER_BASE_URL

    # Optional audience phrase woven into the summarization prompt
    newsletter_audience: str = ""

    # Article list persistence (single JSON document)
    store_path: Path = Path("newsletter_articles.json")

    # HTTP server
    port: int = 3000

    def require_api_key(self) -> str:
        """Return the Gemini API key or raise ``ConfigurationError``."""
        if not self.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")
        return self.gemini_api_key


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a ``Config`` from *environ* (defaults to the process environment).

    When reading the process environment, a ``.env`` file is loaded first
    without overriding variables that are already set.
    """
    if environ is None:
        env_file = _find_env_file()
        if env_file:
            load_dotenv(env_file, override=False)
        environ = os.environ

    try:
        port = int(environ.get("PORT", "3000"))
    except ValueError as exc:
        raise ConfigurationError(f"PORT must be an integer, got {environ.get('PORT')!r}") from exc

    return Config(
        gemini_api_key=environ.get("GEMINI_API_KEY", ""),
        default_text_model=environ.get("GEMINI_TEXT_MODEL", DEFAULT_TEXT_MODEL),
        image_model=environ.get("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
        image_aspect_ratio=environ.get("GEMINI_IMAGE_ASPECT_RATIO", "16:9"),
        image_size=environ.get("GEMINI_IMAGE_SIZE", "2K"),
        reader_base_url=environ.get("READER_BASE_URL", DEFAULT_READER_BASE_URL),
        newsletter_audience=environ.get("NEWSLETTER_AUDIENCE", ""),
        store_path=Path(environ.get("ARTICLE_STORE_PATH", "newsletter_articles.json")),
        port=port,
    )
