"""Gemini client factory.

Usage:
    from newsletter.gemini import create_client
    client = create_client(config)
"""

from google import genai

from newsletter.config import Config


def create_client(config: Config) -> genai.Client:
    """Return a Gemini client for the configured API key.

    Raises ``ConfigurationError`` when ``GEMINI_API_KEY`` is not set.
    """
    return genai.Client(api_key=config.require_api_key())
