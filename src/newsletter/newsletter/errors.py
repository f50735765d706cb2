"""Error taxonomy shared by the pipeline components and the HTTP layer.

Every error that can reach a caller derives from ``NewsletterError`` and
carries the HTTP status the API reports for it.  ``ParseError`` is the one
exception that never leaves the summarizer: it is recovered into the
fallback payload.
"""

from __future__ import annotations


class NewsletterError(Exception):
    """Base class for errors surfaced to API callers as ``{"error": ...}``."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputError(NewsletterError):
    """A required request field is missing or invalid."""

    status_code = 400


class ConfigurationError(NewsletterError):
    """A required credential or setting is missing."""

    status_code = 500


class FetchError(NewsletterError):
    """Base for content-retrieval failures."""


class UpstreamFetchError(FetchError):
    """The content or image source was unreachable or returned non-success."""

    status_code = 502


class ExtractionError(FetchError):
    """The reader service answered but yielded no meaningful text."""

    status_code = 422


class ProxyError(UpstreamFetchError):
    """The image proxy could not retrieve the target image."""


class ParseError(NewsletterError):
    """Model output was not valid structured data."""


class GenerationError(NewsletterError):
    """A generative-model request failed upstream."""

    status_code = 500


class GenerationShapeError(GenerationError):
    """The model answered but without the expected inline image part."""


class CropError(NewsletterError):
    """The crop could not be applied (no finalized region, unloadable image)."""

    status_code = 422


class RecordNotFoundError(NewsletterError):
    """No article with the given id exists in the store."""

    status_code = 404
