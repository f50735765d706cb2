"""Shared data models for the newsletter service."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_id() -> str:
    return str(uuid.uuid4())


class ArticleRecord(CamelModel):
    """One entry in the newsletter.

    Unknown keys in stored data are ignored, and missing or null ones fall
    back to defaults, so an older stored shape still loads.
    """

    id: str = Field(default_factory=_new_id)
    headline: str = ""
    summary: str = ""
    image_suggestion: str = ""
    image_url: str | None = None
    source_url: str | None = None
    available_images: list[str] = Field(default_factory=list)
    image_queries: list[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _null_id(cls, value: object) -> object:
        return _new_id() if value is None else value

    @field_validator("headline", "summary", "image_suggestion", mode="before")
    @classmethod
    def _null_text(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("available_images", "image_queries", mode="before")
    @classmethod
    def _null_list(cls, value: object) -> object:
        return [] if value is None else value


class IngestResult(CamelModel):
    """Normalized ingestion output returned to the UI."""

    headline: str
    summary: str
    image_suggestion: str
    image_queries: list[str] = Field(default_factory=list)
    available_images: list[str] = Field(default_factory=list)


@dataclass
class FetchedContent:
    """Reader-service text plus candidate image URLs found in it."""

    text: str
    images: list[str] = field(default_factory=list)


@dataclass
class ArticleSummary:
    """Structured summarizer output."""

    headline: str
    summary: str
    image_suggestion: str
    image_queries: list[str] = field(default_factory=list)
