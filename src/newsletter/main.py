"""Newsletter composer — FastAPI server for the newsletter editor UI.

The UI posts article URLs, edits the resulting cards and copies the
rendered newsletter.  All state is one ordered article list persisted as a
single JSON document.

Endpoints
---------
- ``GET    /health``                          — health check
- ``GET    /api/models``                      — summarization model options
- ``POST   /api/generate``                    — fetch + summarize a URL
- ``POST   /api/generate-image``              — generate an image from a prompt
- ``GET    /api/proxy-image?url=``            — same-origin image relay
- ``POST   /api/crop``                        — crop an image reference
- ``GET    /api/articles``                    — list articles in order
- ``POST   /api/articles``                    — add a (manual) article
- ``POST   /api/articles/ingest``             — ingest a URL and append it
- ``DELETE /api/articles``                    — delete all articles
- ``POST   /api/articles/reorder``            — move one article up/down
- ``PUT    /api/articles/{id}``               — replace an article
- ``DELETE /api/articles/{id}``               — delete an article
- ``GET    /api/articles/{id}/image-ideas``   — topic keywords + search links
- ``POST   /api/articles/{id}/image``         — generate the article image
- ``POST   /api/articles/{id}/select-image``  — pick a candidate image
- ``POST   /api/articles/{id}/crop``          — crop the article image
- ``GET    /api/newsletter/clipboard``        — HTML + plain-text rendering
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Literal

import httpx
import uvicorn
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from google import genai
from pydantic import BaseModel

from newsletter import composer, editor, gemini
from newsletter.config import Config, load_config
from newsletter.crop import CropRegion, crop_reference
from newsletter.errors import InputError, NewsletterError
from newsletter.image_generator import ImageGenerator
from newsletter.image_proxy import fetch_image, proxy_headers
from newsletter.ingest import ingest_article
from newsletter.models import ArticleRecord, CamelModel, IngestResult
from newsletter.store import ArticleStore, Direction, JsonFileStorage
from newsletter.summarizer import AVAILABLE_MODELS, Summarizer

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
for _name in ("httpx", "httpcore", "google_genai", "uvicorn.access"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Global state (initialised in lifespan)
# ---------------------------------------------------------------------------

config: Config | None = None
store: ArticleStore | None = None
http_client: httpx.AsyncClient | None = None
_genai_client: genai.Client | None = None


def _get_genai_client() -> genai.Client:
    """Lazy singleton for the Gemini client; raises if no API key is set."""
    global _genai_client
    if _genai_client is None:
        _genai_client = gemini.create_client(config)
    return _genai_client


def _get_summarizer() -> Summarizer:
    return Summarizer(
        _get_genai_client(),
        default_model=config.default_text_model,
        audience=config.newsletter_audience,
    )


def _get_image_generator() -> ImageGenerator:
    return ImageGenerator(
        _get_genai_client(),
        model=config.image_model,
        aspect_ratio=config.image_aspect_ratio,
        image_size=config.image_size,
    )


# ---------------------------------------------------------------------------
# FastAPI lifespan — load config, open store and HTTP client
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build shared state on startup, close the HTTP client on shutdown."""
    global config, store, http_client

    logger.info("[NEWSLETTER] Server starting up...")
    config = load_config()
    store = ArticleStore(JsonFileStorage(config.store_path))
    http_client = httpx.AsyncClient()
    logger.info("[NEWSLETTER] %d articles loaded from %s", len(store.list()), config.store_path)

    yield

    await http_client.aclose()
    logger.info("[NEWSLETTER] Server shutting down...")


app = FastAPI(
    title="Newsletter Composer",
    description="Summarize articles with Gemini and assemble them into an email newsletter",
    version="0.1.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

@app.exception_handler(NewsletterError)
async def newsletter_error_handler(request: Request, exc: NewsletterError) -> JSONResponse:
    logger.error("[NEWSLETTER] %s %s → %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("[NEWSLETTER] Invalid request body for %s: %s", request.url.path, exc.errors())
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


def _unexpected(action: str) -> NewsletterError:
    logger.exception("[NEWSLETTER] Error %s", action)
    return NewsletterError("Failed to process request")


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class GenerateRequest(BaseModel):
    url: str | None = None
    model: str | None = None


class GenerateImageRequest(BaseModel):
    prompt: str | None = None


class ImageUrlResponse(CamelModel):
    image_url: str


class Selection(BaseModel):
    x: float
    y: float
    width: float
    height: float


class CropBody(CamelModel):
    region: Selection
    unit: Literal["px", "%"] = "px"
    displayed_width: float
    displayed_height: float


class CropRequest(CropBody):
    image_url: str | None = None


class ReorderRequest(BaseModel):
    index: int
    direction: Direction


class RecordImageRequest(BaseModel):
    query: str | None = None


class SelectImageRequest(BaseModel):
    url: str


class ImageIdea(CamelModel):
    query: str
    search_url: str


class ClipboardResponse(BaseModel):
    html: str
    text: str


class ModelsResponse(CamelModel):
    models: list[str]
    default_model: str


class HealthResponse(BaseModel):
    status: str
    articles_count: int


# ---------------------------------------------------------------------------
# Pipeline endpoints
# ---------------------------------------------------------------------------

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", articles_count=len(store.list()))


@app.get("/api/models", response_model=ModelsResponse)
async def list_models():
    """Model options for the UI selector (not used for validation)."""
    models = list(AVAILABLE_MODELS)
    if config.default_text_model not in models:
        models.insert(0, config.default_text_model)
    return ModelsResponse(models=models, default_model=config.default_text_model)


@app.post("/api/generate", response_model=IngestResult)
async def generate_article(request: GenerateRequest):
    """Fetch a URL through the reader service and summarize it."""
    try:
        return await ingest_article(
            request.url,
            request.model,
            http_client=http_client,
            config=config,
            get_summarizer=_get_summarizer,
        )
    except NewsletterError:
        raise
    except Exception as exc:
        raise _unexpected("generating article") from exc


@app.post("/api/generate-image", response_model=ImageUrlResponse)
async def generate_image(request: GenerateImageRequest):
    """Generate a 16:9 image for a prompt; returns a ``data:`` URI."""
    if not request.prompt:
        raise InputError("Prompt is required")
    try:
        image_url = await _get_image_generator().generate(request.prompt)
    except NewsletterError:
        raise
    except Exception as exc:
        raise _unexpected("generating image") from exc
    return ImageUrlResponse(image_url=image_url)


@app.get("/api/proxy-image")
async def proxy_image(url: str | None = Query(default=None)) -> Response:
    """Relay a third-party image so the browser can read its pixels."""
    if not url:
        raise InputError("URL is required")
    image = await fetch_image(url, http_client)
    return Response(content=image.data, media_type=image.content_type, headers=proxy_headers())


async def _crop(image_url: str, body: CropBody) -> str:
    region = CropRegion(
        x=body.region.x,
        y=body.region.y,
        width=body.region.width,
        height=body.region.height,
    )
    try:
        return await crop_reference(
            image_url,
            region,
            (body.displayed_width, body.displayed_height),
            http_client,
            unit=body.unit,
        )
    except NewsletterError:
        raise
    except Exception as exc:
        raise _unexpected("cropping image") from exc


@app.post("/api/crop", response_model=ImageUrlResponse)
async def crop_image(request: CropRequest):
    """Crop an image reference to a selection made on its displayed copy."""
    if not request.image_url:
        raise InputError("Image URL is required")
    return ImageUrlResponse(image_url=await _crop(request.image_url, request))


# ---------------------------------------------------------------------------
# Article store endpoints
# ---------------------------------------------------------------------------

@app.get("/api/articles", response_model=list[ArticleRecord])
async def list_articles():
    return store.list()


@app.post("/api/articles", response_model=ArticleRecord, status_code=201)
async def add_article(record: ArticleRecord):
    """Append a manually created (or client-built) article."""
    return store.add(record)


@app.post("/api/articles/ingest", response_model=ArticleRecord, status_code=201)
async def ingest_and_add(request: GenerateRequest):
    """Ingest a URL and append the resulting article to the newsletter."""
    result = await generate_article(request)
    return store.add(editor.record_from_ingest(result, request.url.strip()))


@app.delete("/api/articles", status_code=204)
async def delete_all_articles():
    store.remove_all()
    return Response(status_code=204)


@app.post("/api/articles/reorder", response_model=list[ArticleRecord])
async def reorder_articles(request: ReorderRequest):
    """Swap one article with its neighbour above or below."""
    store.reorder(request.index, request.direction)
    return store.list()


@app.put("/api/articles/{article_id}", response_model=ArticleRecord)
async def update_article(article_id: str, record: ArticleRecord):
    return store.update(article_id, record)


@app.delete("/api/articles/{article_id}", status_code=204)
async def delete_article(article_id: str):
    store.remove(article_id)
    return Response(status_code=204)


@app.get("/api/articles/{article_id}/image-ideas", response_model=list[ImageIdea])
async def image_ideas(article_id: str):
    """Suggested image topics with an image-search link for each."""
    record = store.get(article_id)
    return [
        ImageIdea(query=query, search_url=editor.image_search_url(query))
        for query in record.image_queries
    ]


@app.post("/api/articles/{article_id}/image", response_model=ArticleRecord)
async def generate_article_image(article_id: str, request: RecordImageRequest):
    """Generate the article image from its suggestion, summary, or a chosen topic."""
    record = store.get(article_id)
    try:
        updated = await editor.generate_record_image(record, _get_image_generator, query=request.query)
    except NewsletterError:
        raise
    except Exception as exc:
        raise _unexpected("generating article image") from exc
    return store.update(article_id, updated)


@app.post("/api/articles/{article_id}/select-image", response_model=ArticleRecord)
async def select_article_image(article_id: str, request: SelectImageRequest):
    record = store.get(article_id)
    return store.update(article_id, editor.select_image(record, request.url))


@app.post("/api/articles/{article_id}/crop", response_model=ArticleRecord)
async def crop_article_image(article_id: str, request: CropBody):
    """Replace the article image with a cropped copy."""
    record = store.get(article_id)
    if not record.image_url:
        raise InputError("Article has no image to crop")
    image_url = await _crop(record.image_url, request)
    return store.update(article_id, editor.select_image(record, image_url))


@app.get("/api/newsletter/clipboard", response_model=ClipboardResponse)
async def newsletter_clipboard():
    """HTML and plain-text renderings of the whole newsletter, in order."""
    payload = composer.compose(store.list())
    return ClipboardResponse(html=payload.html, text=payload.text)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Launch the newsletter server."""
    port = load_config().port

    logger.info("[NEWSLETTER] Starting server on port %d", port)
    logger.info("[NEWSLETTER] Health:   http://localhost:%d/health", port)
    logger.info("[NEWSLETTER] Articles: http://localhost:%d/api/articles", port)

    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")


if __name__ == "__main__":
    main()
