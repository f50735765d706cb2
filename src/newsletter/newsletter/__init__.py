"""Newsletter composer — article ingestion, AI summaries and email rendering.

Modules:
    config          typed settings, built once and injected
    reader          reader-service fetch + image candidate extraction
    summarizer      Gemini summary with fallback parsing
    image_generator Gemini image generation → ``data:`` URI
    image_proxy     same-origin relay for third-party images
    crop            selection geometry + Pillow crop
    store           ordered article list with pluggable storage
    composer        HTML / plain-text clipboard rendering
    editor          per-record image actions
    ingest          URL → ``IngestResult`` orchestration
"""
