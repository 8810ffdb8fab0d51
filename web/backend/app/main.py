"""FastAPI application for the cmod moderation engine.

Provides REST API endpoints wrapping the cmod package for:
- Moderating single items, content entries and uploaded media files
- Bulk re-scans of the content catalog
- Human review of records the policy could not settle
- Moderation statistics and record listings for dashboards
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cmod import __version__
from web.backend.app.routers import moderation

app = FastAPI(
    title="cmod API",
    description=(
        "REST API for the content moderation engine. "
        "Provides endpoints for moderation, human review, bulk re-scans, "
        "and moderation statistics."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(moderation.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "cmod API",
        "version": __version__,
        "description": "Content moderation engine REST API",
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
