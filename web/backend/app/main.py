"""FastAPI application for the eaimport web service.

Provides REST endpoints wrapping the eaimport package for:
- Format detection of uploaded model files
- Parsing and normalization into the intermediate representation
- End-to-end import into an in-memory model
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the eaimport package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eaimport import __version__
from web.backend.app.routers import imports

app = FastAPI(
    title="eaimport API",
    description=(
        "REST API for importing BPMN 2.0, ArchiMate Model Exchange and "
        "Sparx EA XMI files into a canonical architecture model."
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
app.include_router(imports.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "eaimport API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    return {"status": "healthy"}
