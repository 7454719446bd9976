"""
FastAPI API Server.

REST API for templates, audio uploads, transcription processes and
their structured extraction results. The transcription poller worker
runs separately.

Start with:
    uvicorn datavox.api_server:app --reload --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv
load_dotenv(".env.local")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from datavox.api import dependencies
from datavox.api.middleware import RateLimitMiddleware, RequestContextMiddleware
from datavox.api.processes import router as processes_router
from datavox.api.templates import router as templates_router
from datavox.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle hooks."""
    logger.info("api_server_starting", version=VERSION)
    yield
    await dependencies.shutdown()
    logger.info("api_server_stopping")


app = FastAPI(
    title="DataVox API",
    description="Audio transcription with template-driven structured extraction",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware (last added runs outermost)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(templates_router)
app.include_router(processes_router)


@app.get("/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "service": "datavox"}


@app.get("/", tags=["System"])
async def root() -> dict[str, str]:
    """API root."""
    return {
        "service": "DataVox",
        "version": VERSION,
        "docs": "/docs",
    }
