"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prompt_shelf.api.errors import register_error_handlers
from prompt_shelf.api.router import api_router
from prompt_shelf.config import get_settings
from prompt_shelf.db.client import get_supabase_client
from prompt_shelf.utils.logging import setup_logging

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("promptshelf.starting", port=settings.port)

    if settings.uses_dev_secret:
        logger.warning("promptshelf.dev_jwt_secret", hint="set JWT_SECRET before deploying")

    get_supabase_client()
    logger.info("promptshelf.supabase_connected")

    yield

    logger.info("promptshelf.shutdown")


app = FastAPI(
    title="PromptShelf",
    description="Shared libraries of image-generation prompts with template analysis",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Service info endpoint."""
    return {"service": "promptshelf", "version": VERSION}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "promptshelf", "version": VERSION}
