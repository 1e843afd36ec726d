"""Main FastAPI application."""

import logging
import time

from fastapi import FastAPI

from .api import documentation_router, webhooks_router
from .core.config import settings
from .core.logging_config import setup_logging
from .exceptions import AutodocError
from .middleware.exception_handler import autodoc_exception_handler
from .middleware.request_context import RequestContextMiddleware

# Setup logging first
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AutoDoc API",
    description=(
        "Generates and maintains Confluence documentation pages for source files "
        "by driving a reasoning engine through retrieval, analysis and publish phases."
    ),
    version="1.0.0",
)

app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(AutodocError, autodoc_exception_handler)

logger.info(
    "AutoDoc API started | model=%s | repo=%s | confluence=%s | webhook_secret=%s",
    settings.llm_model,
    settings.git_repo_path,
    "configured" if settings.has_confluence_credentials() else "missing",
    "set" if settings.webhook_secret else "unset",
)

app.include_router(documentation_router)
app.include_router(webhooks_router)


_startup_time = time.monotonic()


@app.get("/health")
def health_check():
    """Health check endpoint. Never calls collaborators."""
    return {
        "status": "healthy",
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": "1.0.0",
        "model": settings.llm_model,
    }
