"""API routes."""

from .documentation import router as documentation_router
from .webhooks import router as webhooks_router

__all__ = [
    "documentation_router",
    "webhooks_router",
]
