"""Business logic services."""

from .documentation_service import DocumentationService, get_documentation_service

__all__ = ["DocumentationService", "get_documentation_service"]
