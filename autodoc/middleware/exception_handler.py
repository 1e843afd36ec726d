"""Exception handler middleware for structured error responses."""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from ..exceptions import AutodocError

logger = logging.getLogger(__name__)


async def autodoc_exception_handler(request: Request, exc: AutodocError) -> JSONResponse:
    """
    Handle domain exceptions and return structured JSON responses.

    Args:
        request: FastAPI request object
        exc: AutodocError instance

    Returns:
        JSONResponse with error details
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AutodocError: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )
