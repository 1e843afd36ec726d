"""Documentation agent endpoint.

Thin: DocumentationService runs the phased orchestration; domain errors are
rendered by the AutodocError exception handler.
"""

from fastapi import APIRouter, Depends

from ..schemas import DocumentationTask, Outcome
from ..services import DocumentationService, get_documentation_service

router = APIRouter(prefix="/api/documentation", tags=["documentation"])


@router.post("/agent", response_model=Outcome)
def run_documentation_agent(
    task: DocumentationTask,
    service: DocumentationService = Depends(get_documentation_service),
):
    """Generate or update documentation for one file, commit or page."""
    return service.run_task(task)
