"""Push webhook schemas."""

from pydantic import BaseModel
from typing import List, Optional

from .task import Outcome


class WebhookAuthor(BaseModel):
    name: str = ""
    email: str = ""


class WebhookCommit(BaseModel):
    """One commit entry of a push event."""
    id: str
    message: str = ""
    timestamp: str = ""
    url: str = ""
    author: WebhookAuthor = WebhookAuthor()
    added: List[str] = []
    removed: List[str] = []
    modified: List[str] = []


class WebhookRepository(BaseModel):
    id: Optional[int] = None
    name: str = ""
    full_name: str = ""


class WebhookPayload(BaseModel):
    """Subset of a GitHub push event used to schedule documentation updates."""
    ref: str = ""
    commits: List[WebhookCommit] = []
    repository: WebhookRepository = WebhookRepository()


class CommitResult(BaseModel):
    """Per-commit result of a push event."""
    commit_id: str
    status: str  # "processed" | "error"
    outcome: Optional[Outcome] = None
    error: Optional[str] = None


class WebhookResponse(BaseModel):
    """Response after receiving a webhook."""
    success: bool
    message: str
    results: List[CommitResult] = []
