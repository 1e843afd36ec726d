"""Pydantic schemas for tasks, outcomes and webhook payloads."""

from .task import (
    ActionKind,
    DocumentationTask,
    Outcome,
    OutcomeStatus,
)
from .webhook import (
    CommitResult,
    WebhookCommit,
    WebhookPayload,
    WebhookResponse,
)

__all__ = [
    "ActionKind",
    "DocumentationTask",
    "Outcome",
    "OutcomeStatus",
    "CommitResult",
    "WebhookCommit",
    "WebhookPayload",
    "WebhookResponse",
]
