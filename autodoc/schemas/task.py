"""Documentation task and outcome schemas."""

from enum import Enum
from pathlib import PurePosixPath
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class ActionKind(str, Enum):
    """What a documentation task does to the page store."""
    GENERATE = "generate"
    UPDATE = "update"


class OutcomeStatus(str, Enum):
    """Terminal classification of a task run."""
    COMPLETED = "completed"
    PARTIAL_COMPLETION = "partial_completion"
    INCOMPLETE_UPDATE = "incomplete_update"


class DocumentationTask(BaseModel):
    """One documentation request. Immutable once created.

    Field presence rules (generate needs ``file_path``, update needs a
    commit or a page) are enforced by ``agent.orchestrator.validate_task``
    so that violations surface as ``InvalidTaskError`` rather than a
    pydantic validation error.
    """

    model_config = ConfigDict(frozen=True)

    action: ActionKind
    space_id: str = ""
    file_path: Optional[str] = None
    commit_id: Optional[str] = None
    page_id: Optional[str] = None
    parent_page_id: Optional[str] = None

    @field_validator('file_path')
    @classmethod
    def normalize_file_path(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if v.startswith("./"):
            v = v[2:]
        return v or None

    @field_validator('page_id', 'parent_page_id')
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @property
    def page_title(self) -> str:
        """Title used for pages created from this task's file."""
        name = PurePosixPath(self.file_path).name if self.file_path else "Untitled"
        return f"Documentation: {name}"


class Outcome(BaseModel):
    """Final, externally observable result of one task run."""

    model_config = ConfigDict(frozen=True)

    success: bool
    partial: bool = False
    status: OutcomeStatus
    missing_actions: List[str] = []
    page_id: Optional[str] = None
    page_title: Optional[str] = None
    message: str
