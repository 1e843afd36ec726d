"""Action registry: the fixed catalogue of actions the reasoning engine may request.

Each action declares a pydantic argument model. Its JSON schema is what the
engine sees as the tool's parameters, and the same model validates the
arguments the engine sends back before anything is executed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class ActionName(str, Enum):
    READ_FILE = "read-file"
    LIST_INTERNAL_DEPENDENCIES = "list-internal-dependencies"
    GET_HISTORY = "get-history"
    DIFF_COMMIT = "diff-commit"
    LIST_CHANGED_FILES = "list-changed-files"
    GET_PAGE = "get-page"
    FIND_PAGE_BY_TITLE = "find-page-by-title"
    CREATE_PAGE = "create-page"
    UPDATE_PAGE = "update-page"
    CONVERT_TO_MARKUP = "convert-to-markup"


# Actions whose absence after Publish makes an update task a failure.
PUBLISH_CRITICAL: frozenset[str] = frozenset({
    ActionName.CONVERT_TO_MARKUP.value,
    ActionName.CREATE_PAGE.value,
    ActionName.UPDATE_PAGE.value,
})


class _Arguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FilePathArgs(_Arguments):
    file_path: str = Field(..., min_length=1, description="Repository-relative path of the source file")


class HistoryArgs(FilePathArgs):
    limit: int = Field(15, ge=1, le=100, description="Maximum number of commits to inspect")


class CommitArgs(_Arguments):
    commit_id: str = Field(..., description="Full or abbreviated git commit hash")


class PageIdArgs(_Arguments):
    page_id: str = Field(..., min_length=1, description="Identifier of the documentation page")


class FindPageArgs(_Arguments):
    space_id: str = Field(..., min_length=1, description="Space to search")
    title: str = Field(..., min_length=1, description="Exact page title, e.g. 'Documentation: orders.py'")


class CreatePageArgs(_Arguments):
    space_id: str = Field(..., min_length=1, description="Space the page is created in")
    title: str = Field(..., min_length=1, description="Page title")
    content: str = Field(..., description="Page body in storage format (output of convert-to-markup)")
    parent_id: Optional[str] = Field(None, description="Optional parent page identifier")


class UpdatePageArgs(_Arguments):
    page_id: str = Field(..., min_length=1, description="Identifier of the page to update")
    title: str = Field(..., min_length=1, description="Page title")
    content: str = Field(..., description="New page body in storage format (output of convert-to-markup)")
    version: int = Field(..., ge=1, description="Current version number of the page as returned by get-page")


class ConvertArgs(_Arguments):
    markdown: str = Field(..., description="Markdown documentation to convert")


@dataclass(frozen=True)
class ActionSpec:
    name: ActionName
    description: str
    arguments: Type[BaseModel]

    def tool_definition(self) -> dict[str, Any]:
        """OpenAI-style function tool definition."""
        schema = self.arguments.model_json_schema()
        schema.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": schema,
            },
        }


ACTION_REGISTRY: dict[str, ActionSpec] = {
    spec.name.value: spec
    for spec in (
        ActionSpec(
            ActionName.READ_FILE,
            "Get the current content of a source file from the repository.",
            FilePathArgs,
        ),
        ActionSpec(
            ActionName.LIST_INTERNAL_DEPENDENCIES,
            "List the repository-internal modules a file imports, recursively, with their content.",
            FilePathArgs,
        ),
        ActionSpec(
            ActionName.GET_HISTORY,
            "Get the commit history of a file, flagging commits that changed business logic.",
            HistoryArgs,
        ),
        ActionSpec(
            ActionName.DIFF_COMMIT,
            "Get the unified diff of a commit together with the list of files it changed.",
            CommitArgs,
        ),
        ActionSpec(
            ActionName.LIST_CHANGED_FILES,
            "List the documentable files a commit changed (supported extensions, excluded directories removed).",
            CommitArgs,
        ),
        ActionSpec(
            ActionName.GET_PAGE,
            "Get an existing documentation page: id, title, current version and body.",
            PageIdArgs,
        ),
        ActionSpec(
            ActionName.FIND_PAGE_BY_TITLE,
            "Find a documentation page by exact title within a space. Returns null when absent.",
            FindPageArgs,
        ),
        ActionSpec(
            ActionName.CREATE_PAGE,
            "Create a new documentation page from storage-format content.",
            CreatePageArgs,
        ),
        ActionSpec(
            ActionName.UPDATE_PAGE,
            "Replace the body of an existing documentation page. Pass the version returned by get-page.",
            UpdatePageArgs,
        ),
        ActionSpec(
            ActionName.CONVERT_TO_MARKUP,
            "Convert markdown documentation into the page storage format.",
            ConvertArgs,
        ),
    )
}


def tool_definitions() -> list[dict[str, Any]]:
    """Every registered action as an engine tool definition, in registry order."""
    return [spec.tool_definition() for spec in ACTION_REGISTRY.values()]
