"""Action executor: binds action names to collaborator calls.

Arguments are validated against the action's pydantic model before any
collaborator is touched. Failures become ``ActionResult`` errors the engine
can read and react to, except in strict mode where collaborator exceptions
propagate to the caller.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, ValidationError

from autodoc.agent import prompts
from autodoc.agent.actions import (
    ACTION_REGISTRY,
    ActionName,
    CommitArgs,
    ConvertArgs,
    CreatePageArgs,
    FilePathArgs,
    FindPageArgs,
    HistoryArgs,
    PageIdArgs,
    UpdatePageArgs,
)
from autodoc.clients.git import validate_commit_id
from autodoc.clients.markup import to_markup
from autodoc.exceptions import (
    ActionArgumentError,
    AutodocError,
    EngineUnavailableError,
    InvalidPathError,
    InvalidReferenceError,
)

logger = logging.getLogger("autodoc.agent")

# Raised by a malformed request rather than a collaborator; never propagated.
_ARGUMENT_ERRORS = (ActionArgumentError, InvalidReferenceError, InvalidPathError)


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + prompts.TRUNCATION_MARKER


@dataclass(frozen=True)
class ActionResult:
    value: Any = None
    is_error: bool = False
    error: Optional[str] = None

    def payload(self) -> Any:
        """What the engine sees for this result."""
        if self.is_error:
            return {"error": self.error}
        return self.value

    def to_message(self, limit: int = prompts.ACTION_RESULT_TRUNCATION) -> str:
        payload = self.payload()
        text = payload if isinstance(payload, str) else json.dumps(payload, default=str)
        return truncate(text, limit)


class ActionExecutor:
    """Executes registry actions against the page store, source reader and converter.

    Args:
        page_store: ``ConfluenceClient`` or any object with the same methods.
        source_reader: ``GitSourceReader`` or any object with the same methods.
        converter: markdown to storage-format function.
        placeholder_commit_ids: commit ids rejected before reaching the source reader.
    """

    def __init__(
        self,
        page_store: Any,
        source_reader: Any,
        converter: Callable[[str], str] = to_markup,
        placeholder_commit_ids: Iterable[str] = (),
    ):
        self.page_store = page_store
        self.source_reader = source_reader
        self.converter = converter
        self.placeholder_commit_ids = frozenset(placeholder_commit_ids)

        self._handlers: dict[str, Callable[[Any], Any]] = {
            ActionName.READ_FILE.value: self._read_file,
            ActionName.LIST_INTERNAL_DEPENDENCIES.value: self._list_internal_dependencies,
            ActionName.GET_HISTORY.value: self._get_history,
            ActionName.DIFF_COMMIT.value: self._diff_commit,
            ActionName.LIST_CHANGED_FILES.value: self._list_changed_files,
            ActionName.GET_PAGE.value: self._get_page,
            ActionName.FIND_PAGE_BY_TITLE.value: self._find_page_by_title,
            ActionName.CREATE_PAGE.value: self._create_page,
            ActionName.UPDATE_PAGE.value: self._update_page,
            ActionName.CONVERT_TO_MARKUP.value: self._convert_to_markup,
        }

    def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        strict: bool = False,
        log: Optional[logging.LoggerAdapter] = None,
    ) -> ActionResult:
        """Run action *name* with *arguments*.

        Raises:
            EngineUnavailableError: always propagated.
            AutodocError / Exception: collaborator failures, only when *strict*.
        """
        log = log or logger
        try:
            args = self._validate(name, arguments)
            value = self._handlers[name](args)
        except EngineUnavailableError:
            raise
        except _ARGUMENT_ERRORS as exc:
            log.warning("Action %s rejected: %s", name, exc.message, extra={"action_name": name})
            return ActionResult(is_error=True, error=exc.message)
        except AutodocError as exc:
            if strict:
                raise
            log.warning("Action %s failed: %s", name, exc.message, extra={"action_name": name})
            return ActionResult(is_error=True, error=exc.message)
        except Exception as exc:
            if strict:
                raise
            log.warning("Action %s failed: %s: %s", name, type(exc).__name__, exc, extra={"action_name": name})
            return ActionResult(is_error=True, error=f"{type(exc).__name__}: {exc}")

        log.info("Action %s executed", name, extra={"action_name": name})
        return ActionResult(value=value)

    @staticmethod
    def _validate(name: str, arguments: Any) -> BaseModel:
        spec = ACTION_REGISTRY.get(name)
        if spec is None:
            raise ActionArgumentError(name, "unknown action")
        if not isinstance(arguments, dict):
            raise ActionArgumentError(name, "arguments must be a JSON object")
        try:
            return spec.arguments.model_validate(arguments)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
                for err in exc.errors()
            )
            raise ActionArgumentError(name, problems) from exc

    def _commit(self, commit_id: str) -> str:
        return validate_commit_id(commit_id, self.placeholder_commit_ids)

    # ----- source reader actions ------------------------------------------

    def _read_file(self, args: FilePathArgs) -> dict:
        return {"path": args.file_path, "content": self.source_reader.read_file(args.file_path)}

    def _list_internal_dependencies(self, args: FilePathArgs) -> list:
        deps = []
        for path in self.source_reader.list_internal_dependencies(args.file_path):
            content = self.source_reader.read_file(path)
            deps.append({"path": path, "content": truncate(content, prompts.DEPENDENCY_CONTENT_TRUNCATION)})
        return deps

    def _get_history(self, args: HistoryArgs) -> dict:
        entries = self.source_reader.get_history(args.file_path, args.limit)
        return {
            "path": args.file_path,
            "total_commits": len(entries),
            "logic_changes": sum(1 for e in entries if e.is_logic_change),
            "commits": [e.to_dict() for e in entries],
        }

    def _diff_commit(self, args: CommitArgs) -> dict:
        diff = self.source_reader.diff(self._commit(args.commit_id))
        files = list(diff.changed_files)
        return {
            "commit_id": diff.commit_id,
            "diff": truncate(diff.patch_text, prompts.DIFF_TRUNCATION),
            "files": files,
            "summary": f"{len(files)} file(s) changed: {', '.join(files)}" if files else "No files changed",
        }

    def _list_changed_files(self, args: CommitArgs) -> list:
        diff = self.source_reader.diff(self._commit(args.commit_id))
        return self.source_reader.documentable_files(diff.changed_files)

    # ----- page store actions ---------------------------------------------

    def _page_dict(self, page: Any) -> dict:
        data = page.to_dict()
        data["content"] = truncate(data.get("content", ""), prompts.PAGE_CONTENT_TRUNCATION)
        return data

    def _get_page(self, args: PageIdArgs) -> dict:
        return self._page_dict(self.page_store.get_page(args.page_id))

    def _find_page_by_title(self, args: FindPageArgs) -> Optional[dict]:
        page_id = self.page_store.find_page_by_title(args.space_id, args.title)
        if page_id is None:
            return None
        return self._page_dict(self.page_store.get_page(page_id))

    def _create_page(self, args: CreatePageArgs) -> dict:
        page_id = self.page_store.create_page(args.space_id, args.title, args.content, args.parent_id)
        return {"page_id": page_id, "title": args.title}

    def _update_page(self, args: UpdatePageArgs) -> dict:
        page_id = self.page_store.update_page(args.page_id, args.title, args.content, args.version)
        return {"page_id": page_id, "title": args.title, "version": args.version + 1}

    # ----- conversion -----------------------------------------------------

    def _convert_to_markup(self, args: ConvertArgs) -> str:
        return self.converter(args.markdown)
