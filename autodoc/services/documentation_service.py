"""Documentation service: wires settings, collaborators and the orchestrator.

The HTTP API, the webhook and the CLI all drive documentation through this
service. It fills task defaults from configuration, resolves the commit of
page-only updates and fans push events out to concurrent update tasks.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import lru_cache
from typing import Any, List, Optional, Tuple

from autodoc.agent.executor import ActionExecutor
from autodoc.agent.orchestrator import DocumentationOrchestrator
from autodoc.agent.phases import PhasePlanner
from autodoc.agent.repair import PlaceholderSentinels
from autodoc.agent.session import LiteLLMEngine, ReasoningEngine
from autodoc.clients.confluence import ConfluenceClient
from autodoc.clients.git import GitSourceReader
from autodoc.core.config import Settings, get_settings
from autodoc.core.logging_config import get_task_logger
from autodoc.exceptions import AutodocError
from autodoc.schemas import (
    ActionKind,
    CommitResult,
    DocumentationTask,
    Outcome,
    WebhookPayload,
)

logger = logging.getLogger(__name__)


class DocumentationService:
    """Runs documentation tasks against the configured collaborators."""

    def __init__(
        self,
        settings: Settings,
        engine: ReasoningEngine,
        page_store: Any,
        source_reader: Any,
    ):
        self.settings = settings
        self.source_reader = source_reader
        placeholder_commit_ids = frozenset(settings.placeholder_commit_ids)
        executor = ActionExecutor(
            page_store,
            source_reader,
            placeholder_commit_ids=placeholder_commit_ids,
        )
        self.orchestrator = DocumentationOrchestrator(
            engine=engine,
            executor=executor,
            planner=PhasePlanner(settings.max_steps),
            sentinels=PlaceholderSentinels.from_settings(settings),
            placeholder_commit_ids=placeholder_commit_ids,
            history_limit=settings.history_limit,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DocumentationService":
        """Build the production service: Confluence, local git and a LiteLLM engine."""
        engine = LiteLLMEngine(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            api_base=settings.llm_api_base,
            temperature=settings.llm_temperature,
            timeout=settings.llm_timeout,
            failure_threshold=settings.engine_failure_threshold,
            cooldown_seconds=settings.engine_cooldown_seconds,
        )
        page_store = ConfluenceClient(
            settings.confluence_base_url,
            settings.confluence_email,
            settings.confluence_api_token,
        )
        source_reader = GitSourceReader(
            settings.git_repo_path,
            supported_extensions=settings.supported_extensions,
            excluded_dirs=settings.excluded_dirs,
            placeholder_commit_ids=settings.placeholder_commit_ids,
        )
        if not settings.has_confluence_credentials():
            logger.warning("Confluence credentials are not configured; page actions will fail")
        return cls(settings, engine, page_store, source_reader)

    # ----- single task -----------------------------------------------------

    def prepare(self, task: DocumentationTask) -> DocumentationTask:
        """Fill configured defaults and resolve the commit of page-only updates."""
        updates = {}
        if not task.space_id:
            updates["space_id"] = self.settings.confluence_space_id
        if task.action == ActionKind.GENERATE and not task.parent_page_id and self.settings.confluence_parent_page_id:
            updates["parent_page_id"] = self.settings.confluence_parent_page_id
        if task.action == ActionKind.UPDATE and task.page_id and task.commit_id is None:
            updates["commit_id"] = self.source_reader.head_commit()
        return task.model_copy(update=updates) if updates else task

    def run_task(self, task: DocumentationTask) -> Outcome:
        """Run one task synchronously. Domain errors propagate to the caller."""
        task = self.prepare(task)
        log = get_task_logger(
            action=task.action.value,
            file_path=task.file_path,
            commit_id=task.commit_id,
            page_id=task.page_id,
        )
        return self.orchestrator.run(task, log=log)

    # ----- CLI conveniences -------------------------------------------------

    def document_file(self, file_path: str) -> Outcome:
        return self.run_task(DocumentationTask(action=ActionKind.GENERATE, file_path=file_path))

    def document_directory(self, directory: str) -> List[Tuple[str, Outcome]]:
        """Generate documentation for every documentable tracked file under *directory*."""
        results = []
        for path in self.source_reader.list_files(directory):
            results.append((path, self.document_file(path)))
        return results

    def update_for_commit(self, commit_id: str) -> Outcome:
        return self.run_task(DocumentationTask(action=ActionKind.UPDATE, commit_id=commit_id))

    def update_page(self, page_id: str, commit_id: Optional[str] = None) -> Outcome:
        return self.run_task(DocumentationTask(action=ActionKind.UPDATE, page_id=page_id, commit_id=commit_id))

    def recent_commit_ids(self, count: int) -> List[str]:
        return [c.id for c in self.source_reader.recent_commits(count)]

    # ----- push events ----------------------------------------------------

    def process_commits(self, commit_ids: List[str]) -> List[CommitResult]:
        """Run one update task per commit concurrently, preserving input order."""
        if not commit_ids:
            return []

        results: dict[str, CommitResult] = {}
        max_workers = max(1, min(self.settings.webhook_max_workers, len(commit_ids)))
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self.update_for_commit, cid): cid for cid in commit_ids}
            for future in as_completed(futures):
                cid = futures[future]
                try:
                    outcome = future.result()
                    results[cid] = CommitResult(commit_id=cid, status="processed", outcome=outcome)
                except AutodocError as e:
                    logger.error("Documentation update failed for %s: %s", cid[:8], e.message)
                    results[cid] = CommitResult(commit_id=cid, status="error", error=e.message)
                except Exception as e:
                    logger.exception("Documentation update crashed for %s", cid[:8])
                    results[cid] = CommitResult(commit_id=cid, status="error", error=str(e))

        return [results[cid] for cid in commit_ids]

    def process_push(self, payload: WebhookPayload) -> List[CommitResult]:
        commit_ids = []
        for commit in payload.commits:
            if commit.id not in commit_ids:
                commit_ids.append(commit.id)
        logger.info("Processing push", extra={"ref": payload.ref, "commits": len(commit_ids)})
        return self.process_commits(commit_ids)


@lru_cache
def get_documentation_service() -> DocumentationService:
    """FastAPI dependency returning the process-wide service."""
    return DocumentationService.from_settings(get_settings())
