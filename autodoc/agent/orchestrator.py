"""Phased documentation orchestrator.

Turns one ``DocumentationTask`` into a sequence of reasoning sessions:

    Retrieval -> RetrievalRecoveryCheck -> Analysis -> Publish -> PublishRecoveryCheck -> Done

Gated phases (Retrieval, Publish) must execute their required actions. A
gate that finds actions missing runs exactly one recovery session with half
the phase budget, then accepts whatever that session produced. Publish runs
with the executor in strict mode and repairs placeholder page identity in
``update-page`` arguments before they execute.

Engine failures and Publish collaborator failures propagate; every other
shortfall is reported through the returned ``Outcome``.
"""

import json
import logging
from typing import Any, Optional

from autodoc.agent import prompts
from autodoc.agent.actions import PUBLISH_CRITICAL
from autodoc.agent.executor import ActionExecutor, truncate
from autodoc.agent.phases import Phase, PhaseName, PhasePlanner
from autodoc.agent.repair import PlaceholderSentinels, repair_arguments
from autodoc.agent.session import ReasoningEngine, ReasoningSession, SessionResult
from autodoc.agent.state import ExecutionState
from autodoc.clients.git import validate_commit_id
from autodoc.core.logging_config import TaskLogger, get_task_logger
from autodoc.exceptions import InvalidTaskError
from autodoc.schemas import ActionKind, DocumentationTask, Outcome, OutcomeStatus


def validate_task(task: DocumentationTask, placeholder_commit_ids: frozenset[str] = frozenset()) -> None:
    """Reject tasks that cannot be orchestrated.

    Raises:
        InvalidTaskError: missing space, file path or commit/page.
        InvalidReferenceError: malformed or placeholder commit id.
    """
    if not task.space_id or not task.space_id.strip():
        raise InvalidTaskError("space_id is required", field="space_id")
    # A supplied commit id is checked as given, empty string included.
    if task.commit_id is not None:
        validate_commit_id(task.commit_id, placeholder_commit_ids)

    if task.action == ActionKind.GENERATE:
        if not task.file_path:
            raise InvalidTaskError("file_path is required to generate documentation", field="file_path")
    elif task.commit_id is None and not task.page_id:
        raise InvalidTaskError("commit_id or page_id is required to update documentation", field="commit_id")


class DocumentationOrchestrator:
    """Runs documentation tasks through the phased pipeline.

    The orchestrator holds only configuration and collaborators; each call
    to :meth:`run` builds its own ``ExecutionState``, so one instance can
    serve concurrent tasks.
    """

    def __init__(
        self,
        engine: ReasoningEngine,
        executor: ActionExecutor,
        planner: PhasePlanner,
        sentinels: PlaceholderSentinels,
        placeholder_commit_ids: frozenset[str] = frozenset(),
        history_limit: int = 15,
    ):
        self.engine = engine
        self.executor = executor
        self.planner = planner
        self.sentinels = sentinels
        self.placeholder_commit_ids = frozenset(placeholder_commit_ids)
        self.history_limit = history_limit

    def run(self, task: DocumentationTask, log: Optional[TaskLogger] = None) -> Outcome:
        """Run *task* to completion and return its Outcome.

        Raises:
            InvalidTaskError, InvalidReferenceError: before any collaborator call.
            EngineUnavailableError: the reasoning engine failed in any phase.
            AutodocError: a collaborator failed during Publish.
        """
        validate_task(task, self.placeholder_commit_ids)
        log = log or get_task_logger(
            action=task.action.value,
            file_path=task.file_path,
            commit_id=task.commit_id,
            page_id=task.page_id,
        )
        log.info("Documentation task started")

        state = ExecutionState()
        session = ReasoningSession(self.engine, self.executor, log)
        retrieval, analysis, publish = self.planner.plan(task)
        system = _system_directive(task)

        # Retrieval + gate
        result = session.run(
            system, self._retrieval_directive(task) + retrieval.continuation, retrieval.step_budget,
            force_action=True, phase=retrieval.name.value,
        )
        self._absorb(state, result)
        recovered = self._recover(session, state, system, retrieval, log)

        # Analysis (ungated)
        result = session.run(
            system, self._analysis_directive(state, recovered, analysis), analysis.step_budget,
            force_action=analysis.force_action, phase=analysis.name.value,
        )
        self._absorb(state, result)

        # Publish + gate, strict with argument repair
        result = session.run(
            system, self._publish_directive(task, state, publish), publish.step_budget,
            force_action=True, phase=publish.name.value,
            strict=True, argument_hook=self._repair_hook(state),
        )
        self._absorb(state, result)
        self._recover(session, state, system, publish, log, strict=True)

        outcome = self._build_outcome(task, state, retrieval, publish)
        log.info(
            "Documentation task finished: %s", outcome.status.value,
            extra={"status": outcome.status.value, "missing_actions": outcome.missing_actions,
                   "result_page_id": outcome.page_id},
        )
        return outcome

    # ----- gate ------------------------------------------------------------

    def _recover(
        self,
        session: ReasoningSession,
        state: ExecutionState,
        system: str,
        phase: Phase,
        log: logging.LoggerAdapter,
        strict: bool = False,
    ) -> bool:
        """Run the single recovery attempt for *phase* if its gate fails."""
        missing = state.missing(phase.required_actions)
        if not missing:
            return False

        log.warning(
            "Required actions missing after %s: %s", phase.name.value, ", ".join(missing),
            extra={"phase": phase.name.value, "missing_actions": missing},
        )
        directive = state.text + prompts.RECOVERY_INSTRUCTION.format(missing=", ".join(missing))
        result = session.run(
            system, directive, phase.recovery_budget,
            force_action=True, phase=phase.name.recovery,
            strict=strict,
            argument_hook=self._repair_hook(state) if phase.name == PhaseName.PUBLISH else None,
        )
        self._absorb(state, result)
        return True

    @staticmethod
    def _absorb(state: ExecutionState, result: SessionResult) -> None:
        state.extend(result.records)
        if result.text.strip():
            state.text = result.text

    def _repair_hook(self, state: ExecutionState):
        def hook(action_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
            return repair_arguments(action_name, arguments, state.entities, self.sentinels)
        return hook

    # ----- directives -----------------------------------------------------

    def _retrieval_directive(self, task: DocumentationTask) -> str:
        if task.action == ActionKind.GENERATE:
            parent = prompts.PARENT_CLAUSE.format(parent_page_id=task.parent_page_id) if task.parent_page_id else ""
            return prompts.GENERATE_USER_DIRECTIVE.format(
                file_path=task.file_path,
                history_limit=self.history_limit,
                space_id=task.space_id,
                title=task.page_title,
                parent_clause=parent,
            )
        if task.page_id:
            return prompts.UPDATE_WITH_PAGE_USER_DIRECTIVE.format(page_id=task.page_id, commit_id=task.commit_id)
        return prompts.UPDATE_BY_COMMIT_USER_DIRECTIVE.format(commit_id=task.commit_id, space_id=task.space_id)

    @staticmethod
    def _analysis_directive(state: ExecutionState, recovered: bool, phase: Phase) -> str:
        parts = [state.text]
        if recovered:
            parts.append(prompts.ANALYSIS_RECOVERY_NOTE)

        retrieved = [r for r in state.records if r.succeeded]
        if retrieved:
            parts.append(prompts.ANALYSIS_DIGEST_HEADER)
            for record in retrieved:
                body = record.result if isinstance(record.result, str) else json.dumps(record.result, default=str)
                parts.append(prompts.ANALYSIS_DIGEST_ENTRY.format(
                    action_name=record.action_name,
                    arguments=json.dumps(record.arguments, default=str),
                    result=truncate(body, prompts.DIGEST_ENTRY_TRUNCATION),
                ))
        parts.append(phase.continuation)
        return "".join(parts)

    @staticmethod
    def _publish_directive(task: DocumentationTask, state: ExecutionState, phase: Phase) -> str:
        directive = state.text + phase.continuation
        if task.action == ActionKind.GENERATE:
            parent = (
                prompts.PUBLISH_PARENT_CLAUSE.format(parent_page_id=task.parent_page_id)
                if task.parent_page_id else ""
            )
            directive += prompts.PUBLISH_GENERATE_TARGET.format(
                space_id=task.space_id, title=task.page_title, parent_clause=parent,
            )
        elif state.entities.page_id:
            entities = state.entities
            directive += prompts.PUBLISH_EXACT_VALUES.format(
                page_id=entities.page_id,
                title=entities.page_title or "",
                version=entities.page_version if entities.page_version is not None else 1,
            )
        return directive

    # ----- outcome --------------------------------------------------------

    @staticmethod
    def _build_outcome(
        task: DocumentationTask,
        state: ExecutionState,
        retrieval: Phase,
        publish: Phase,
    ) -> Outcome:
        required = retrieval.required_actions | publish.required_actions
        missing = state.missing(required)
        published = state.last_published_page() or {}
        page_id = published.get("page_id")
        page_title = published.get("title")

        if not missing:
            return Outcome(
                success=True,
                status=OutcomeStatus.COMPLETED,
                page_id=page_id,
                page_title=page_title,
                message=f"Documentation {'generated' if task.action == ActionKind.GENERATE else 'updated'} successfully",
            )

        critical = PUBLISH_CRITICAL.intersection(missing)
        if task.action == ActionKind.UPDATE and critical:
            return Outcome(
                success=False,
                partial=bool(required & state.executed()),
                status=OutcomeStatus.INCOMPLETE_UPDATE,
                missing_actions=missing,
                page_id=page_id,
                page_title=page_title,
                message=f"Update incomplete: required actions never executed: {', '.join(missing)}",
            )

        return Outcome(
            success=False,
            partial=True,
            status=OutcomeStatus.PARTIAL_COMPLETION,
            missing_actions=missing,
            page_id=page_id,
            page_title=page_title,
            message=f"Documentation partially completed; missing actions: {', '.join(missing)}",
        )


def _system_directive(task: DocumentationTask) -> str:
    if task.action == ActionKind.GENERATE:
        return prompts.GENERATE_SYSTEM_DIRECTIVE
    return prompts.UPDATE_SYSTEM_DIRECTIVE
