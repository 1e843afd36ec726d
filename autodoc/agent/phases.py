"""Phase planning: budgets and required-action sets for one task.

Pure computation. The total step budget is split between Retrieval,
Analysis and Publish; the shares are floored, so the sum never exceeds the
total. Each phase also carries its continuation: the instruction appended
to the directive that seeds its session, naming the phase's required
actions where it has any.
"""

from dataclasses import dataclass
from enum import Enum

from autodoc.agent import prompts
from autodoc.agent.actions import ActionName
from autodoc.schemas import ActionKind, DocumentationTask

RETRIEVAL_SHARE = 0.4
ANALYSIS_SHARE = 0.2
PUBLISH_SHARE = 0.4
RECOVERY_SHARE = 0.5


class PhaseName(str, Enum):
    RETRIEVAL = "retrieval"
    ANALYSIS = "analysis"
    PUBLISH = "publish"

    @property
    def recovery(self) -> str:
        """Phase label stamped on records produced by this phase's recovery attempt."""
        return f"{self.value}:recovery"


@dataclass(frozen=True)
class Phase:
    name: PhaseName
    step_budget: int
    required_actions: frozenset[str]
    force_action: bool
    continuation: str = ""

    @property
    def gated(self) -> bool:
        return bool(self.required_actions)

    @property
    def recovery_budget(self) -> int:
        return recovery_budget(self.step_budget)


def recovery_budget(phase_budget: int) -> int:
    return int(phase_budget * RECOVERY_SHARE)


def _share(total: int, fraction: float) -> int:
    # Integer arithmetic keeps e.g. 0.4 * 10 from landing on 3.9999.
    return (total * int(fraction * 10)) // 10


def required_actions(task: DocumentationTask) -> tuple[frozenset[str], frozenset[str]]:
    """Return (retrieval, publish) required-action sets for *task*."""
    if task.action == ActionKind.GENERATE:
        retrieval = {ActionName.READ_FILE, ActionName.LIST_INTERNAL_DEPENDENCIES, ActionName.GET_HISTORY}
        publish = {ActionName.CONVERT_TO_MARKUP, ActionName.CREATE_PAGE}
    elif task.page_id:
        retrieval = {ActionName.GET_PAGE, ActionName.DIFF_COMMIT}
        publish = {ActionName.CONVERT_TO_MARKUP, ActionName.UPDATE_PAGE}
    else:
        retrieval = {ActionName.DIFF_COMMIT, ActionName.FIND_PAGE_BY_TITLE}
        publish = {ActionName.CONVERT_TO_MARKUP, ActionName.UPDATE_PAGE}
    return frozenset(a.value for a in retrieval), frozenset(a.value for a in publish)


def action_listing(actions: frozenset[str]) -> str:
    """Comma-separated, sorted action names as they appear in directives."""
    return ", ".join(sorted(actions))


class PhasePlanner:
    """Computes the ordered phases for a task from a total step budget."""

    def __init__(self, max_steps: int):
        self.max_steps = max_steps

    def plan(self, task: DocumentationTask) -> list[Phase]:
        retrieval, publish = required_actions(task)
        verb = "create a new page" if task.action == ActionKind.GENERATE else "update the existing page"
        return [
            Phase(
                PhaseName.RETRIEVAL, _share(self.max_steps, RETRIEVAL_SHARE), retrieval, True,
                prompts.RETRIEVAL_INSTRUCTION.format(required=action_listing(retrieval)),
            ),
            Phase(
                PhaseName.ANALYSIS, _share(self.max_steps, ANALYSIS_SHARE), frozenset(), False,
                prompts.ANALYSIS_INSTRUCTION,
            ),
            Phase(
                PhaseName.PUBLISH, _share(self.max_steps, PUBLISH_SHARE), publish, True,
                prompts.PUBLISH_INSTRUCTION.format(verb=verb, required=action_listing(publish)),
            ),
        ]
