"""Task-local execution state: action records and discovered page identity."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ActionInvocationRecord:
    """One executed action, in the order the engine requested it."""

    phase: str
    action_name: str
    arguments: dict[str, Any]
    result: Any
    is_error: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.is_error


@dataclass
class DiscoveredEntities:
    """Page identity learned from ``get-page`` / ``find-page-by-title`` results.

    Latest successful lookup wins; fields are never cleared.
    """

    page_id: Optional[str] = None
    page_title: Optional[str] = None
    page_version: Optional[int] = None

    def absorb(self, action_name: str, result: Any) -> None:
        if action_name not in ("get-page", "find-page-by-title"):
            return
        if not isinstance(result, dict) or not result.get("id"):
            return
        self.page_id = str(result["id"])
        if result.get("title"):
            self.page_title = result["title"]
        version = result.get("version")
        if version is not None:
            self.page_version = int(version)


@dataclass
class ExecutionState:
    """Everything one orchestrator run accumulates. Never shared between tasks."""

    records: list[ActionInvocationRecord] = field(default_factory=list)
    text: str = ""
    entities: DiscoveredEntities = field(default_factory=DiscoveredEntities)

    def extend(self, records: list[ActionInvocationRecord]) -> None:
        for record in records:
            self.records.append(record)
            if record.succeeded:
                self.entities.absorb(record.action_name, record.result)

    def executed(self) -> set[str]:
        """Names of every invoked action across all phases so far, errored ones included."""
        return {r.action_name for r in self.records}

    def missing(self, required: frozenset[str]) -> list[str]:
        """Required actions not yet executed, in sorted order."""
        return sorted(required - self.executed())

    def last_published_page(self) -> Optional[dict[str, Any]]:
        """Result of the most recent successful create-page / update-page."""
        for record in reversed(self.records):
            if record.succeeded and record.action_name in ("create-page", "update-page"):
                if isinstance(record.result, dict):
                    return record.result
        return None
