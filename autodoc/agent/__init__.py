"""Phased tool-orchestration pipeline for documentation tasks."""

from .executor import ActionExecutor, ActionResult
from .orchestrator import DocumentationOrchestrator, validate_task
from .phases import Phase, PhaseName, PhasePlanner
from .repair import PlaceholderSentinels, repair_arguments, repair_record
from .session import ActionRequest, EngineTurn, LiteLLMEngine, ReasoningSession, SessionResult

__all__ = [
    "ActionExecutor",
    "ActionResult",
    "DocumentationOrchestrator",
    "validate_task",
    "Phase",
    "PhaseName",
    "PhasePlanner",
    "PlaceholderSentinels",
    "repair_arguments",
    "repair_record",
    "ActionRequest",
    "EngineTurn",
    "LiteLLMEngine",
    "ReasoningSession",
    "SessionResult",
]
