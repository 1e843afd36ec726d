"""Reasoning sessions: one bounded, multi-round conversation with the engine.

Each round the engine either answers with text (the session ends) or
requests actions. Requested actions run one at a time, in the order the
engine listed them, and every result is appended to the conversation
before the next round.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import litellm

from autodoc.agent.actions import tool_definitions
from autodoc.agent.circuit_breaker import guarded_call
from autodoc.agent.executor import ActionExecutor
from autodoc.agent.model_config import ModelConfig, resolve_model_config
from autodoc.agent.state import ActionInvocationRecord
from autodoc.exceptions import EngineUnavailableError

logger = logging.getLogger("autodoc.agent")

ArgumentHook = Callable[[str, dict[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class ActionRequest:
    call_id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class EngineTurn:
    text: str = ""
    requests: list[ActionRequest] = field(default_factory=list)


class ReasoningEngine(Protocol):
    def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        force_action: bool = False,
    ) -> EngineTurn:
        ...


# ---------------------------------------------------------------------------
# LiteLLM engine
# ---------------------------------------------------------------------------

class LiteLLMEngine:
    """Reasoning engine backed by ``litellm.completion`` tool calling.

    Every request goes through the circuit breaker for the model endpoint.
    Transport errors, provider errors and responses that cannot be parsed
    all surface as ``EngineUnavailableError``.
    """

    def __init__(
        self,
        model: str,
        api_key: str = "",
        api_base: str = "",
        temperature: float = 0.1,
        timeout: int = 120,
        model_config: Optional[ModelConfig] = None,
        failure_threshold: Optional[int] = None,
        cooldown_seconds: Optional[float] = None,
    ):
        self.model = model
        self.api_key = api_key
        self.api_base = api_base
        self.temperature = temperature
        self.timeout = timeout
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self.model_config = model_config or resolve_model_config(model)
        self.endpoint = f"{api_base or 'default'}::{model}"

    def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        force_action: bool = False,
    ) -> EngineTurn:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "tools": tools,
            "tool_choice": "required" if force_action else "auto",
            "parallel_tool_calls": False,
            "temperature": self.temperature,
            "max_tokens": self.model_config.max_output_tokens,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if self.model_config.extra_body:
            kwargs["extra_body"] = self.model_config.extra_body

        try:
            return guarded_call(
                lambda: self._parse(litellm.completion(**kwargs)),
                self.endpoint,
                failure_threshold=self.failure_threshold,
                cooldown_seconds=self.cooldown_seconds,
            )
        except EngineUnavailableError:
            raise
        except Exception as exc:
            raise EngineUnavailableError(
                f"Reasoning engine request failed: {type(exc).__name__}: {exc}",
                endpoint=self.model,
            ) from exc

    def _parse(self, response: Any) -> EngineTurn:
        try:
            message = response.choices[0].message
        except (AttributeError, IndexError, TypeError) as exc:
            raise EngineUnavailableError("Reasoning engine returned no choices", endpoint=self.model) from exc

        requests = []
        for call in getattr(message, "tool_calls", None) or []:
            raw = call.function.arguments or "{}"
            try:
                arguments = json.loads(raw) if isinstance(raw, str) else dict(raw)
            except (ValueError, TypeError) as exc:
                raise EngineUnavailableError(
                    f"Unparseable arguments for {call.function.name}: {raw[:200]!r}",
                    endpoint=self.model,
                ) from exc
            if not isinstance(arguments, dict):
                raise EngineUnavailableError(
                    f"Arguments for {call.function.name} are not an object",
                    endpoint=self.model,
                )
            requests.append(ActionRequest(call_id=call.id, name=call.function.name, arguments=arguments))

        content = getattr(message, "content", None)
        return EngineTurn(text=content if isinstance(content, str) else "", requests=requests)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass
class SessionResult:
    text: str
    records: list[ActionInvocationRecord]
    rounds: int


class ReasoningSession:
    """Runs bounded conversations against one engine and one executor."""

    def __init__(
        self,
        engine: ReasoningEngine,
        executor: ActionExecutor,
        log: Optional[logging.LoggerAdapter] = None,
    ):
        self.engine = engine
        self.executor = executor
        self.log = log or logger
        self.tools = tool_definitions()

    def run(
        self,
        system_directive: str,
        user_directive: str,
        budget: int,
        force_action: bool,
        phase: str,
        strict: bool = False,
        argument_hook: Optional[ArgumentHook] = None,
    ) -> SessionResult:
        """Converse for at most *budget* rounds.

        *force_action* applies to the first round only. *argument_hook* is
        applied to each request's arguments before execution, and the record
        keeps the arguments that were actually executed.

        Raises:
            EngineUnavailableError: the engine could not be reached.
        """
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": system_directive},
            {"role": "user", "content": user_directive},
        ]
        records: list[ActionInvocationRecord] = []
        text = ""
        rounds = 0

        while rounds < budget:
            turn = self.engine.complete(messages, self.tools, force_action=force_action and rounds == 0)
            rounds += 1
            if turn.text.strip():
                text = turn.text
            if not turn.requests:
                break

            messages.append(_assistant_message(turn))
            for request in turn.requests:
                arguments = dict(request.arguments)
                if argument_hook is not None:
                    arguments = argument_hook(request.name, arguments)

                result = self.executor.execute(request.name, arguments, strict=strict, log=self.log)
                records.append(ActionInvocationRecord(
                    phase=phase,
                    action_name=request.name,
                    arguments=arguments,
                    result=result.payload(),
                    is_error=result.is_error,
                ))
                messages.append({
                    "role": "tool",
                    "tool_call_id": request.call_id,
                    "name": request.name,
                    "content": result.to_message(),
                })

        self.log.info(
            "Session %s finished after %d/%d rounds with %d actions",
            phase, rounds, budget, len(records),
            extra={"phase": phase, "rounds": rounds, "actions": len(records)},
        )
        return SessionResult(text=text, records=records, rounds=rounds)


def _assistant_message(turn: EngineTurn) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": turn.text or None,
        "tool_calls": [
            {
                "id": request.call_id,
                "type": "function",
                "function": {"name": request.name, "arguments": json.dumps(request.arguments)},
            }
            for request in turn.requests
        ],
    }
