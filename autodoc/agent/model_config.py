"""
Model configuration and constraint resolution.

Single source of truth for engine output limits. LiteLLM's model registry is
used for anything not listed in the override table; models that are in
neither raise ModelConfigError instead of running with guessed limits.

The documentation agent depends on tool calling in every phase, so a model
that reports no tool-calling support is rejected here rather than failing
halfway through a task.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import litellm

from autodoc.exceptions import AutodocError, ErrorCode

logger = logging.getLogger("autodoc.agent")


class ModelConfigError(AutodocError):
    """Model not found in override table or litellm registry, or unusable."""

    def __init__(self, message: str, model: str = ""):
        super().__init__(
            message,
            ErrorCode.MODEL_CONFIG_ERROR,
            status_code=500,
            details={"model": model} if model else {},
        )


@dataclass(frozen=True)
class ModelConfig:
    """Constraints and provider quirks for a specific engine model."""

    context_window: int        # max input tokens the model accepts
    max_output_tokens: int     # actual provider limit for completions
    supports_tool_calling: bool

    # Provider-specific request body params, passed as extra_body
    extra_body: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [
            f"ctx={self.context_window:,}",
            f"out={self.max_output_tokens:,}",
            f"tools={'yes' if self.supports_tool_calling else 'no'}",
        ]
        if self.extra_body:
            parts.append(f"extra_body={self.extra_body}")
        return " ".join(parts)


# ──────────────────────────────────────────────────────────────────────
# Override table for models where litellm reports incorrect values or
# that require provider-specific parameters.
# Keys are the model identifier WITHOUT the provider prefix
# (e.g., "gpt-4o-mini" not "openrouter/openai/gpt-4o-mini").
# ──────────────────────────────────────────────────────────────────────

MODEL_OVERRIDES: dict[str, ModelConfig] = {
    "gpt-4o-mini": ModelConfig(
        context_window=128_000,
        max_output_tokens=16_384,
        supports_tool_calling=True,
    ),
    "gpt-4o": ModelConfig(
        context_window=128_000,
        max_output_tokens=16_384,
        supports_tool_calling=True,
    ),
    # Gemini via OpenAI-compatible endpoints truncates long storage-format
    # pages above 8K output.
    "google/gemini-2.0-flash-001": ModelConfig(
        context_window=1_048_576,
        max_output_tokens=8_192,
        supports_tool_calling=True,
    ),
    # Qwen3 Coder (Ollama, common local model)
    "qwen3-coder:30b": ModelConfig(
        context_window=32_768,
        max_output_tokens=8_192,
        supports_tool_calling=True,
    ),
}

_DEFAULT_OUTPUT_TOKENS = 4_096


def _strip_provider_prefix(model: str) -> str:
    """Strip provider routing prefixes like 'openrouter/' or 'ollama/'.

    Examples:
        'openrouter/openai/gpt-4o-mini' → 'openai/gpt-4o-mini' → 'gpt-4o-mini'
        'ollama/qwen3-coder:30b'        → 'qwen3-coder:30b'
    """
    PROVIDER_PREFIXES = ("openrouter/", "openai/", "ollama/", "ollama_chat/", "litellm_proxy/", "hosted_vllm/")
    stripped = True
    while stripped:
        stripped = False
        for prefix in PROVIDER_PREFIXES:
            if model.startswith(prefix):
                model = model[len(prefix):]
                stripped = True
    return model


def resolve_model_config(model: str) -> ModelConfig:
    """Resolve the actual constraints for a model.

    Resolution order:
    1. Check override table (exact match after stripping provider prefix)
    2. Query litellm's model registry
    3. Raise ModelConfigError (no silent defaults)

    Raises:
        ModelConfigError: If the model cannot be resolved or does not
            support tool calling.
    """
    bare = _strip_provider_prefix(model)

    if bare in MODEL_OVERRIDES:
        config = MODEL_OVERRIDES[bare]
    else:
        config = _lookup_litellm(model)

    if config is None:
        available = ", ".join(sorted(MODEL_OVERRIDES.keys()))
        raise ModelConfigError(
            f"Model '{model}' (bare: '{bare}') not found in override table or litellm registry. "
            f"Add an entry to MODEL_OVERRIDES in autodoc/agent/model_config.py. "
            f"Known models: {available}",
            model=model,
        )

    if not config.supports_tool_calling:
        raise ModelConfigError(
            f"Model '{model}' does not support tool calling, which every documentation phase requires",
            model=model,
        )
    return config


def _lookup_litellm(model: str) -> ModelConfig | None:
    try:
        info = litellm.get_model_info(model)
    except Exception as e:
        logger.warning("litellm lookup failed for '%s': %s", model, e)
        return None
    if not info:
        return None

    ctx = info.get("max_input_tokens") or info.get("max_tokens") or 0
    out = info.get("max_output_tokens") or _DEFAULT_OUTPUT_TOKENS
    if not ctx:
        return None
    # Sanity: max_output should never exceed context window
    if out > ctx:
        out = ctx // 2
    return ModelConfig(
        context_window=ctx,
        max_output_tokens=out,
        supports_tool_calling=bool(info.get("supports_function_calling", True)),
    )
