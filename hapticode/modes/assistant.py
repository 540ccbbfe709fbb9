"""Completion-backed modes: generate, simplify_code, explain_error.

Each builds its prompt, sends it to Gemini, and strips code fences from the
reply (harmless for explanations, required for code).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from hapticode.config import require_api_key
from hapticode.gemini import GeminiClient
from hapticode.modes import DispatchResult, register
from hapticode.prompts import build_prompt, strip_code_fences

if TYPE_CHECKING:
    from hapticode.config import AssistantConfig
    from hapticode.schemas import AssistantRequest


def make_client(config: AssistantConfig) -> GeminiClient:
    """Build a client for this request. Raises MissingCredentialError."""
    return GeminiClient(require_api_key(), config.completion)


async def _complete(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    prompt = build_prompt(request.mode, text=request.text, code=request.code)
    completion = await make_client(config).generate(prompt)
    return DispatchResult(
        result=strip_code_fences(completion.text),
        model_used=completion.model,
    )


@register("generate", completion=True)
async def generate(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    """Turn a spoken request into Python source."""
    return await _complete(config, request)


@register("simplify_code", completion=True)
async def simplify_code(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    """Rewrite code for beginner readability without changing behavior."""
    return await _complete(config, request)


@register("explain_error", completion=True)
async def explain_error(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    """Explain an error message in plain language."""
    return await _complete(config, request)
