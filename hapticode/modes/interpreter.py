"""Local interpreter modes: execute_code and debug. No completion calls."""

from __future__ import annotations

from typing import TYPE_CHECKING

from hapticode import executor
from hapticode.modes import DispatchResult, register

if TYPE_CHECKING:
    from hapticode.config import AssistantConfig
    from hapticode.schemas import AssistantRequest


@register("execute_code")
async def execute_code(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    output = await executor.run_code(request.code or "", config.execution)
    return DispatchResult(result=output)


@register("debug")
async def debug(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    output = await executor.run_debug(
        request.code or "", request.breakpoints, config.execution
    )
    return DispatchResult(result=output)
