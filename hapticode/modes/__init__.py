"""Mode registry — global name-based lookup for request handlers.

Handlers are async functions decorated with ``@register("<mode>")``. The
dispatcher resolves the request's ``mode`` string to a handler here; an
unregistered mode resolves to ``None``.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hapticode.config import AssistantConfig
    from hapticode.schemas import AssistantRequest


@dataclass
class DispatchResult:
    result: str
    model_used: str | None = None


ModeHandler = Callable[["AssistantConfig", "AssistantRequest"], Awaitable[DispatchResult]]

_registry: dict[str, ModeHandler] = {}
_needs_completion: set[str] = set()


def register(mode: str, *, completion: bool = False) -> Callable[[ModeHandler], ModeHandler]:
    """Register a handler under ``mode``.

    ``completion=True`` marks modes that call the completion service and
    therefore need the API credential::

        @register("generate", completion=True)
        async def generate(config, request) -> DispatchResult:
            ...
    """

    def decorator(handler: ModeHandler) -> ModeHandler:
        _registry[mode] = handler
        if completion:
            _needs_completion.add(mode)
        return handler

    return decorator


def resolve(mode: str) -> ModeHandler | None:
    """Return the handler for ``mode``, or None if it isn't registered."""
    return _registry.get(mode)


def needs_completion(mode: str) -> bool:
    return mode in _needs_completion


def list_modes() -> list[str]:
    """Return all registered mode names."""
    return list(_registry.keys())


# Auto-import handler modules so the registry is populated on first access.
import hapticode.modes.assistant as _assistant  # noqa: E402, F401
import hapticode.modes.interpreter as _interpreter  # noqa: E402, F401
