"""Runtime — bridges HTTP requests to mode handlers.

Resolves the request's mode and awaits its handler. Unknown modes get a
plain "Mode not recognized." result: no completion call, no subprocess.
No retries happen at this layer.
"""

from __future__ import annotations

import logging

from hapticode.config import AssistantConfig, require_api_key
from hapticode.modes import DispatchResult, needs_completion, resolve
from hapticode.prompts import MODE_NOT_RECOGNIZED
from hapticode.schemas import AssistantRequest

logger = logging.getLogger(__name__)


async def dispatch(config: AssistantConfig, request: AssistantRequest) -> DispatchResult:
    """Run the handler registered for request.mode.

    Errors from completion modes (MissingCredentialError, CompletionError)
    propagate to the caller; interpreter modes never raise for user code.
    """
    handler = resolve(request.mode)
    if handler is None:
        logger.info(f"Unrecognized mode: {request.mode!r}")
        return DispatchResult(result=MODE_NOT_RECOGNIZED)

    if needs_completion(request.mode):
        require_api_key()

    logger.info(f"Dispatching mode '{request.mode}'")
    return await handler(config, request)
