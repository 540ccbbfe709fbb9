"""HaptiCode assistant — FastAPI app behind the voice-driven code editor.

Loads config.yaml on startup. Exposes POST /api/assistant for the editor
page, plus operational endpoints for health, config viewing, and hot-reload.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hapticode.config import (
    MissingCredentialError,
    get_api_key,
    get_config,
    load_config,
    reload_config,
)
from hapticode.gemini import CompletionError
from hapticode.modes import list_modes
from hapticode.runtime import dispatch
from hapticode.schemas import AssistantRequest, AssistantResponse

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load config on startup and report credential status."""
    config = load_config()
    logger.info(
        f"HaptiCode started (origins={config.allowed_origins}, "
        f"model={config.completion.model}, "
        f"credential={'set' if get_api_key() else 'MISSING'}, "
        f"modes={list_modes()})"
    )
    yield
    logger.info("HaptiCode shutting down")


# Load config early so we can read allowed_origins for CORS middleware.
_boot_config = load_config()

app = FastAPI(title="HaptiCode Assistant", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_boot_config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _respond(result: str, status_code: int = 200, model_used: str | None = None) -> JSONResponse:
    body = AssistantResponse(result=result, modelUsed=model_used)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=status_code)


# ---------------------------------------------------------------------------
# Assistant endpoint
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def invalid_request(request: Request, exc: RequestValidationError):
    """Keep the {"result": ...} shape for malformed bodies too."""
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:]) or 'body'}: {err['msg']}"
        for err in exc.errors()
    )
    logger.warning(f"Rejected malformed request on {request.url.path}: {problems}")
    return _respond(f"Error: Invalid request ({problems})", status_code=422)


@app.post("/api/assistant", response_model=AssistantResponse, response_model_exclude_none=True)
async def assistant(request: AssistantRequest):
    """Handle one editor request.

    Failures come back as {"result": "Error: ..."}. Only a missing credential
    or an unexpected fault uses a 500; upstream completion failures and
    failing user code are normal 200 responses.
    """
    logger.info(f"API hit: mode={request.mode}")
    config = get_config()

    try:
        outcome = await dispatch(config, request)
    except MissingCredentialError as e:
        logger.error(str(e))
        return _respond(f"Error: {e}", status_code=500)
    except CompletionError as e:
        logger.warning(f"Completion failed for mode '{request.mode}': {e}")
        return _respond(f"Error: {e}")
    except Exception as e:
        logger.error(f"Unhandled error for mode '{request.mode}': {e}", exc_info=True)
        return _respond(f"Error: {str(e) or 'Unknown error'}", status_code=500)

    return _respond(outcome.result, model_used=outcome.model_used)


# ---------------------------------------------------------------------------
# Operational endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    """Liveness check."""
    return {
        "status": "healthy",
        "modes": list_modes(),
        "completion": "configured" if get_api_key() else "missing_credential",
    }


@app.get("/config")
async def get_current_config():
    """Return current config as JSON (credential status only, never the key)."""
    return get_config().public_dump()


@app.post("/reload")
async def reload():
    """Hot-reload config.yaml without restarting the server.

    CORS origins are bound at startup and are not affected.
    """
    try:
        new_config = reload_config()
        return {
            "status": "reloaded",
            "model": new_config.completion.model,
            "timeout_seconds": new_config.execution.timeout_seconds,
        }
    except Exception as e:
        logger.error(f"Reload failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Reload failed: {e}")
