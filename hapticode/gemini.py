"""Gemini completion client — Generative Language REST API over httpx.

Deployments differ in which API version serves which model, so a request is
tried against every configured version in order. If the preferred model is
rejected everywhere, the model listing is queried for a usable text model
and the prompt is retried once against it. Nothing is cached between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from hapticode.config import CompletionSettings

logger = logging.getLogger(__name__)

NO_RESULT = "# No result"


class CompletionError(Exception):
    """All version/model attempts were exhausted."""


@dataclass
class CompletionAttempt:
    succeeded: bool
    payload: dict[str, Any] = field(default_factory=dict)
    api_version: str | None = None

    @property
    def error_message(self) -> str | None:
        error = self.payload.get("error")
        if isinstance(error, dict):
            return error.get("message") or None
        return None


@dataclass
class CompletionResult:
    text: str
    model: str


def _strip_model_prefix(name: str) -> str:
    return name[len("models/"):] if name.startswith("models/") else name


def extract_text(payload: dict[str, Any]) -> str:
    """Pull candidates[0].content.parts[0].text out of a generateContent reply."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return NO_RESULT
    return text or NO_RESULT


def pick_model(models: list[dict[str, Any]], settings: CompletionSettings) -> str | None:
    """Choose a text-generation model from a /models listing.

    Names must contain the vendor marker and none of the excluded markers.
    Models advertising generateContent win over the rest.
    """
    marker = settings.vendor_marker.lower()
    excluded = [m.lower() for m in settings.excluded_model_markers]

    def usable(name: str) -> bool:
        lowered = name.lower()
        return marker in lowered and not any(x in lowered for x in excluded)

    candidates = [m for m in models if isinstance(m, dict) and usable(m.get("name") or "")]
    preferred = [
        m for m in candidates
        if "generateContent" in (m.get("supportedGenerationMethods") or [])
    ]
    ranked = preferred or candidates
    if not ranked:
        return None
    return _strip_model_prefix(ranked[0]["name"])


class GeminiClient:
    """Thin async wrapper over generateContent and the model listing."""

    def __init__(
        self,
        api_key: str,
        settings: CompletionSettings,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.settings = settings
        self._client = client

    async def _request(self, method: str, url: str, **kwargs) -> tuple[bool, dict]:
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        try:
            if self._client is not None:
                resp = await self._client.request(method, url, headers=headers, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self.settings.request_timeout) as client:
                    resp = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"Gemini {method} {url} failed: {e}")
            return False, {"error": {"message": str(e)}}

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        return resp.is_success, data

    async def generate_with_model(self, model: str, prompt: str) -> CompletionAttempt:
        """Try each API version in order; return the first success or the last failure."""
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        last = CompletionAttempt(succeeded=False)

        for version in self.settings.api_versions:
            url = f"{self.settings.base_url}/{version}/models/{model}:generateContent"
            ok, data = await self._request("POST", url, json=body)
            if ok:
                return CompletionAttempt(succeeded=True, payload=data, api_version=version)
            last = CompletionAttempt(succeeded=False, payload=data, api_version=version)
            logger.info(
                f"Model '{model}' rejected on {version}: "
                f"{last.error_message or 'no detail'}"
            )

        return last

    async def discover_model(self) -> str | None:
        """Query each version's model listing and pick the first usable model."""
        for version in self.settings.api_versions:
            url = f"{self.settings.base_url}/{version}/models"
            ok, data = await self._request("GET", url)
            if not ok:
                continue
            pick = pick_model(data.get("models") or [], self.settings)
            if pick:
                return pick
        return None

    async def generate(self, prompt: str) -> CompletionResult:
        """Run the prompt against the preferred model, falling back to discovery.

        Raises CompletionError when every attempt fails.
        """
        model = self.settings.model
        logger.info(f"Requesting completion from model: {model}")
        attempt = await self.generate_with_model(model, prompt)

        if not attempt.succeeded:
            logger.warning(f"Model '{model}' failed on all API versions, auto-discovering...")
            discovered = await self.discover_model()
            if not discovered:
                raise CompletionError(
                    attempt.error_message
                    or "No working Gemini models found for this API key."
                )
            model = discovered
            logger.info(f"Switched to model: {model}")
            attempt = await self.generate_with_model(model, prompt)

        if not attempt.succeeded:
            raise CompletionError(attempt.error_message or "Gemini API error (unknown).")

        return CompletionResult(text=extract_text(attempt.payload), model=model)
