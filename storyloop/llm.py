"""Generation client — HTTP connection to an Ollama server.

The synchronizer runs any object matching the protocol:

    async def generate(self, prompt: str) -> GenerationResult: ...

`generate` never raises for network or schema problems. Those are turned
into a GenerationFailure at this boundary, so a bad response can only ever
show up as an inline error in the story, never as a crash.

Production code constructs an OllamaClient from Settings. Tests use a
scripted stub (see conftest.py) or patch httpx directly.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from storyloop.config import Settings
from storyloop.models import GenerationFailure, GenerationResult, GenerationSuccess, StoryTurn

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol — every generator must match this signature
# ---------------------------------------------------------------------------

class Generator(Protocol):
    async def generate(self, prompt: str) -> GenerationResult: ...


# ---------------------------------------------------------------------------
# Errors — raised internally, converted to GenerationFailure by generate()
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Base class for every failure talking to the model."""


class TransportError(LLMError):
    """The backend could not be reached or answered with an error."""


class SchemaError(LLMError):
    """The backend answered, but not with a valid StoryTurn."""


# ---------------------------------------------------------------------------
# OllamaClient — POST /api/generate with a JSON schema as `format`
# ---------------------------------------------------------------------------

class OllamaClient:
    """Async client for Ollama's non-streaming generate endpoint.

    Request:  POST {base_url}/api/generate
              {"model": ..., "prompt": ..., "format": <schema>, "stream": false}
    Response: {"response": "<JSON text matching the schema>", ...}

    Args:
        base_url: Base URL of the server, e.g. "http://localhost:11434".
        model:    Model identifier, e.g. "llama3.2".
        timeout:  HTTP timeout in seconds, or None to wait indefinitely.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._schema = StoryTurn.model_json_schema()

    @classmethod
    def from_settings(cls, settings: Settings) -> OllamaClient:
        return cls(settings.base_url, settings.model, settings.request_timeout)

    def _build_request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        """Return (url, body) for one generation."""
        url = f"{self._base_url}/api/generate"
        body = {
            "model": self._model,
            "prompt": prompt,
            "format": self._schema,
            "stream": False,
        }
        return url, body

    def _parse_response(self, data: Any) -> StoryTurn:
        """Validate the model's structured output inside the response body."""
        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise SchemaError("Unexpected response format from Ollama backend")
        try:
            return StoryTurn.model_validate_json(data["response"])
        except ValidationError as e:
            raise SchemaError(
                f"Model output does not match the story schema "
                f"({e.error_count()} errors)"
            ) from e

    async def _post(self, prompt: str) -> Any:
        url, body = self._build_request(prompt)
        logger.debug("llm call url=%s model=%s prompt_len=%d", url, self._model, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body)
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"LLM backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"LLM request failed: {e}") from e

        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise TransportError("LLM backend returned a non-JSON body") from e

    async def generate(self, prompt: str) -> GenerationResult:
        try:
            turn = self._parse_response(await self._post(prompt))
        except LLMError as e:
            logger.error("generation failed: %s", e)
            return GenerationFailure(reason=str(e))

        logger.debug(
            "llm response story_len=%d health=%d options=%d",
            len(turn.story), turn.health, len(turn.options),
        )
        return GenerationSuccess.from_turn(turn)
