"""HTTP client for a local Ollama server."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..errors import (
    BackendConnectionError,
    BackendProtocolError,
    BackendTimeoutError,
    BackendUnavailableError,
    ConfigError,
)
from ..logging import get_logger

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert software developer and technical documentation writer. "
    "Generate clear, accurate, and detailed documentation with proper Markdown formatting."
)


@dataclass(frozen=True)
class GenerationParams:
    """Backend options sent with every generate call."""

    temperature: float = 0.1
    context_length: int = 4096


@dataclass
class HttpResponse:
    """Status code and decoded body of a backend response."""

    status: int
    body: str

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as exc:
            raise BackendProtocolError("Ollama returned invalid JSON", status=self.status) from exc


class OllamaClient:
    """Talks to Ollama's ``/api/tags`` and ``/api/generate`` endpoints."""

    DEFAULT_BASE_URL = "http://localhost:11434"
    ENV_BASE_URL_KEYS = ("REPODOC_OLLAMA_URL", "OLLAMA_HOST")

    def __init__(
        self,
        model: str = "deepseek-coder",
        *,
        base_url: str | None = None,
        request_timeout: float = 120.0,
        probe_timeout: float = 5.0,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        logger: logging.Logger | None = None,
    ) -> None:
        self.model = model
        self.base_url = self._resolve_base_url(base_url)
        self.request_timeout = request_timeout
        self.probe_timeout = probe_timeout
        self.system_prompt = system_prompt
        self.logger = logger or get_logger("ollama")
        self._executor: Optional[ThreadPoolExecutor] = None

    async def initialize(self) -> None:
        """Verify the server is running and the configured model is installed."""
        self.logger.debug("Checking if Ollama is running at %s", self.base_url)
        try:
            response = await self._call(self._get, "/api/tags", self.probe_timeout)
        except (BackendConnectionError, BackendTimeoutError) as exc:
            raise BackendUnavailableError(
                f"Ollama server is not reachable at {self.base_url}: {exc}. "
                "Start it with `ollama serve`."
            ) from exc
        if response.status != 200:
            raise BackendUnavailableError(
                f"Ollama server at {self.base_url} answered with status {response.status}"
            )
        names = self._model_names(response.json())
        if not any(self.model in name for name in names):
            raise BackendUnavailableError(
                f"Model {self.model} not found in Ollama. Run `ollama pull {self.model}`."
            )
        self.logger.debug("Ollama is running and %s is available", self.model)

    async def is_ready(self) -> bool:
        """Return True when the liveness endpoint answers 200 within the probe timeout."""
        try:
            response = await self._call(self._get, "/api/tags", self.probe_timeout)
        except (BackendConnectionError, BackendTimeoutError, BackendProtocolError):
            return False
        return response.status == 200

    async def generate(self, prompt: str, params: GenerationParams | None = None) -> str:
        """Send one non-streaming generate request and return the response text."""
        params = params or GenerationParams()
        payload = {
            "model": self.model,
            "prompt": prompt,
            "system": self.system_prompt,
            "stream": False,
            "options": {
                "temperature": params.temperature,
                "num_ctx": params.context_length,
            },
        }
        response = await self._call(self._post, "/api/generate", self.request_timeout, payload)
        if response.status != 200:
            raise BackendProtocolError(
                f"Error from Ollama API (status {response.status}): {response.body.strip()[:200]}",
                status=response.status,
            )
        data = response.json()
        if not isinstance(data, dict):
            raise BackendProtocolError("Ollama response is not a JSON object", status=response.status)
        text = data.get("response")
        return text if isinstance(text, str) else ""

    async def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    # ------------------------------------------------------------------
    # Transport

    async def _call(self, func, path: str, timeout: float, payload: Dict[str, Any] | None = None) -> HttpResponse:  # type: ignore[no-untyped-def]
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="repodoc-http")
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, func, path, timeout, payload)
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise BackendTimeoutError(f"Request to {path} timed out after {timeout:g}s") from exc

    def _get(self, path: str, timeout: float, payload: Dict[str, Any] | None = None) -> HttpResponse:
        return self._send(Request(f"{self.base_url}{path}", method="GET"), timeout)

    def _post(self, path: str, timeout: float, payload: Dict[str, Any] | None = None) -> HttpResponse:
        data = json.dumps(payload or {}).encode("utf-8")
        request = Request(
            f"{self.base_url}{path}",
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        return self._send(request, timeout)

    @staticmethod
    def _send(request: Request, timeout: float) -> HttpResponse:
        try:
            with urlopen(request, timeout=timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
                status = getattr(response, "status", 200)
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            return HttpResponse(status=exc.code, body=detail or str(exc.reason))
        except TimeoutError as exc:
            raise BackendTimeoutError(f"Ollama request timed out: {exc}") from exc
        except URLError as exc:
            if isinstance(exc.reason, TimeoutError):
                raise BackendTimeoutError(f"Ollama request timed out: {exc.reason}") from exc
            raise BackendConnectionError(f"Error connecting to Ollama: {exc.reason}") from exc
        except OSError as exc:
            raise BackendConnectionError(f"Error connecting to Ollama: {exc}") from exc
        return HttpResponse(status=status, body=raw.decode("utf-8", errors="replace"))

    @staticmethod
    def _model_names(payload: Any) -> list[str]:
        if not isinstance(payload, dict):
            return []
        models = payload.get("models")
        if not isinstance(models, list):
            return []
        return [str(model.get("name", "")) for model in models if isinstance(model, dict)]

    # ------------------------------------------------------------------
    # Base URL resolution

    def _resolve_base_url(self, base_url: str | None) -> str:
        if base_url:
            return self._normalize_url(base_url)
        env_value = self._first_env_value(self.ENV_BASE_URL_KEYS)
        if env_value:
            if "://" not in env_value:
                env_value = f"http://{env_value}"
            return self._normalize_url(env_value)
        return self.DEFAULT_BASE_URL

    @staticmethod
    def _first_env_value(keys: Sequence[str]) -> str | None:
        for key in keys:
            value = os.getenv(key)
            if value:
                return value
        return None

    @staticmethod
    def _normalize_url(url: str) -> str:
        normalized = url.rstrip("/")
        parsed = urlparse(normalized)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise ConfigError(f"Unsupported Ollama base URL: {url!r}")
        return normalized


__all__ = ["DEFAULT_SYSTEM_PROMPT", "GenerationParams", "HttpResponse", "OllamaClient"]
