"""Request orchestration around the generation backend.

Every submission is truncated to the context budget, retried a bounded number of
times with a fixed delay, and resolved to a :class:`GenerationResult` instead of
raising. Batches run strictly in order with a pacing delay between them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from ..batching import make_batches
from ..errors import (
    BackendConnectionError,
    BackendProtocolError,
    BackendTimeoutError,
    BackendUnavailableError,
    EmptyResponseError,
    GenerationError,
)
from ..logging import ProgressSink, get_logger
from .ollama import GenerationParams

T = TypeVar("T")

TRUNCATION_NOTICE = "\n\n[Content truncated to fit within the model context window]"
CHARS_PER_TOKEN = 4
TRUNCATION_MARGIN = 100


class GenerationBackend(Protocol):
    """Subset of :class:`~repodoc.llm.ollama.OllamaClient` used for submissions."""

    async def is_ready(self) -> bool: ...

    async def generate(self, prompt: str, params: GenerationParams | None = None) -> str: ...


class FailureKind(str, Enum):
    CONNECTIVITY = "connectivity"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"
    EMPTY = "empty"
    ITEM = "item"


@dataclass(frozen=True)
class GenerationResult:
    """Either generated text or a terminal, non-fatal failure."""

    ok: bool
    content: str = ""
    kind: Optional[FailureKind] = None
    detail: str = ""
    attempts: int = 0

    @classmethod
    def success(cls, text: str, *, attempts: int = 1) -> "GenerationResult":
        return cls(ok=True, content=text, attempts=attempts)

    @classmethod
    def failure(cls, kind: FailureKind, detail: str, *, attempts: int = 0) -> "GenerationResult":
        return cls(ok=False, kind=kind, detail=detail, attempts=attempts)

    @property
    def text(self) -> str:
        """Generated text, or the failure description that stands in for it."""
        if self.ok:
            return self.content
        if self.kind is FailureKind.ITEM:
            return f"Error generating documentation: {self.detail}"
        return f"Error: Failed to generate response after {self.attempts} attempts - {self.detail}"

    def __str__(self) -> str:
        return self.text


def truncate_prompt(prompt: str, context_length: int) -> str:
    """Trim prompts longer than ``context_length * 4`` characters and append a notice."""
    limit = context_length * CHARS_PER_TOKEN
    if len(prompt) <= limit:
        return prompt
    return prompt[: limit - TRUNCATION_MARGIN] + TRUNCATION_NOTICE


class RequestOrchestrator:
    """Submits prompts one at a time with readiness checks, retries, and pacing."""

    def __init__(
        self,
        client: GenerationBackend,
        *,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        params: GenerationParams | None = None,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.client = client
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.params = params or GenerationParams()
        self.logger = logger or get_logger("orchestrator")
        self._sleep = sleep

    async def submit(self, prompt: str, params: GenerationParams | None = None) -> GenerationResult:
        effective = params or self.params
        prepared = truncate_prompt(prompt, effective.context_length)
        if len(prepared) != len(prompt):
            self.logger.debug(
                "Prompt truncated from %d to %d characters", len(prompt), len(prepared)
            )

        last_kind = FailureKind.CONNECTIVITY
        last_detail = "no attempt made"
        for attempt in range(1, self.max_retries + 1):
            try:
                if not await self.client.is_ready():
                    raise BackendUnavailableError("Ollama server is not ready or not running")
                text = await self.client.generate(prepared, effective)
                if not text or not text.strip():
                    raise EmptyResponseError("Ollama returned an empty response")
                return GenerationResult.success(text, attempts=attempt)
            except GenerationError as exc:
                last_kind = _failure_kind(exc)
                last_detail = str(exc)
                self.logger.warning(
                    "Generation attempt %d/%d failed: %s", attempt, self.max_retries, exc
                )
            if attempt < self.max_retries:
                await self._sleep(self.retry_delay)

        self.logger.error(
            "Giving up after %d attempts: %s", self.max_retries, last_detail
        )
        return GenerationResult.failure(last_kind, last_detail, attempts=self.max_retries)

    async def submit_batch(
        self,
        items: Sequence[Tuple[str, T]],
        prompt_for: Callable[[T], str],
        *,
        batch_size: int,
        batch_delay: float,
        progress: ProgressSink | None = None,
        params: GenerationParams | None = None,
        on_result: Callable[[str, GenerationResult], None] | None = None,
    ) -> List[Tuple[str, GenerationResult]]:
        """Generate text for every ``(key, payload)`` item, preserving input order.

        ``on_result`` sees each result as soon as it resolves, so callers can keep
        partial output if a later stage aborts.
        """
        batches = make_batches(items, batch_size)
        total = len(items)
        results: List[Tuple[str, GenerationResult]] = []
        self.logger.info(
            "Processing %d items in %d batches of up to %d", total, len(batches), batch_size
        )

        for batch in batches:
            self.logger.info(
                "Processing batch %d/%d: %d items", batch.index + 1, len(batches), len(batch)
            )
            for key, payload in batch.items:
                try:
                    prompt = prompt_for(payload)
                except Exception as exc:
                    self.logger.error("Error processing %s: %s", key, exc)
                    result = GenerationResult.failure(FailureKind.ITEM, str(exc))
                else:
                    result = await self.submit(prompt, params)
                results.append((key, result))
                if on_result is not None:
                    on_result(key, result)
                if progress is not None:
                    progress(len(results), total, key)

            if batch.index < len(batches) - 1:
                self.logger.info("Waiting %gs before next batch", batch_delay)
                await self._sleep(batch_delay)

        return results


def _failure_kind(exc: GenerationError) -> FailureKind:
    if isinstance(exc, BackendTimeoutError):
        return FailureKind.TIMEOUT
    if isinstance(exc, BackendProtocolError):
        return FailureKind.PROTOCOL
    if isinstance(exc, EmptyResponseError):
        return FailureKind.EMPTY
    if isinstance(exc, (BackendConnectionError, BackendUnavailableError)):
        return FailureKind.CONNECTIVITY
    return FailureKind.PROTOCOL


__all__ = [
    "FailureKind",
    "GenerationBackend",
    "GenerationResult",
    "RequestOrchestrator",
    "TRUNCATION_NOTICE",
    "truncate_prompt",
]
