"""Generation backend client and request orchestration."""

from .ollama import GenerationParams, OllamaClient
from .orchestrator import FailureKind, GenerationResult, RequestOrchestrator, truncate_prompt

__all__ = [
    "FailureKind",
    "GenerationParams",
    "GenerationResult",
    "OllamaClient",
    "RequestOrchestrator",
    "truncate_prompt",
]
