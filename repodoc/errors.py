"""Exception hierarchy shared across repodoc components."""

from __future__ import annotations


class RepoDocError(RuntimeError):
    """Base class for errors raised by repodoc."""


class ConfigError(RepoDocError):
    """Raised when the configuration file cannot be parsed or validated."""


class HistoryError(RepoDocError):
    """Raised when version-control history cannot be read."""


class GitCommandError(HistoryError):
    """Raised by git runners when an invocation exits unsuccessfully."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str = "") -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit code {returncode}"
        super().__init__(f"git {' '.join(self.command)} failed: {detail}")


class TagResolutionError(HistoryError):
    """Raised when a tag cannot be resolved to a commit."""


class GenerationError(RepoDocError):
    """Base class for generation backend failures."""


class BackendUnavailableError(GenerationError):
    """Raised when the backend is not running, not ready, or lacks the model."""


class BackendConnectionError(GenerationError):
    """Raised when the backend cannot be reached."""


class BackendProtocolError(GenerationError):
    """Raised on non-success status codes or malformed response bodies."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class BackendTimeoutError(GenerationError):
    """Raised when a single request exceeds its wall-clock timeout."""


class EmptyResponseError(GenerationError):
    """Raised when the backend answers successfully with no generated text."""


__all__ = [
    "BackendConnectionError",
    "BackendProtocolError",
    "BackendTimeoutError",
    "BackendUnavailableError",
    "ConfigError",
    "EmptyResponseError",
    "GenerationError",
    "GitCommandError",
    "HistoryError",
    "RepoDocError",
    "TagResolutionError",
]
