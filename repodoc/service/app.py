"""FastAPI application entrypoint for repodoc service mode."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import RepoDocConfig, load_config
from ..errors import BackendUnavailableError, ConfigError, RepoDocError
from ..logging import get_logger
from ..pipeline import DocumentationPipeline

PipelineFactory = Callable[[RepoDocConfig], DocumentationPipeline]

logger = get_logger("service")


class GenerateRequest(BaseModel):
    path: str
    output_path: Optional[str] = None
    model: Optional[str] = None
    max_files: Optional[int] = None
    exclude_paths: Optional[List[str]] = None
    overview_only: bool = False


class GenerateResponse(BaseModel):
    status: str
    output_path: str
    files_analyzed: int
    files_documented: int
    files_failed: int
    commits: int
    tags: int


class ChangelogRequest(BaseModel):
    path: str
    model: Optional[str] = None
    max_tags: Optional[int] = None


class ChangelogResponse(BaseModel):
    changelog: str


class HealthResponse(BaseModel):
    status: str


def _default_pipeline(config: RepoDocConfig) -> DocumentationPipeline:
    return DocumentationPipeline(config)


def _resolve_config(path: str, **overrides: Any) -> RepoDocConfig:
    project = Path(path).expanduser()
    if not project.is_dir():
        raise FileNotFoundError(f"Repository path not found: {path}")
    return load_config(project).with_overrides(project_path=project.resolve(), **overrides)


def create_app(pipeline_factory: PipelineFactory = _default_pipeline) -> FastAPI:
    """Create the FastAPI application exposing repodoc operations."""

    app = FastAPI(title="repodoc Service", version="1.0.0")

    async def get_factory() -> PipelineFactory:
        return pipeline_factory

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/generate", response_model=GenerateResponse)
    async def generate(
        payload: GenerateRequest,
        factory: PipelineFactory = Depends(get_factory),
    ) -> GenerateResponse:
        config = _resolve_config(
            payload.path,
            output_path=payload.output_path,
            llm__model=payload.model,
            max_files=payload.max_files,
            exclude_paths=payload.exclude_paths,
            overview_only=payload.overview_only or None,
        )
        bundle = await factory(config).run()
        metadata = bundle.metadata
        return GenerateResponse(
            status="ok",
            output_path=str(config.resolved_output_path),
            files_analyzed=metadata.files_analyzed,
            files_documented=metadata.files_documented,
            files_failed=metadata.files_failed,
            commits=metadata.commits,
            tags=metadata.tags,
        )

    @app.post("/changelog", response_model=ChangelogResponse)
    async def changelog(
        payload: ChangelogRequest,
        factory: PipelineFactory = Depends(get_factory),
    ) -> ChangelogResponse:
        config = _resolve_config(
            payload.path,
            llm__model=payload.model,
            changelog__max_tags=payload.max_tags,
        )
        text = await factory(config).run_changelog()
        return ChangelogResponse(changelog=text)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(BackendUnavailableError)
    async def backend_unavailable_handler(_: Any, exc: BackendUnavailableError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(RepoDocError)
    async def repodoc_error_handler(_: Any, exc: RepoDocError) -> JSONResponse:
        logger.error("Request failed: %s", exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    try:
        import uvicorn
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "uvicorn is required to run the service. Install it with `pip install uvicorn`."
        ) from exc

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["ChangelogRequest", "GenerateRequest", "create_app", "run_service"]
