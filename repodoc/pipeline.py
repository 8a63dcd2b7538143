"""Documentation pipeline: structure, history, generation, output."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Optional, Protocol

from .analyzers import StructureAnalyzer
from .changelog import ChangelogSynthesizer
from .config import RepoDocConfig
from .git import HistoryProvider
from .llm import GenerationParams, GenerationResult, OllamaClient, RequestOrchestrator
from .logging import ProgressSink, get_logger, logging_progress
from .models import DocumentationBundle, FileAnalysis, ProjectStructure, RunMetadata
from .prompting import PromptBuilder
from .repo_scanner import RepoScanner
from .writer import DocumentationWriter


class StructureProvider(Protocol):
    def analyze(self, project_path: str | Path) -> ProjectStructure: ...


class DocumentationPipeline:
    """Runs every documentation stage in order against one repository."""

    def __init__(
        self,
        config: RepoDocConfig,
        *,
        structure_provider: StructureProvider | None = None,
        history_provider: HistoryProvider | None = None,
        client: OllamaClient | None = None,
        orchestrator: RequestOrchestrator | None = None,
        prompt_builder: PromptBuilder | None = None,
        writer: DocumentationWriter | None = None,
        logger: logging.Logger | None = None,
        progress: ProgressSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger("pipeline")
        llm = config.llm
        self.structure_provider = structure_provider or StructureAnalyzer(
            RepoScanner(config.exclude_paths)
        )
        self.history_provider = history_provider or HistoryProvider(config.project_path)
        self.client = client or OllamaClient(
            llm.model,
            base_url=llm.base_url,
            request_timeout=llm.request_timeout,
            probe_timeout=llm.probe_timeout,
        )
        self.orchestrator = orchestrator or RequestOrchestrator(
            self.client,
            max_retries=llm.max_retries,
            retry_delay=llm.retry_delay,
            params=GenerationParams(temperature=llm.temperature, context_length=llm.context_length),
        )
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.writer = writer or DocumentationWriter(config.resolved_output_path)
        self.progress = progress or logging_progress(self.logger)
        self._clock = clock or (lambda: datetime.now(UTC))

    def _synthesizer(self) -> ChangelogSynthesizer:
        return ChangelogSynthesizer(
            self.history_provider,
            self.orchestrator,
            self.prompt_builder,
            max_tags=self.config.changelog.max_tags,
            months_per_request=self.config.changelog.months_per_request,
        )

    async def run(self) -> DocumentationBundle:
        """Generate all documents and hand them to the writer.

        If a stage raises, per-file documents produced so far are still written
        (flagged as partial) before the exception propagates. The backend
        client is closed in every case.
        """
        project_path = self.config.project_path
        metadata = RunMetadata(
            started_at=self._clock(),
            model=self.config.llm.model,
            overview_only=self.config.overview_only,
        )
        bundle = DocumentationBundle(metadata=metadata)
        write_attempted = False
        self.logger.info("Starting documentation generation for %s", project_path)

        try:
            self.writer.prepare()
            await self.client.initialize()

            self.logger.info("Analyzing code structure...")
            structure = self._cap_files(self.structure_provider.analyze(project_path))
            metadata.files_analyzed = len(structure.files)

            self.logger.info("Retrieving project history...")
            history = await self.history_provider.fetch()
            metadata.commits = len(history.commits)
            metadata.tags = len(history.tags)

            self.logger.info("Generating project overview...")
            bundle.overview = (await self.orchestrator.submit(self.prompt_builder.overview(structure))).text

            if not self.config.overview_only:
                self.logger.info("Generating code documentation...")
                await self._document_files(structure, bundle)

            self.logger.info("Generating changelog...")
            bundle.changelog = await self._synthesizer().synthesize(history)

            self.logger.info("Generating project summary...")
            bundle.summary = (
                await self.orchestrator.submit(self.prompt_builder.summary(structure, history))
            ).text

            metadata.finish(self._clock())
            write_attempted = True
            self.writer.write(bundle)
            self.logger.info(
                "Documentation generated at %s in %.1fs",
                self.writer.output_path,
                metadata.duration_seconds or 0.0,
            )
            return bundle
        except Exception as exc:
            self.logger.error("Error generating documentation: %s", exc)
            if bundle.files and not write_attempted:
                bundle.partial = True
                metadata.finish(self._clock())
                self.logger.warning("Writing %d partial file documents before aborting", len(bundle.files))
                try:
                    self.writer.write(bundle)
                except OSError as write_exc:
                    self.logger.error("Could not write partial documentation: %s", write_exc)
            raise
        finally:
            await self.client.close()

    async def run_changelog(self) -> str:
        """Fetch history and synthesize only the changelog."""
        try:
            history = await self.history_provider.fetch()
            return await self._synthesizer().synthesize(history)
        finally:
            await self.client.close()

    async def _document_files(self, structure: ProjectStructure, bundle: DocumentationBundle) -> None:
        targets = structure.files_with_classes()
        project_name = structure.metadata.name

        def _prompt_for(analysis: FileAnalysis) -> str:
            content = Path(analysis.path).read_text(encoding="utf-8", errors="replace")
            return self.prompt_builder.file_documentation(analysis, content, project_name)

        def _record(key: str, result: GenerationResult) -> None:
            bundle.files[key] = result.text
            if result.ok:
                bundle.metadata.files_documented += 1
            else:
                bundle.metadata.files_failed += 1

        await self.orchestrator.submit_batch(
            [(analysis.relative_path, analysis) for analysis in targets],
            _prompt_for,
            batch_size=self.config.batch.size,
            batch_delay=self.config.batch.delay,
            progress=self.progress,
            on_result=_record,
        )

    def _cap_files(self, structure: ProjectStructure) -> ProjectStructure:
        limit: Optional[int] = self.config.max_files
        if limit is None or len(structure.files) <= limit:
            return structure
        self.logger.info("Limiting analysis to the first %d of %d files", limit, len(structure.files))
        kept = dict(list(structure.files.items())[:limit])
        return ProjectStructure(root=structure.root, metadata=structure.metadata, files=kept)


__all__ = ["DocumentationPipeline", "StructureProvider"]
