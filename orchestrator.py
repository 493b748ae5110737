"""Project flow orchestrator"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

from core.models import (
    RawSource, ParsedTable, ConnectionConfig, AnalysisContext, AnalysisResult,
    ColumnClassification, ColumnMapping, ProjectForm, SavedProject
)
from core.enums import WizardStep, SourceStatus
from core.exceptions import InvalidContextError, PersistenceError
from core.interfaces import ProjectStore
from ingestion import IngestionPipelineManager
from stages.s3_analysis import AnalysisOrchestrator
from ui.prompts import UserPrompt
from utils.callbacks import notify
from config import settings

logger = logging.getLogger(__name__)


SourceInput = Union[RawSource, ParsedTable, ConnectionConfig, Path]
ProgressCallback = Callable[[float], Any]

# Combined progress reached once ingestion starts
INGESTION_START_PERCENT = 5
MIN_QUESTION_LENGTH = 10


@dataclass
class FlowState:
    """User-facing state of the project flow"""
    show_results_view: bool = False
    current_project_name: Optional[str] = None
    analysis_progress: float = 0.0
    is_initialized: bool = False
    error: Optional[str] = None
    result: Optional[AnalysisResult] = None
    saved_project: Optional[SavedProject] = None


class ProjectFlowManager:
    """
    Top-level sequencing of a project: ingest sources, then analyze them.

    Ingestion fills the first INGESTION_PROGRESS_SHARE percent of a single
    0-100 progress scale and the analysis run fills the rest.
    """

    def __init__(
        self,
        ingestion: Optional[IngestionPipelineManager] = None,
        analysis: Optional[AnalysisOrchestrator] = None,
        store: Optional[ProjectStore] = None,
        prompt: Optional[UserPrompt] = None,
        ingestion_share: Optional[float] = None
    ):
        self.ingestion = ingestion or IngestionPipelineManager()
        self.analysis = analysis or AnalysisOrchestrator()
        self.store = store
        self.prompt = prompt
        self.ingestion_share = settings.INGESTION_PROGRESS_SHARE if ingestion_share is None else ingestion_share

        self.state = FlowState()
        self._in_flight = False

    @property
    def is_running(self) -> bool:
        return self._in_flight

    async def execute_full_analysis(
        self,
        question: str,
        additional_context: str = "",
        educational_mode: bool = False,
        sources: Sequence[SourceInput] = (),
        project_name: str = "",
        column_mapping: Optional[ColumnMapping] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Optional[AnalysisResult]:
        """
        Ingest the given sources and run the analysis over them.

        With no sources, every completed source already in the ingestion
        manager is analyzed. Returns None when a run is already in flight.

        Raises:
            InvalidContextError: No question or no usable data
            EngineError: The analysis engine failed
        """
        if self._in_flight:
            logger.info("Analysis already in progress, ignoring duplicate request")
            return None

        self._in_flight = True
        self.state = FlowState(current_project_name=project_name or None, is_initialized=True)

        try:
            if not question or not question.strip():
                raise InvalidContextError("Research question is required")

            await self._report(INGESTION_START_PERCENT, on_progress)
            tables = await self._resolve_sources(sources, on_progress)
            await self._report(self.ingestion_share, on_progress)

            mapping = await self._resolve_mapping(column_mapping)
            context = AnalysisContext(
                research_question=question,
                additional_context=additional_context or "",
                parsed_tables=tables,
                column_mapping=mapping,
                educational_mode=educational_mode
            )

            if project_name:
                await self._save_project(project_name, question, additional_context, tables)

            async def _forward(percent: float):
                scaled = self.ingestion_share + percent * (100 - self.ingestion_share) / 100
                await self._report(scaled, on_progress)

            result = await self.analysis.run(context, on_progress=_forward)
            if result is None:
                logger.info("Analysis orchestrator busy, no result produced")
                return None

            self.state.result = result
            self.state.show_results_view = True
            return result

        except Exception as e:
            logger.error("Full analysis failed: %s", e)
            self.state = FlowState(error=str(e))
            raise

        finally:
            self._in_flight = False

    def back_to_project(self):
        """Full teardown of flow, ingestion and analysis state"""
        self.state = FlowState()
        self.ingestion.clear()
        self.analysis.reset()

    async def continue_project(self, project_id: str) -> ProjectForm:
        """
        Reload a saved project into the ingestion manager without re-parsing.

        Raises:
            PersistenceError: If no store is configured or the project cannot be loaded
        """
        if self.store is None:
            raise PersistenceError("No project store configured")

        project = await self.store.load_analysis_project(project_id)
        self.back_to_project()
        for table in project.tables:
            await self.ingestion.add_parsed_table(table)

        self.state.current_project_name = project.project_name
        self.state.saved_project = project
        logger.info("Continuing project %s with %d tables", project.id, len(project.tables))
        return ProjectForm(
            project_name=project.project_name,
            research_question=project.research_question,
            business_context=project.business_context,
            column_mapping=self.ingestion.suggest_column_mapping()
        )

    def check_step(
        self,
        step: WizardStep,
        form: ProjectForm,
        has_data: Optional[bool] = None
    ) -> list[str]:
        """Messages that block leaving the given wizard step; empty when clear"""
        errors = []
        question = form.research_question.strip()

        if not question:
            errors.append("Research question is required")
        elif step == WizardStep.RESEARCH_QUESTION and len(question) < MIN_QUESTION_LENGTH:
            errors.append(f"Research question should be at least {MIN_QUESTION_LENGTH} characters")

        if step == WizardStep.DATA_SOURCE:
            uploaded = has_data if has_data is not None else bool(self.ingestion.sources)
            if not uploaded:
                errors.append("At least one data file must be uploaded")

        elif step in (WizardStep.BUSINESS_CONTEXT, WizardStep.COLUMN_MAPPING):
            processed = has_data if has_data is not None else bool(self.ingestion.get_all_parsed_tables())
            if not processed:
                errors.append("Data must be processed before proceeding")

        elif step == WizardStep.ANALYSIS_SUMMARY:
            if not form.project_name.strip():
                errors.append("Project name is required")
            valid = has_data if has_data is not None else self.ingestion.has_valid_data()
            if not valid:
                errors.append("No valid data available for analysis")

        return errors

    async def _resolve_sources(
        self,
        sources: Sequence[SourceInput],
        on_progress: Optional[ProgressCallback]
    ) -> list[ParsedTable]:
        if not sources:
            tables = self.ingestion.get_all_parsed_tables()
            if not tables:
                raise InvalidContextError("No data sources available for analysis")
            return tables

        done = 0
        total = len(sources)
        span = self.ingestion_share - INGESTION_START_PERCENT

        async def _add(source: SourceInput) -> str:
            nonlocal done
            source_id = await self._add_source(source)
            done += 1
            await self._report(INGESTION_START_PERCENT + span * done / total, on_progress)
            return source_id

        source_ids = await asyncio.gather(*(_add(s) for s in sources))

        tables = []
        failures = []
        for source_id in source_ids:
            source = self.ingestion.get_source(source_id)
            if source is None:
                continue
            if source.status == SourceStatus.COMPLETED and source.result is not None:
                tables.append(source.result)
            elif source.status == SourceStatus.ERROR:
                failures.append(f"{source.name}: {source.error}")

        if not tables:
            detail = "; ".join(failures) if failures else "no sources completed"
            raise InvalidContextError(f"No usable data sources ({detail})")
        if failures:
            logger.warning("Continuing without %d failed source(s): %s", len(failures), "; ".join(failures))
        return tables

    async def _add_source(self, source: SourceInput) -> str:
        if isinstance(source, ParsedTable):
            return await self.ingestion.add_parsed_table(source)
        if isinstance(source, RawSource):
            return await self.ingestion.add_file_source(source)
        if isinstance(source, ConnectionConfig):
            return await self.ingestion.add_mock_connection_source(source)
        return await self.ingestion.add_file_path(Path(source))

    async def _resolve_mapping(self, column_mapping: Optional[ColumnMapping]) -> ColumnMapping:
        if column_mapping is not None:
            return column_mapping

        default = self.ingestion.suggest_column_mapping()
        if self.prompt is None:
            return default

        classification = next(
            (
                self.ingestion.get_classification(s.id)
                for s in self.ingestion.sources
                if self.ingestion.get_classification(s.id) is not None
            ),
            ColumnClassification()
        )
        return await self.prompt.confirm_column_mapping(classification, default)

    async def _save_project(
        self,
        project_name: str,
        question: str,
        business_context: str,
        tables: list[ParsedTable]
    ):
        if self.store is None:
            return
        try:
            self.state.saved_project = await self.store.save_analysis_project(
                project_name, question, business_context or "", tables
            )
        except Exception as e:
            logger.warning("Saving project %s failed, continuing analysis: %s", project_name, e)

    async def _report(self, percent: float, on_progress: Optional[ProgressCallback]):
        percent = min(100.0, max(self.state.analysis_progress, percent))
        self.state.analysis_progress = percent
        await notify(on_progress, percent)
