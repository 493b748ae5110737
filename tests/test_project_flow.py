import asyncio
from pathlib import Path

import pytest

from orchestrator import ProjectFlowManager, FlowState
from ingestion import IngestionPipelineManager
from stages.s3_analysis import AnalysisOrchestrator
from core.interfaces import AnalysisEngine, ProjectStore
from core.models import (
    AnalysisResult, RawSource, ConnectionConfig, ProjectForm, ColumnMapping
)
from core.enums import WizardStep, SourceStatus
from core.exceptions import InvalidContextError, EngineError, PersistenceError
from db import JsonProjectStore
from ui.prompts import UserPrompt


class StubEngine(AnalysisEngine):
    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.fail = fail
        self.delay = delay
        self.contexts = []

    async def analyze(self, context):
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("engine down")
        return AnalysisResult(insights=f"{len(context.parsed_tables)} tables")


class BrokenStore(ProjectStore):
    async def save_analysis_project(self, project_name, research_question, business_context, tables):
        raise PersistenceError("disk full")

    async def load_analysis_project(self, project_id):
        raise PersistenceError("missing")


class FixedMappingPrompt(UserPrompt):
    def __init__(self, mapping: ColumnMapping):
        self.mapping = mapping
        self.defaults = []

    async def yes_no(self, question):
        return True

    async def confirm_column_mapping(self, classification, default):
        self.defaults.append(default)
        return self.mapping


def _csv(name: str = "events.csv", rows: int = 10) -> RawSource:
    lines = ["user_id,timestamp,amount"] + [f"u{i},2024-01-{i + 1:02d},{i}" for i in range(rows)]
    return RawSource(name=name, content="\n".join(lines).encode("utf-8"))


def _flow(engine=None, **kwargs) -> ProjectFlowManager:
    analysis = AnalysisOrchestrator(
        engine=engine or StubEngine(), phase_delay=0, retry_delay=0, max_retries=0
    )
    return ProjectFlowManager(ingestion=IngestionPipelineManager(), analysis=analysis, **kwargs)


@pytest.mark.asyncio
async def test_full_analysis_combines_progress_and_shows_results():
    flow = _flow(ingestion_share=20)
    progress = []

    result = await flow.execute_full_analysis(
        question="How many users converted?",
        additional_context="Checkout funnel",
        sources=[_csv()],
        project_name="Funnel",
        on_progress=progress.append,
    )

    assert result.insights == "1 tables"
    assert progress == sorted(progress)
    assert progress[0] == 5
    assert 20 in progress
    assert progress[-1] == 100
    assert flow.state.show_results_view
    assert flow.state.current_project_name == "Funnel"
    assert flow.state.analysis_progress == 100
    assert not flow.is_running


@pytest.mark.asyncio
async def test_analysis_progress_is_scaled_into_remaining_range():
    flow = _flow(ingestion_share=20)
    progress = []

    await flow.execute_full_analysis(question="Why?", sources=[_csv()], on_progress=progress.append)

    analysis_part = [p for p in progress if p > 20]
    assert analysis_part[0] == pytest.approx(24.0)
    assert analysis_part[-1] == 100


@pytest.mark.asyncio
async def test_context_receives_mapping_and_mode():
    engine = StubEngine()
    flow = _flow(engine)

    await flow.execute_full_analysis(
        question="Trend?", educational_mode=True, sources=[_csv()]
    )

    context = engine.contexts[0]
    assert context.educational_mode
    assert context.column_mapping.user_id_column == "user_id"
    assert context.column_mapping.timestamp_column == "timestamp"
    assert context.column_mapping.value_columns == ["amount"]


@pytest.mark.asyncio
async def test_explicit_mapping_wins():
    engine = StubEngine()
    mapping = ColumnMapping(value_columns=["amount"])

    await _flow(engine).execute_full_analysis(question="Q?", sources=[_csv()], column_mapping=mapping)

    assert engine.contexts[0].column_mapping == mapping


@pytest.mark.asyncio
async def test_prompt_confirms_default_mapping():
    engine = StubEngine()
    chosen = ColumnMapping(category_columns=["user_id"])
    prompt = FixedMappingPrompt(chosen)

    await _flow(engine, prompt=prompt).execute_full_analysis(question="Q?", sources=[_csv()])

    assert prompt.defaults[0].user_id_column == "user_id"
    assert engine.contexts[0].column_mapping == chosen


@pytest.mark.asyncio
async def test_failed_source_is_skipped_when_others_succeed():
    engine = StubEngine()
    flow = _flow(engine)
    broken = RawSource(name="broken.json", content=b"{oops")

    result = await flow.execute_full_analysis(question="Q?", sources=[_csv(), broken])

    assert result.insights == "1 tables"
    statuses = sorted(s.status.value for s in flow.ingestion.sources)
    assert statuses == [SourceStatus.COMPLETED.value, SourceStatus.ERROR.value]


@pytest.mark.asyncio
async def test_no_usable_sources_raises_and_resets():
    flow = _flow()

    with pytest.raises(InvalidContextError) as exc_info:
        await flow.execute_full_analysis(
            question="Q?", sources=[RawSource(name="a.exe", content=b"MZ")]
        )

    assert "a.exe" in str(exc_info.value)
    assert not flow.state.show_results_view
    assert flow.state.analysis_progress == 0
    assert flow.state.error
    assert not flow.is_running


@pytest.mark.asyncio
async def test_blank_question_fails_before_ingestion():
    flow = _flow()

    with pytest.raises(InvalidContextError):
        await flow.execute_full_analysis(question=" ", sources=[_csv()])

    assert flow.ingestion.sources == []


@pytest.mark.asyncio
async def test_engine_failure_propagates_and_resets_state():
    flow = _flow(StubEngine(fail=True))
    progress = []

    with pytest.raises(EngineError):
        await flow.execute_full_analysis(
            question="Q?", sources=[_csv()], project_name="P", on_progress=progress.append
        )

    assert flow.state.show_results_view is False
    assert flow.state.analysis_progress == 0
    assert flow.state.current_project_name is None
    assert "engine down" in flow.state.error
    assert not flow.is_running


@pytest.mark.asyncio
async def test_concurrent_execution_is_ignored():
    engine = StubEngine(delay=0.05)
    flow = _flow(engine)

    first, second = await asyncio.gather(
        flow.execute_full_analysis(question="Q?", sources=[_csv()]),
        flow.execute_full_analysis(question="Q?", sources=[_csv("other.csv")]),
    )

    assert first is not None
    assert second is None
    assert len(engine.contexts) == 1
    assert [s.name for s in flow.ingestion.sources] == ["events.csv"]


@pytest.mark.asyncio
async def test_persistence_failure_does_not_block_analysis():
    flow = _flow(store=BrokenStore())

    result = await flow.execute_full_analysis(question="Q?", sources=[_csv()], project_name="P")

    assert result is not None
    assert flow.state.saved_project is None
    assert flow.state.show_results_view


@pytest.mark.asyncio
async def test_project_is_saved_and_can_be_continued(tmp_path: Path):
    store = JsonProjectStore(tmp_path)
    flow = _flow(store=store)

    await flow.execute_full_analysis(
        question="What is average amount?",
        additional_context="Pilot",
        sources=[_csv()],
        project_name="Pilot study",
    )
    saved = flow.state.saved_project
    assert saved is not None

    engine = StubEngine()
    resumed = _flow(engine, store=store)
    form = await resumed.continue_project(saved.id)

    assert form.project_name == "Pilot study"
    assert form.research_question == "What is average amount?"
    assert form.business_context == "Pilot"
    assert form.column_mapping.user_id_column == "user_id"
    assert len(resumed.ingestion.get_all_parsed_tables()) == 1

    result = await resumed.execute_full_analysis(question=form.research_question)
    assert result.insights == "1 tables"
    assert engine.contexts[0].parsed_tables[0].rows == saved.tables[0].rows


@pytest.mark.asyncio
async def test_continue_without_store_raises():
    with pytest.raises(PersistenceError):
        await _flow().continue_project("project-abc")


@pytest.mark.asyncio
async def test_preparsed_and_connection_sources():
    engine = StubEngine()
    flow = _flow(engine)
    table = flow.ingestion.receiver.parse(_csv("restored.csv"))

    await flow.execute_full_analysis(
        question="Q?",
        sources=[table, ConnectionConfig(type="sample_web_analytics")],
    )

    names = [t.name for t in engine.contexts[0].parsed_tables]
    assert names == ["restored.csv", "sample_web_analytics"]


@pytest.mark.asyncio
async def test_back_to_project_tears_everything_down():
    flow = _flow()
    await flow.execute_full_analysis(question="Q?", sources=[_csv()])

    flow.back_to_project()

    assert flow.state == FlowState()
    assert flow.ingestion.sources == []
    assert flow.analysis.state.result is None


@pytest.mark.asyncio
async def test_check_step_messages():
    flow = _flow()
    empty = ProjectForm()
    short = ProjectForm(research_question="Why?")
    complete = ProjectForm(project_name="P", research_question="Why do users churn?")

    assert flow.check_step(WizardStep.RESEARCH_QUESTION, empty) == ["Research question is required"]
    assert flow.check_step(WizardStep.RESEARCH_QUESTION, short) == [
        "Research question should be at least 10 characters"
    ]
    assert flow.check_step(WizardStep.DATA_SOURCE, complete) == ["At least one data file must be uploaded"]
    assert flow.check_step(WizardStep.BUSINESS_CONTEXT, complete) == ["Data must be processed before proceeding"]
    assert flow.check_step(WizardStep.ANALYSIS_SUMMARY, ProjectForm(research_question="Why do users churn?")) == [
        "Project name is required",
        "No valid data available for analysis",
    ]

    await flow.ingestion.add_file_source(_csv())

    for step in WizardStep:
        assert flow.check_step(step, complete) == []


def test_check_step_has_data_override():
    flow = _flow()
    form = ProjectForm(project_name="P", research_question="Why do users churn?")

    assert flow.check_step(WizardStep.DATA_SOURCE, form, has_data=True) == []
    assert flow.check_step(WizardStep.ANALYSIS_SUMMARY, form, has_data=False) == [
        "No valid data available for analysis"
    ]
