import json

import pytest

from stages.s0_reception import Receiver
from stages.s3_analysis import HeuristicAnalysisEngine, LLMAnalysisEngine, build_engine
from stages.s3_analysis.llm_engine import summarize_tables
from core.models import AnalysisContext, ColumnMapping, ParsedTable, ColumnInfo, RawSource
from core.exceptions import EngineError
from llm.prompts import InvestigationPrompt


SALES_CSV = (
    "order_id,customer_id,order_date,region,amount\n"
    "1,c1,2024-01-01,north,100\n"
    "2,c2,2024-01-05,south,250\n"
    "3,c1,2024-01-10,north,50\n"
    "4,c3,2024-02-01,east,\n"
)


def _table(text: str = SALES_CSV, name: str = "sales.csv") -> ParsedTable:
    return Receiver().parse(RawSource(name=name, content=text.encode("utf-8")))


def _context(question: str, mapping: ColumnMapping = None, **kwargs) -> AnalysisContext:
    return AnalysisContext(
        research_question=question,
        parsed_tables=[_table()],
        column_mapping=mapping or ColumnMapping(),
        **kwargs
    )


@pytest.mark.asyncio
async def test_row_count_question_is_answered():
    result = await HeuristicAnalysisEngine().analyze(_context("How many rows are in my data?"))

    answer = next(r for r in result.results if r.id == "row-count-answer")
    assert answer.value == 4
    assert "4 rows" in answer.insight
    assert result.results[0].id == "data-overview"
    assert result.confidence == "low"


@pytest.mark.asyncio
async def test_column_and_quality_questions():
    result = await HeuristicAnalysisEngine().analyze(
        _context("Which columns exist and how complete is the data quality?")
    )

    ids = {r.id for r in result.results}
    assert {"column-analysis", "data-quality"} <= ids
    quality = next(r for r in result.results if r.id == "data-quality")
    assert quality.value == "95.0%"


@pytest.mark.asyncio
async def test_mapping_drives_statistics():
    mapping = ColumnMapping(
        user_id_column="customer_id",
        timestamp_column="order_date",
        value_columns=["amount"],
        category_columns=["region"],
    )
    result = await HeuristicAnalysisEngine().analyze(_context("What drives revenue?", mapping))

    by_id = {r.id: r for r in result.results}
    assert by_id["numeric-amount"].value == pytest.approx(133.33)
    assert "total 400.00" in by_id["numeric-amount"].insight
    assert by_id["category-region"].value == "north"
    assert by_id["distinct-users"].value == 3
    assert by_id["time-range"].value == 31
    assert "Column relationships have been mapped for targeted analysis" in result.recommendations


@pytest.mark.asyncio
async def test_business_context_and_sql():
    result = await HeuristicAnalysisEngine().analyze(
        _context("Summarize", additional_context="Q1 retail sales")
    )

    assert "**Business Context**: Q1 retail sales" in result.insights
    assert result.sql_query.startswith("-- Analysis Query for: Summarize")
    assert "FROM dataset" in result.sql_query
    assert result.query_breakdown == []


@pytest.mark.asyncio
async def test_educational_mode_adds_query_breakdown():
    mapping = ColumnMapping(value_columns=["amount"], category_columns=["region"])
    result = await HeuristicAnalysisEngine().analyze(
        _context("Average amount per region?", mapping, educational_mode=True)
    )

    steps = result.query_breakdown
    assert [s.step for s in steps] == [1, 2, 3, 4]
    assert 'GROUP BY "region"' in steps[2].sql


@pytest.mark.asyncio
async def test_empty_tables_give_no_data_response():
    empty = ParsedTable(name="empty.csv", columns=[ColumnInfo(name="a")], rows=[])
    context = AnalysisContext(research_question="Anything?", parsed_tables=[empty])

    result = await HeuristicAnalysisEngine().analyze(context)

    assert result.confidence == "low"
    assert result.results == []
    assert "No data available" in result.insights


@pytest.mark.asyncio
async def test_rows_from_several_tables_are_combined():
    other = _table("order_id,amount,channel\n9,10,web\n10,20,store\n", "more.csv")
    context = AnalysisContext(
        research_question="How many records?",
        parsed_tables=[_table(), other],
    )

    result = await HeuristicAnalysisEngine().analyze(context)

    assert result.results[0].value == 6
    assert "2 files" in result.results[0].insight


def test_build_engine_defaults_to_heuristic():
    assert isinstance(build_engine("heuristic"), HeuristicAnalysisEngine)
    assert isinstance(build_engine(), HeuristicAnalysisEngine)


class FakeLLM:
    def __init__(self, response: str):
        self.response = response
        self.prompts = []

    async def complete(self, prompt, system=None, max_tokens=None, temperature=0.0):
        self.prompts.append(prompt)
        return self.response


@pytest.mark.asyncio
async def test_llm_engine_parses_json_response():
    payload = {
        "insights": "Revenue is concentrated in the north.",
        "confidence": "medium",
        "recommendations": ["Collect more data"],
        "results": [{"id": "north", "title": "North", "insight": "North leads", "value": 150}],
        "sql_query": "SELECT region, SUM(amount) FROM dataset GROUP BY region",
        "query_breakdown": [{"step": 1, "title": "Group", "description": "Group by region"}],
    }
    fake = FakeLLM("```json\n" + json.dumps(payload) + "\n```")
    engine = LLMAnalysisEngine(llm_client=fake)

    result = await engine.analyze(_context("Where is revenue highest?"))

    assert result.insights == payload["insights"]
    assert result.results[0].value == 150
    assert result.query_breakdown == []
    assert "Where is revenue highest?" in fake.prompts[0]
    assert "TABLE sales.csv: 4 rows" in fake.prompts[0]


@pytest.mark.asyncio
async def test_llm_engine_keeps_breakdown_in_educational_mode():
    payload = {
        "insights": "x",
        "query_breakdown": [{"step": 1, "title": "Count", "description": "Count rows", "sql": "SELECT COUNT(*)"}],
    }
    engine = LLMAnalysisEngine(llm_client=FakeLLM(json.dumps(payload)))

    result = await engine.analyze(_context("Count?", educational_mode=True))

    assert result.query_breakdown[0].sql == "SELECT COUNT(*)"


@pytest.mark.asyncio
async def test_llm_engine_rejects_non_json():
    engine = LLMAnalysisEngine(llm_client=FakeLLM("I could not analyze this."))

    with pytest.raises(EngineError):
        await engine.analyze(_context("Anything?"))


def test_dataset_summary_includes_numeric_statistics():
    summary = summarize_tables(_context("x"))

    assert "COLUMNS: order_id (number)" in summary
    assert "NUMERIC SUMMARY" in summary
    assert "amount" in summary


def test_investigation_prompt_recovers_trailing_commas():
    parsed = InvestigationPrompt().parse_response('Here you go: {"insights": "ok", "recommendations": ["a",],}')

    assert parsed == {"insights": "ok", "recommendations": ["a"]}


def test_investigation_prompt_renders_context():
    prompt = InvestigationPrompt().build_prompt({
        "research_question": "Why churn?",
        "additional_context": "",
        "educational_mode": True,
        "column_mapping": {"user_id_column": "uid"},
        "datasets": "TABLE t",
    })

    assert "RESEARCH QUESTION: Why churn?" in prompt
    assert "BUSINESS CONTEXT: (none)" in prompt
    assert "EDUCATIONAL MODE: true" in prompt
    assert '"user_id_column": "uid"' in prompt
