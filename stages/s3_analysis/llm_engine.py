"""LLM-backed analysis engine"""

import json
import logging
from typing import Optional

import pandas as pd

from core.interfaces import AnalysisEngine
from core.models import AnalysisContext, AnalysisResult, ParsedTable
from core.exceptions import EngineError
from llm.client import LLMClient
from llm.prompts import InvestigationPrompt
from config import settings
from .engine import combine_tables

logger = logging.getLogger(__name__)


class LLMAnalysisEngine(AnalysisEngine):
    """Asks the configured LLM provider to answer the research question"""

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()
        self.prompt = InvestigationPrompt()

    async def analyze(self, context: AnalysisContext) -> AnalysisResult:
        prompt = self.prompt.build_prompt({
            "research_question": context.research_question,
            "additional_context": context.additional_context,
            "educational_mode": context.educational_mode,
            "column_mapping": context.column_mapping.model_dump(),
            "datasets": summarize_tables(context),
        })

        response = await self.llm.complete(prompt)

        try:
            payload = self.prompt.parse_response(response)
        except json.JSONDecodeError as e:
            raise EngineError(f"LLM response was not valid JSON: {e}") from e

        if not context.educational_mode:
            payload.pop("query_breakdown", None)

        logger.info("LLM analysis returned %d findings", len(payload.get("results") or []))
        return AnalysisResult.model_validate(payload)


def summarize_tables(context: AnalysisContext) -> str:
    """Compact text description of every table for the prompt"""
    blocks = [_describe_table(table) for table in context.parsed_tables]

    df = combine_tables(context)
    if not df.empty:
        stats = df.apply(_numeric_or_none).dropna(axis=1, how="all")
        if not stats.empty:
            blocks.append("NUMERIC SUMMARY:\n" + stats.describe().round(2).to_string())

    return "\n\n".join(blocks) if blocks else "(no datasets)"


def _describe_table(table: ParsedTable) -> str:
    columns = ", ".join(f"{c.name} ({c.inferred_type.value})" for c in table.columns)
    preview = json.dumps(table.preview(settings.MAX_PREVIEW_ROWS), default=str)
    flags = []
    if table.is_placeholder:
        flags.append("placeholder")
    if table.is_synthetic:
        flags.append("synthetic")
    flag_text = f" [{', '.join(flags)}]" if flags else ""
    return (
        f"TABLE {table.name}{flag_text}: {table.row_count} rows\n"
        f"COLUMNS: {columns}\n"
        f"PREVIEW: {preview}"
    )


def _numeric_or_none(series):
    numbers = pd.to_numeric(series, errors="coerce")
    return numbers if numbers.notna().any() else pd.Series([None] * len(series), index=series.index, dtype=float)
