"""LLM prompt templates"""

import json
import re
from typing import Any, Dict, Optional

from core.interfaces import LLMTask


class JSONTask(LLMTask):
    """LLM task whose response is a single JSON object"""

    def parse_response(self, response: str) -> Dict[str, Any]:
        clean = self._clean_json_response(response)
        return self._robust_json_load(clean, response)

    def _clean_json_response(self, response: str) -> str:
        """Clean JSON response from markdown or extra text"""
        clean = response.strip()

        # Remove markdown code blocks
        if clean.startswith("```"):
            parts = clean.split("```")
            if len(parts) >= 3:
                clean = parts[1]
                if clean.startswith("json"):
                    clean = clean[4:]

        start_idx = clean.find("{")
        end_idx = clean.rfind("}")
        if start_idx != -1 and end_idx != -1 and end_idx > start_idx:
            clean = clean[start_idx:end_idx + 1]

        return clean.strip()

    def _robust_json_load(self, primary: str, fallback: str) -> Dict[str, Any]:
        """Best-effort JSON parsing with recovery steps."""
        def _strip_trailing_commas(text: str) -> str:
            return re.sub(r",\s*([}\]])", r"\1", text)

        def _fix_backslashes(text: str) -> str:
            # Escape stray backslashes that break JSON parsing.
            return re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", text)

        def _balanced_json(text: str) -> str:
            start = text.find("{")
            if start == -1:
                return text
            depth = 0
            for idx in range(start, len(text)):
                char = text[idx]
                if char == "{":
                    depth += 1
                elif char == "}":
                    depth -= 1
                    if depth == 0:
                        return text[start:idx + 1]
            return text[start:]

        def _find_first_json_object(text: str) -> Optional[Dict[str, Any]]:
            decoder = json.JSONDecoder()
            for idx, char in enumerate(text):
                if char != "{":
                    continue
                try:
                    parsed, _ = decoder.raw_decode(text[idx:])
                except json.JSONDecodeError:
                    continue
                if isinstance(parsed, dict):
                    return parsed
            return None

        attempts = [
            primary,
            _strip_trailing_commas(primary),
            _fix_backslashes(primary),
            _balanced_json(primary),
            _strip_trailing_commas(_balanced_json(primary)),
            _balanced_json(fallback),
            _strip_trailing_commas(_balanced_json(fallback)),
        ]
        for candidate in attempts:
            parsed = _find_first_json_object(candidate)
            if parsed is not None:
                return parsed
        raise json.JSONDecodeError("No JSON object found in response", primary, 0)


class InvestigationPrompt(JSONTask):
    """Prompt for answering a research question over uploaded datasets"""

    @property
    def prompt_template(self) -> str:
        return """Answer the research question using the datasets described below.

RESEARCH QUESTION: {research_question}
BUSINESS CONTEXT: {additional_context}
EDUCATIONAL MODE: {educational_mode}

COLUMN MAPPING:
{column_mapping}

DATASETS:
{datasets}

Base every finding on the data summaries. If the data cannot answer the
question, say so and recommend what data is missing.

Respond with JSON:
{{
    "insights": "<markdown summary answering the question>",
    "confidence": "high|medium|low",
    "recommendations": ["<string>", ...],
    "results": [
        {{
            "id": "<slug>",
            "title": "<string ≤8 words>",
            "description": "<string>",
            "value": <number or string>,
            "insight": "<string ≤60 words>",
            "confidence": "high|medium|low"
        }},
        ...
    ],
    "sql_query": "<SQL that would answer the question, or null>",
    "query_breakdown": [
        {{"step": 1, "title": "<string>", "description": "<string>", "sql": "<string or null>"}},
        ...
    ]
}}

Only include "query_breakdown" when EDUCATIONAL MODE is true."""

    def build_prompt(self, context: Dict[str, Any]) -> str:
        return self.prompt_template.format(
            research_question=context.get("research_question", ""),
            additional_context=context.get("additional_context") or "(none)",
            educational_mode=str(bool(context.get("educational_mode"))).lower(),
            column_mapping=json.dumps(context.get("column_mapping", {}), indent=2),
            datasets=context.get("datasets", "")
        )
