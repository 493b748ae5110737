"""Core data models for the Data Detective pipeline"""

import mimetypes
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from .enums import (
    FileType, ColumnType, SourceKind, SourceStatus, SemanticTag,
    Priority, Confidence, AnalysisPhase
)
from .exceptions import PipelineError


# ─────────────────────────────────────────────────────────────
# Sources
# ─────────────────────────────────────────────────────────────

class RawSource(BaseModel):
    """One unit of raw input prior to parsing"""
    name: str
    content: bytes = b""
    mime_type: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower().lstrip(".")

    @classmethod
    def from_path(cls, path: Path) -> "RawSource":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, content=path.read_bytes(), mime_type=mime_type)

    @classmethod
    def from_text(cls, text: str, name: str = "pasted-data") -> "RawSource":
        return cls(name=name, content=text.encode("utf-8"), mime_type="text/plain")


class ConnectionConfig(BaseModel):
    """Fixed-shape configuration for database/platform connectors"""
    type: str
    kind: SourceKind = SourceKind.DATABASE
    host: Optional[str] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    api_key: Optional[str] = Field(default=None, repr=False)
    project_id: Optional[str] = None


# ─────────────────────────────────────────────────────────────
# Parsed tables
# ─────────────────────────────────────────────────────────────

class ColumnInfo(BaseModel):
    """Typed column of a parsed table"""
    model_config = ConfigDict(frozen=True)

    name: str
    inferred_type: ColumnType = ColumnType.STRING
    sample_values: list[Any] = []


class ParsedTable(BaseModel):
    """Normalized result of parsing one source"""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    file_type: Optional[FileType] = None
    columns: list[ColumnInfo] = []
    rows: list[dict[str, Any]] = []
    source_size_bytes: int = 0
    is_placeholder: bool = False
    is_synthetic: bool = False
    dropped_columns: list[str] = []  # record keys with no matching column
    misaligned_rows: int = 0  # records whose keys differed from the columns

    @model_validator(mode="before")
    @classmethod
    def _align_rows(cls, data: Any) -> Any:
        """Give every record exactly the column names, missing cells as None"""
        if not isinstance(data, dict):
            return data

        names = []
        for col in data.get("columns") or []:
            if isinstance(col, ColumnInfo):
                names.append(col.name)
            elif isinstance(col, dict) and "name" in col:
                names.append(col["name"])
            else:
                return data

        rows = data.get("rows") or []
        if not all(isinstance(row, dict) for row in rows):
            return data

        expected = set(names)
        misaligned = [row for row in rows if row.keys() != expected]
        if not misaligned:
            return data

        dropped = list(data.get("dropped_columns") or [])
        extra = {str(key) for row in misaligned for key in row.keys() - expected}
        dropped += sorted(extra - set(dropped))

        return {
            **data,
            "rows": [{name: row.get(name) for name in names} for row in rows],
            "dropped_columns": dropped,
            "misaligned_rows": data.get("misaligned_rows", 0) + len(misaligned),
        }

    @computed_field
    @property
    def row_count(self) -> int:
        return len(self.rows)

    @computed_field
    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def column_names(self) -> list[str]:
        return [col.name for col in self.columns]

    def column(self, name: str) -> Optional[ColumnInfo]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def values(self, name: str) -> list[Any]:
        return [row.get(name) for row in self.rows]

    def preview(self, limit: int = 5) -> list[dict[str, Any]]:
        return self.rows[:limit]


# ─────────────────────────────────────────────────────────────
# Column classification & mapping
# ─────────────────────────────────────────────────────────────

class ColumnCandidate(BaseModel):
    """Ranked candidate for a semantic role"""
    column: str
    score: float = Field(ge=0, le=100)


class ColumnSuggestion(BaseModel):
    """Advisory tag for a column"""
    column: str
    tag: SemanticTag
    priority: Priority
    is_numeric: bool = False
    confidence: float = Field(ge=0, le=100, default=0.0)


class ColumnTypeConfidence(BaseModel):
    """How consistently a column's samples match its inferred type"""
    column: str
    inferred_type: ColumnType
    confidence: float = Field(ge=0, le=100)


class ColumnClassification(BaseModel):
    """Heuristic, non-authoritative tagging of a table's columns"""
    identity_candidates: list[ColumnCandidate] = []
    timestamp_candidates: list[ColumnCandidate] = []
    event_candidates: list[ColumnCandidate] = []
    suggestions: list[ColumnSuggestion] = []
    type_confidence: list[ColumnTypeConfidence] = []

    @property
    def value_columns(self) -> list[str]:
        return [s.column for s in self.suggestions if s.is_numeric]

    @property
    def category_columns(self) -> list[str]:
        return [s.column for s in self.suggestions if s.tag == SemanticTag.CATEGORY]

    def suggestion_for(self, column: str) -> Optional[ColumnSuggestion]:
        for suggestion in self.suggestions:
            if suggestion.column == column:
                return suggestion
        return None


class ColumnMapping(BaseModel):
    """User-confirmed (or auto-defaulted) subset of a classification"""
    user_id_column: Optional[str] = None
    timestamp_column: Optional[str] = None
    event_column: Optional[str] = None
    value_columns: list[str] = []
    category_columns: list[str] = []

    @classmethod
    def from_classification(cls, classification: ColumnClassification) -> "ColumnMapping":
        def _top(candidates: list[ColumnCandidate]) -> Optional[str]:
            return candidates[0].column if candidates else None

        return cls(
            user_id_column=_top(classification.identity_candidates),
            timestamp_column=_top(classification.timestamp_candidates),
            event_column=_top(classification.event_candidates),
            value_columns=list(dict.fromkeys(classification.value_columns)),
            category_columns=list(dict.fromkeys(classification.category_columns)),
        )

    def merge(self, other: "ColumnMapping") -> "ColumnMapping":
        """Fill unset roles from another mapping and union the column lists"""
        return ColumnMapping(
            user_id_column=self.user_id_column or other.user_id_column,
            timestamp_column=self.timestamp_column or other.timestamp_column,
            event_column=self.event_column or other.event_column,
            value_columns=list(dict.fromkeys(self.value_columns + other.value_columns)),
            category_columns=list(dict.fromkeys(self.category_columns + other.category_columns)),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.user_id_column or self.timestamp_column or self.event_column
            or self.value_columns or self.category_columns
        )


# ─────────────────────────────────────────────────────────────
# Ingestion
# ─────────────────────────────────────────────────────────────

_ALLOWED_TRANSITIONS = {
    SourceStatus.PENDING: {SourceStatus.PROCESSING},
    SourceStatus.PROCESSING: {SourceStatus.COMPLETED, SourceStatus.ERROR},
    SourceStatus.COMPLETED: set(),
    SourceStatus.ERROR: set(),
}


class DataSource(BaseModel):
    """One unit of ingestion tracked by the pipeline manager"""
    id: str = Field(default_factory=lambda: f"source-{uuid.uuid4().hex[:12]}")
    name: str
    kind: SourceKind
    status: SourceStatus = SourceStatus.PENDING
    result: Optional[ParsedTable] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    def transition(self, status: SourceStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise PipelineError(
                f"Invalid transition {self.status.value} -> {status.value}",
                source_id=self.id
            )
        self.status = status


class ValidationVerdict(BaseModel):
    """Structural and semantic checks over one parsed table"""
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    confidence: Confidence
    errors: list[str] = []
    warnings: list[str] = []
    completeness: float = Field(ge=0, le=100, default=0.0)


# ─────────────────────────────────────────────────────────────
# Analysis
# ─────────────────────────────────────────────────────────────

class AnalysisContext(BaseModel):
    """Input frame handed to the analysis orchestrator"""
    research_question: str
    additional_context: str = ""
    parsed_tables: list[ParsedTable] = []
    column_mapping: ColumnMapping = Field(default_factory=ColumnMapping)
    educational_mode: bool = False


class AnalysisInsight(BaseModel):
    """Single detailed finding"""
    id: str
    title: str
    description: str = ""
    value: Any = None
    insight: str
    confidence: Confidence = Confidence.MEDIUM


class QueryStep(BaseModel):
    """One step of an educational query walkthrough"""
    step: int
    title: str
    description: str
    sql: Optional[str] = None


class AnalysisResult(BaseModel):
    """Output of the analysis engine"""
    insights: str
    confidence: str = Confidence.MEDIUM.value
    recommendations: list[str] = []
    results: list[AnalysisInsight] = []
    sql_query: Optional[str] = None
    query_breakdown: list[QueryStep] = []


class AnalysisRunState(BaseModel):
    """Progress and outcome of one orchestrated analysis run"""
    phase: AnalysisPhase = AnalysisPhase.VALIDATING
    progress_percent: float = Field(ge=0, le=100, default=0.0)
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    completed: bool = False


# ─────────────────────────────────────────────────────────────
# Project
# ─────────────────────────────────────────────────────────────

class ProjectForm(BaseModel):
    """Accumulated answers of the project creation wizard"""
    project_name: str = ""
    research_question: str = ""
    business_context: str = ""
    educational_mode: bool = False
    column_mapping: ColumnMapping = Field(default_factory=ColumnMapping)


class SavedProject(BaseModel):
    """Handle returned by the persistence collaborator"""
    id: str
    project_name: str
    research_question: str
    business_context: str = ""
    tables: list[ParsedTable] = []
    saved_at: datetime = Field(default_factory=datetime.now)
    path: Optional[str] = None
