"""Core enumerations for Data Detective"""

from enum import Enum


class FileType(str, Enum):
    """Supported source formats"""
    CSV = "csv"
    JSON = "json"
    TEXT = "txt"
    EXCEL_XLSX = "xlsx"
    EXCEL_XLS = "xls"


class ColumnType(str, Enum):
    """Inferred scalar type of a column"""
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class SourceKind(str, Enum):
    """Origin of a data source"""
    FILE = "file"
    PASTED = "pasted"
    DATABASE = "database"
    PLATFORM = "platform"


class SourceStatus(str, Enum):
    """Lifecycle status of a data source"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SourceStatus.COMPLETED, SourceStatus.ERROR)


class SemanticTag(str, Enum):
    """Advisory semantic tag assigned by the column classifier"""
    REVENUE = "revenue"
    QUANTITY = "quantity"
    METRIC = "metric"
    CATEGORY = "category"
    TEXT = "text"


class Priority(str, Enum):
    """Suggestion priority"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class Confidence(str, Enum):
    """Confidence level"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AnalysisPhase(str, Enum):
    """Ordered phases of an analysis run"""
    VALIDATING = "validating"
    EXAMINING_EVIDENCE = "examining_evidence"
    RECOGNIZING_PATTERNS = "recognizing_patterns"
    STATISTICAL_ANALYSIS = "statistical_analysis"
    CROSS_REFERENCING = "cross_referencing"
    RUNNING_ENGINE = "running_engine"
    FINALIZING = "finalizing"
    DONE = "done"


class WizardStep(str, Enum):
    """Steps of the project creation form"""
    RESEARCH_QUESTION = "research_question"
    DATA_SOURCE = "data_source"
    BUSINESS_CONTEXT = "business_context"
    COLUMN_MAPPING = "column_mapping"
    ANALYSIS_SUMMARY = "analysis_summary"


class LLMProvider(str, Enum):
    """Supported LLM providers"""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
