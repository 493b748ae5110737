"""Core abstractions for the Data Detective pipeline"""

from .models import *
from .enums import *
from .exceptions import *
from .interfaces import *

__all__ = [
    # Models
    "RawSource",
    "ConnectionConfig",
    "ColumnInfo",
    "ParsedTable",
    "ColumnCandidate",
    "ColumnSuggestion",
    "ColumnTypeConfidence",
    "ColumnClassification",
    "ColumnMapping",
    "DataSource",
    "ValidationVerdict",
    "AnalysisContext",
    "AnalysisInsight",
    "QueryStep",
    "AnalysisResult",
    "AnalysisRunState",
    "ProjectForm",
    "SavedProject",
    # Enums
    "FileType",
    "ColumnType",
    "SourceKind",
    "SourceStatus",
    "SemanticTag",
    "Priority",
    "Confidence",
    "AnalysisPhase",
    "WizardStep",
    "LLMProvider",
    # Exceptions
    "DetectiveError",
    "FileParseError",
    "UnsupportedFormatError",
    "MalformedSourceError",
    "PipelineError",
    "ConnectorNotImplementedError",
    "InvalidContextError",
    "EngineError",
    "LLMError",
    "PersistenceError",
    # Interfaces
    "Stage",
    "FileParser",
    "AnalysisEngine",
    "ConnectorPort",
    "ProjectStore",
    "LLMTask",
]
