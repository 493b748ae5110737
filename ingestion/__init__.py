"""Source ingestion"""

from .manager import IngestionPipelineManager
from .connectors import (
    ConnectorRegistry, SampleDatasetConnector, DatabaseConnector,
    PlatformConnector, default_registry, SAMPLE_DATASETS
)

__all__ = [
    "IngestionPipelineManager",
    "ConnectorRegistry",
    "SampleDatasetConnector",
    "DatabaseConnector",
    "PlatformConnector",
    "default_registry",
    "SAMPLE_DATASETS",
]
