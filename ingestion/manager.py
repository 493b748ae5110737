"""Ingestion pipeline manager"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from core.models import (
    RawSource, ParsedTable, DataSource, ConnectionConfig,
    ValidationVerdict, ColumnClassification, ColumnMapping
)
from core.enums import SourceKind, SourceStatus
from stages.s0_reception import Receiver
from stages.s1_classification import Classifier
from stages.s2_validation import DataValidator
from .connectors import ConnectorRegistry, default_registry

logger = logging.getLogger(__name__)


class IngestionPipelineManager:
    """
    Parses, classifies and validates sources, tracking each one's status.

    A failure is recorded on its own source and never affects siblings.
    Completed tables are exposed in insertion order.
    """

    def __init__(
        self,
        receiver: Optional[Receiver] = None,
        classifier: Optional[Classifier] = None,
        validator: Optional[DataValidator] = None,
        connectors: Optional[ConnectorRegistry] = None
    ):
        self.receiver = receiver or Receiver()
        self.classifier = classifier or Classifier()
        self.validator = validator or DataValidator()
        self.connectors = connectors or default_registry()

        self._sources: dict[str, DataSource] = {}
        self._validations: dict[str, ValidationVerdict] = {}
        self._classifications: dict[str, ColumnClassification] = {}

    # Adding sources

    async def add_file_source(self, source: RawSource) -> str:
        """Parse an uploaded file; returns the new source id"""
        return await self._ingest(source.name, SourceKind.FILE, lambda: self.receiver.execute(source))

    async def add_file_path(self, path: Path) -> str:
        path = Path(path)
        try:
            source = RawSource.from_path(path)
        except OSError as e:
            return await self._ingest(path.name, SourceKind.FILE, _raiser(e))
        return await self.add_file_source(source)

    async def add_pasted_source(self, text: str, name: str = "pasted-data") -> str:
        """Parse pasted text through the same detection as plain-text files"""
        async def _parse() -> ParsedTable:
            return self.receiver.parse_text(text, name)
        return await self._ingest(name, SourceKind.PASTED, _parse)

    async def add_mock_connection_source(self, config: ConnectionConfig) -> str:
        """Fetch from a connector; only sample datasets are backed by data"""
        return await self._ingest(config.type, config.kind, lambda: self.connectors.fetch(config))

    async def add_parsed_table(self, table: ParsedTable, kind: SourceKind = SourceKind.FILE) -> str:
        """Register an already parsed table (continue-case), skipping the parser"""
        async def _existing() -> ParsedTable:
            return table
        return await self._ingest(table.name or "reconstructed", kind, _existing)

    async def process_files(self, sources: list[RawSource]) -> list[str]:
        """Ingest several files concurrently; ids come back in input order"""
        return list(await asyncio.gather(*(self.add_file_source(s) for s in sources)))

    # Removing sources

    def remove_source(self, source_id: str):
        """Drop a source and its validation entry; no-op for unknown ids"""
        self._sources.pop(source_id, None)
        self._validations.pop(source_id, None)
        self._classifications.pop(source_id, None)

    def clear(self):
        self._sources.clear()
        self._validations.clear()
        self._classifications.clear()

    # Queries

    @property
    def sources(self) -> list[DataSource]:
        return list(self._sources.values())

    def get_source(self, source_id: str) -> Optional[DataSource]:
        return self._sources.get(source_id)

    def get_validation(self, source_id: str) -> Optional[ValidationVerdict]:
        return self._validations.get(source_id)

    def get_classification(self, source_id: str) -> Optional[ColumnClassification]:
        return self._classifications.get(source_id)

    def get_all_parsed_tables(self) -> list[ParsedTable]:
        return [
            source.result
            for source in self._sources.values()
            if source.status == SourceStatus.COMPLETED and source.result is not None
        ]

    def has_valid_data(self) -> bool:
        return any(verdict.is_valid for verdict in self._validations.values())

    @property
    def errors(self) -> dict[str, str]:
        return {
            source.id: source.error
            for source in self._sources.values()
            if source.status == SourceStatus.ERROR
        }

    def suggest_column_mapping(self) -> ColumnMapping:
        """Default mapping merged across completed sources in insertion order"""
        mapping = ColumnMapping()
        for source_id, source in self._sources.items():
            classification = self._classifications.get(source_id)
            if source.status == SourceStatus.COMPLETED and classification is not None:
                mapping = mapping.merge(ColumnMapping.from_classification(classification))
        return mapping

    # Internals

    async def _ingest(
        self,
        name: str,
        kind: SourceKind,
        produce: Callable[[], Awaitable[ParsedTable]]
    ) -> str:
        source = DataSource(name=name, kind=kind)
        self._sources[source.id] = source
        source.transition(SourceStatus.PROCESSING)

        try:
            table = await produce()
            classification = self.classifier.classify(table)
            verdict = self.validator.validate(table)
        except Exception as e:
            source.error = str(e)
            source.transition(SourceStatus.ERROR)
            logger.warning("Source %s (%s) failed: %s", name, source.id, e)
            return source.id

        source.result = table
        source.transition(SourceStatus.COMPLETED)

        # The source may have been removed while it was processing
        if source.id in self._sources:
            self._classifications[source.id] = classification
            self._validations[source.id] = verdict

        logger.info(
            "Source %s (%s) completed: %d rows, valid=%s",
            name, source.id, table.row_count, verdict.is_valid
        )
        return source.id


def _raiser(error: Exception) -> Callable[[], Awaitable[ParsedTable]]:
    async def _raise() -> ParsedTable:
        raise error
    return _raise
