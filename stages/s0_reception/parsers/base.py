"""Base format parser"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from core.interfaces import FileParser as IFileParser
from core.models import RawSource, ParsedTable, ColumnInfo
from core.enums import FileType
from utils.values import infer_column_type, non_empty_sample
from config import settings


class FileParser(IFileParser, ABC):
    """Abstract base class for format parsers"""

    file_type: FileType

    def __init__(self, sample_size: Optional[int] = None):
        self.sample_size = sample_size or settings.PARSER_SAMPLE_SIZE

    @abstractmethod
    def parse(self, source: RawSource) -> ParsedTable:
        """Parse source and return ParsedTable"""
        pass

    def build_table(
        self,
        name: str,
        headers: list[str],
        records: list[dict[str, Any]],
        source_size_bytes: int = 0,
        dropped_columns: Optional[list[str]] = None,
    ) -> ParsedTable:
        """Backfill missing cells, infer column types and freeze the table"""
        headers = unique_headers(headers)
        rows = [{header: record.get(header) for header in headers} for record in records]

        columns = []
        for header in headers:
            samples = non_empty_sample((row[header] for row in rows), self.sample_size)
            columns.append(ColumnInfo(
                name=header,
                inferred_type=infer_column_type(samples),
                sample_values=samples
            ))

        return ParsedTable(
            name=name,
            file_type=self.file_type,
            columns=columns,
            rows=rows,
            source_size_bytes=source_size_bytes,
            dropped_columns=dropped_columns or []
        )


def unique_headers(headers: list[str]) -> list[str]:
    """Blank headers get a positional name; duplicates get a numeric suffix"""
    seen: dict[str, int] = {}
    result = []
    for index, header in enumerate(headers):
        name = str(header).strip() or f"column{index + 1}"
        if name in seen:
            seen[name] += 1
            candidate = f"{name}_{seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name}_{seen[name]}"
            name = candidate
        seen.setdefault(name, 1)
        result.append(name)
    return result
