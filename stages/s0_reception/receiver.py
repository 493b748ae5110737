"""Stage 0: Reception - Format detection and parsing"""

import logging
from typing import Optional

from core.interfaces import Stage
from core.models import RawSource, ParsedTable
from core.enums import FileType
from core.exceptions import FileParseError, MalformedSourceError, UnsupportedFormatError
from .parsers import CSVParser, JSONParser, TextParser, ExcelParser, build_placeholder_table
from .parsers.text import first_line, looks_delimited

logger = logging.getLogger(__name__)


EXTENSION_TYPES = {
    "csv": FileType.CSV,
    "json": FileType.JSON,
    "txt": FileType.TEXT,
    "xlsx": FileType.EXCEL_XLSX,
    "xls": FileType.EXCEL_XLS,
}

MIME_TYPES = {
    "text/csv": FileType.CSV,
    "application/csv": FileType.CSV,
    "text/comma-separated-values": FileType.CSV,
    "application/json": FileType.JSON,
    "text/json": FileType.JSON,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileType.EXCEL_XLSX,
    "application/vnd.ms-excel": FileType.EXCEL_XLS,
}


class Receiver(Stage[RawSource, ParsedTable]):
    """Stage 0: Reception - Detect a source's format and parse it"""

    @property
    def name(self) -> str:
        return "Reception"

    @property
    def stage_number(self) -> int:
        return 0

    def __init__(self, sample_size: Optional[int] = None):
        csv_parser = CSVParser(sample_size)
        excel_parser = ExcelParser(sample_size)
        self.parsers = {
            FileType.CSV: csv_parser,
            FileType.JSON: JSONParser(sample_size),
            FileType.TEXT: TextParser(sample_size),
            FileType.EXCEL_XLSX: excel_parser,
            FileType.EXCEL_XLS: excel_parser,
        }

    def validate_input(self, input_data: RawSource) -> bool:
        return isinstance(input_data, RawSource)

    async def execute(self, input_data: RawSource) -> ParsedTable:
        """Execute reception stage"""
        return self.parse(input_data)

    def detect_format(self, source: RawSource) -> FileType:
        """Extension first, then MIME type, then content sniffing"""
        ext = source.extension
        if ext in EXTENSION_TYPES:
            return EXTENSION_TYPES[ext]

        mime = (source.mime_type or "").split(";")[0].strip().lower()
        if mime in MIME_TYPES:
            return MIME_TYPES[mime]
        if mime == "text/plain" or (not ext and not mime):
            return self._sniff(source)

        raise UnsupportedFormatError(
            f"Unsupported file type: {'.' + ext if ext else mime or 'unknown'}. "
            f"Supported: {', '.join('.' + e for e in EXTENSION_TYPES)}",
            source.name,
            ext or mime or None
        )

    def parse(self, source: RawSource) -> ParsedTable:
        """Parse a raw source into a ParsedTable"""
        file_type = self.detect_format(source)

        if not source.content.strip():
            logger.warning("Source %s is empty, using placeholder data", source.name)
            return build_placeholder_table(source.name, file_type)

        parser = self.parsers[file_type]
        try:
            table = parser.parse(source)
        except FileParseError:
            raise
        except Exception as e:
            raise MalformedSourceError(
                f"Unexpected error parsing {source.name}: {e}",
                source.name,
                file_type.value
            ) from e

        logger.info(
            "Parsed %s as %s: %d rows, %d columns",
            source.name, file_type.value, table.row_count, table.column_count
        )
        return table

    def parse_text(self, text: str, name: str = "pasted-data") -> ParsedTable:
        """Parse pasted text through the same sniffing used for plain-text files"""
        table = self.parse(RawSource.from_text(text, name))
        return table.model_copy(update={"source_size_bytes": 0})

    def _sniff(self, source: RawSource) -> FileType:
        if b"\x00" in source.content[:4096]:
            raise UnsupportedFormatError(
                "Binary content cannot be parsed as text",
                source.name
            )
        text = source.content[:4096].decode("utf-8", errors="replace").lstrip()
        if text.startswith(("[", "{")):
            return FileType.JSON
        if looks_delimited(text) and "," in first_line(text):
            return FileType.CSV
        return FileType.TEXT
