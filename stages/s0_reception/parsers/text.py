"""Plain text parser.

Delimited text is handed to the CSV parser; anything else becomes one record
per non-empty line with its line number.
"""

from typing import List

from core.models import RawSource, ParsedTable
from core.enums import FileType
from utils.encoding import decode_bytes
from .base import FileParser
from .csv import CSVParser


TEXT_DELIMITERS = (",", "\t")


def first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def looks_delimited(text: str) -> bool:
    """First non-empty line contains a delimiter"""
    line = first_line(text)
    return any(delim in line for delim in TEXT_DELIMITERS)


class TextParser(FileParser):
    """Parser for plain text (.txt)"""

    file_type = FileType.TEXT

    def __init__(self, sample_size: int = None):
        super().__init__(sample_size)
        self.csv_parser = CSVParser(sample_size)

    @property
    def supported_extensions(self) -> List[str]:
        return [".txt"]

    def parse(self, source: RawSource) -> ParsedTable:
        text = decode_bytes(source.content)
        return self.parse_text(text, source.name, source.size_bytes)

    def parse_text(self, text: str, name: str, source_size_bytes: int = 0) -> ParsedTable:
        if looks_delimited(text):
            return self.csv_parser.parse_text(text, name, source_size_bytes)

        records = []
        for number, line in enumerate(text.splitlines(), 1):
            content = line.strip()
            if content:
                records.append({"line_number": number, "content": content})

        return self.build_table(name, ["line_number", "content"], records, source_size_bytes)
