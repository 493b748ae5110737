"""Format parsers"""

from .base import FileParser
from .csv import CSVParser
from .json import JSONParser
from .text import TextParser
from .excel import ExcelParser
from .placeholder import build_placeholder_table

__all__ = [
    "FileParser",
    "CSVParser",
    "JSONParser",
    "TextParser",
    "ExcelParser",
    "build_placeholder_table",
]
