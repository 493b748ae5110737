"""CSV format parser"""

import io
import logging
import warnings
from typing import List

import pandas as pd

from core.models import RawSource, ParsedTable
from core.enums import FileType
from core.exceptions import MalformedSourceError
from utils.encoding import decode_bytes
from utils.values import coerce_scalar
from .base import FileParser

logger = logging.getLogger(__name__)


class CSVParser(FileParser):
    """Parser for delimited text with a header row"""

    file_type = FileType.CSV

    @property
    def supported_extensions(self) -> List[str]:
        return [".csv"]

    def parse(self, source: RawSource) -> ParsedTable:
        """Parse CSV source"""
        text = decode_bytes(source.content)
        return self.parse_text(text, source.name, source.size_bytes)

    def parse_text(self, text: str, name: str, source_size_bytes: int = 0) -> ParsedTable:
        """Parse delimited text; the first non-empty line is the header"""
        delimiter = detect_delimiter(text)

        try:
            # index_col=False keeps the first field a column when rows run
            # one field past the header; the trailing field is dropped
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", pd.errors.ParserWarning)
                df = pd.read_csv(
                    io.StringIO(text),
                    sep=delimiter,
                    header=0,
                    index_col=False,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                    skipinitialspace=True,
                )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeError) as e:
            raise MalformedSourceError(
                f"Failed to parse CSV data: {e}",
                name,
                FileType.CSV.value
            ) from e

        for warning in caught:
            logger.warning("CSV %s: %s", name, warning.message)

        headers = [str(col).strip().strip('"') for col in df.columns]
        records = []
        for values in df.itertuples(index=False, name=None):
            record = {}
            for header, value in zip(headers, values):
                record[header] = None if pd.isna(value) else coerce_scalar(value)
            records.append(record)

        return self.build_table(name, headers, records, source_size_bytes)


def detect_delimiter(text: str) -> str:
    """Detect CSV delimiter"""
    delimiters = [',', '\t', '|', ';']

    sample = text[:4096]
    lines = [line for line in sample.split('\n')[:10] if line.strip()]

    scores = {}
    for delim in delimiters:
        counts = [line.count(delim) for line in lines]
        if counts and min(counts) > 0:
            avg = sum(counts) / len(counts)
            variance = sum((c - avg) ** 2 for c in counts) / len(counts)
            scores[delim] = min(counts) if variance < 2 else 0

    if not scores or max(scores.values()) == 0:
        return ','
    return max(scores, key=scores.get)
