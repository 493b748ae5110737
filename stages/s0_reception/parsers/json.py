"""JSON format parser"""

import json
from typing import Any, List

from core.models import RawSource, ParsedTable
from core.enums import FileType
from core.exceptions import MalformedSourceError
from utils.encoding import decode_bytes
from .base import FileParser


class JSONParser(FileParser):
    """Parser for an array of flat objects (or a single object)"""

    file_type = FileType.JSON

    @property
    def supported_extensions(self) -> List[str]:
        return [".json"]

    def parse(self, source: RawSource) -> ParsedTable:
        """Parse JSON source"""
        text = decode_bytes(source.content)
        return self.parse_text(text, source.name, source.size_bytes)

    def parse_text(self, text: str, name: str, source_size_bytes: int = 0) -> ParsedTable:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedSourceError(
                f"Invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
                name,
                self.file_type.value
            ) from e

        if isinstance(data, dict):
            data = [data]

        if not isinstance(data, list):
            raise MalformedSourceError(
                "JSON must contain an array of objects or a single object",
                name,
                self.file_type.value
            )
        if not data:
            raise MalformedSourceError("JSON array is empty", name, self.file_type.value)
        if not all(isinstance(item, dict) for item in data):
            raise MalformedSourceError(
                "JSON array must contain only objects",
                name,
                self.file_type.value
            )

        # Columns come from the first record; later-only keys are recorded, not kept
        headers = [str(key) for key in data[0].keys()]
        known = set(headers)
        dropped: list[str] = []
        for item in data[1:]:
            for key in item.keys():
                if str(key) not in known and str(key) not in dropped:
                    dropped.append(str(key))

        records = [
            {str(key): _flatten(value) for key, value in item.items()}
            for item in data
        ]

        return self.build_table(name, headers, records, source_size_bytes, dropped)


def _flatten(value: Any) -> Any:
    """Nested structures are kept as their JSON text"""
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return value
