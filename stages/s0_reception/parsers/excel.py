"""Excel format parser"""

import io
from datetime import date, datetime
from typing import Any, List

import pandas as pd

from core.models import RawSource, ParsedTable
from core.enums import FileType
from core.exceptions import MalformedSourceError
from utils.values import coerce_scalar
from .base import FileParser


class ExcelParser(FileParser):
    """Parser for Excel workbooks (.xlsx, .xls); reads the first sheet"""

    file_type = FileType.EXCEL_XLSX

    @property
    def supported_extensions(self) -> List[str]:
        return [".xlsx", ".xls"]

    def parse(self, source: RawSource) -> ParsedTable:
        """Parse Excel source"""
        is_xls = source.extension == "xls"
        engine = "xlrd" if is_xls else "openpyxl"

        try:
            df = pd.read_excel(
                io.BytesIO(source.content),
                sheet_name=0,
                header=0,
                dtype=object,
                engine=engine,
            )
        except Exception as e:
            raise MalformedSourceError(
                f"Failed to parse Excel file: {e}",
                source.name,
                FileType.EXCEL_XLS.value if is_xls else FileType.EXCEL_XLSX.value
            ) from e

        headers = [str(col).strip() for col in df.columns]
        records = []
        for values in df.itertuples(index=False, name=None):
            records.append({
                header: _cell_value(value) for header, value in zip(headers, values)
            })

        table = self.build_table(source.name, headers, records, source.size_bytes)
        if is_xls:
            table = table.model_copy(update={"file_type": FileType.EXCEL_XLS})
        return table


def _cell_value(value: Any) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return coerce_scalar(value)
    if hasattr(value, "item"):
        # numpy scalar
        return value.item()
    return value
