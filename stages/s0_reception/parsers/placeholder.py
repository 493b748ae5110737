"""Placeholder tables for zero-byte sources.

Reconstructed projects and demo flows hand over empty files named after the
dataset they stand for; the column set is picked from that name.
"""

from datetime import datetime, timedelta
from typing import Any, Optional

from core.models import ParsedTable, ColumnInfo
from core.enums import ColumnType, FileType
from config import settings


SALES_COLUMNS = ["order_id", "customer_id", "product_name", "order_date", "total_amount"]
USER_COLUMNS = ["user_id", "session_id", "action", "timestamp", "page_url"]
GENERIC_COLUMNS = ["id", "name", "category", "value", "date"]

_CATEGORIES = ["alpha", "beta", "gamma", "delta"]
_ACTIONS = ["page_view", "click", "add_to_cart", "purchase", "search"]
_BASE_DATE = datetime(2024, 1, 1)


def placeholder_columns(source_name: str) -> list[str]:
    lowered = source_name.lower()
    if "sales" in lowered:
        return SALES_COLUMNS
    if "user" in lowered:
        return USER_COLUMNS
    return GENERIC_COLUMNS


def _cell(column: str, index: int) -> Any:
    if column.endswith("_id") or column == "id":
        return f"{column.split('_')[0]}_{1000 + index}"
    if "date" in column or "timestamp" in column:
        return (_BASE_DATE + timedelta(hours=7 * index)).isoformat()
    if "amount" in column or column == "value":
        return round(((index * 37) % 1000) + 0.5, 2)
    if column == "category":
        return _CATEGORIES[index % len(_CATEGORIES)]
    if column == "action":
        return _ACTIONS[index % len(_ACTIONS)]
    if column == "page_url":
        return f"/page/{index % 12}"
    return f"Sample {column} {index + 1}"


def _column_type(column: str) -> ColumnType:
    if "amount" in column or column == "value":
        return ColumnType.NUMBER
    if "date" in column or "timestamp" in column:
        return ColumnType.DATE
    return ColumnType.STRING


def build_placeholder_table(
    source_name: str,
    file_type: Optional[FileType] = None,
    row_count: Optional[int] = None,
) -> ParsedTable:
    """Deterministic placeholder table for an empty source"""
    row_count = settings.PLACEHOLDER_ROWS if row_count is None else row_count
    names = placeholder_columns(source_name)
    rows = [{name: _cell(name, i) for name in names} for i in range(row_count)]

    columns = [
        ColumnInfo(
            name=name,
            inferred_type=_column_type(name),
            sample_values=[row[name] for row in rows[:5]]
        )
        for name in names
    ]

    return ParsedTable(
        name=source_name,
        file_type=file_type,
        columns=columns,
        rows=rows,
        source_size_bytes=0,
        is_placeholder=True
    )
