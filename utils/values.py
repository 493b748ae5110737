"""Scalar value helpers shared by parsers, classifier and validator"""

import math
import re
from datetime import datetime
from typing import Any, Iterable, Optional

from core.enums import ColumnType


EMPTY_MARKERS = {"", "null", "undefined", "n/a", "none", "nan"}

_INT_PATTERN = re.compile(r"^[+-]?(0|[1-9]\d*)$")
_FLOAT_PATTERN = re.compile(r"^[+-]?(0|[1-9]\d*)?\.\d+([eE][+-]?\d+)?$|^[+-]?(0|[1-9]\d*)([eE][+-]?\d+)$")
_BOOLEAN_STRINGS = {"true", "false"}

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m-%d-%Y",
    "%d-%m-%Y",
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%d %b %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
]


def is_empty(value: Any) -> bool:
    """True for null values and the textual empty markers"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str):
        return value.strip().lower() in EMPTY_MARKERS
    return False


def coerce_scalar(raw: Optional[str]) -> Any:
    """
    Convert a raw text cell into a typed scalar when unambiguous

    Integers with leading zeros (e.g. zip codes, padded IDs) stay strings.
    Empty cells become None.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if text == "":
        return None
    if _INT_PATTERN.match(text):
        return int(text)
    if _FLOAT_PATTERN.match(text):
        number = float(text)
        if math.isfinite(number):
            return number
    return text


def to_number(value: Any) -> Optional[float]:
    """Parse a value as a finite number, or None"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    try:
        number = float(str(value).strip().replace(",", ""))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def is_number(value: Any) -> bool:
    return to_number(value) is not None


def to_datetime(value: Any) -> Optional[datetime]:
    """Parse a value as a date/datetime, or None"""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or _INT_PATTERN.match(text) or _FLOAT_PATTERN.match(text):
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def is_date(value: Any) -> bool:
    return to_datetime(value) is not None


def is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in _BOOLEAN_STRINGS


def non_empty_sample(values: Iterable[Any], size: int) -> list[Any]:
    """First `size` non-empty values"""
    sample = []
    for value in values:
        if is_empty(value):
            continue
        sample.append(value)
        if len(sample) >= size:
            break
    return sample


def infer_column_type(samples: list[Any]) -> ColumnType:
    """Infer a column type; every sample must agree"""
    if not samples:
        return ColumnType.STRING
    if all(is_number(s) for s in samples):
        return ColumnType.NUMBER
    if all(is_date(s) for s in samples):
        return ColumnType.DATE
    if all(is_boolean(s) for s in samples):
        return ColumnType.BOOLEAN
    return ColumnType.STRING


def type_ratio(samples: list[Any], column_type: ColumnType) -> float:
    """Fraction of samples that parse cleanly as the given type"""
    if not samples:
        return 0.0
    checks = {
        ColumnType.NUMBER: is_number,
        ColumnType.DATE: is_date,
        ColumnType.BOOLEAN: is_boolean,
        ColumnType.STRING: lambda v: isinstance(v, str) and not is_number(v),
    }
    check = checks[column_type]
    return sum(1 for s in samples if check(s)) / len(samples)
