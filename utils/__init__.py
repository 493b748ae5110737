"""Utility modules"""

from .callbacks import notify
from .encoding import detect_encoding, decode_bytes
from .patterns import matches_role, ROLE_PATTERNS
from .values import coerce_scalar, infer_column_type, is_empty, non_empty_sample

__all__ = [
    "notify",
    "detect_encoding",
    "decode_bytes",
    "matches_role",
    "ROLE_PATTERNS",
    "coerce_scalar",
    "infer_column_type",
    "is_empty",
    "non_empty_sample",
]
