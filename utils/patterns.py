"""Column name patterns used for heuristic classification"""

import re
from typing import Dict


# Semantic role patterns (case-insensitive)
ROLE_PATTERNS: Dict[str, re.Pattern] = {
    "identity": re.compile(
        r"user|customer|client|account|member|(^|[_\s-])(id|uid|uuid)$|^id$|identifier",
        re.IGNORECASE,
    ),
    "timestamp": re.compile(
        r"time|date|timestamp|created|updated|occurred|^day$|^month$|^year$",
        re.IGNORECASE,
    ),
    "event": re.compile(
        r"event|action|activity|behavio|click|view|visit",
        re.IGNORECASE,
    ),
}

# Value column patterns
REVENUE_PATTERN = re.compile(
    r"revenue|sales|price|cost|amount|income|profit|spend|payment|salary|mrr|arr|gmv|fee",
    re.IGNORECASE,
)
QUANTITY_PATTERN = re.compile(
    r"(?<![a-z])(count|qty|quantity|units|volume|items|orders|visits|clicks|sessions|num|number)",
    re.IGNORECASE,
)
CATEGORY_PATTERN = re.compile(
    r"category|type|status|segment|group|department|region",
    re.IGNORECASE,
)

# Names the validator treats as placeholders
GENERIC_NAME_PATTERN = re.compile(r"^(unnamed(:\s*\d+)?|column\d+|field\d+)$", re.IGNORECASE)
ID_NAME_PATTERN = re.compile(r"^id$|_id$|identifier", re.IGNORECASE)


def matches_role(column_name: str, role: str) -> bool:
    """True when the column name matches the named role pattern"""
    pattern = ROLE_PATTERNS.get(role)
    return bool(pattern and pattern.search(column_name))
