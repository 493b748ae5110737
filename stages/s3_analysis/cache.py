"""In-memory LRU cache for analysis results"""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Optional

from core.models import AnalysisContext, AnalysisResult, ParsedTable
from config import settings

logger = logging.getLogger(__name__)


class AnalysisCache:
    """
    LRU cache with time-to-live, keyed by the analysis inputs.

    Tables are identified by their shape plus a digest of their rows.
    """

    def __init__(self, max_size: Optional[int] = None, ttl_seconds: Optional[float] = None):
        self.max_size = max_size if max_size is not None else settings.ANALYSIS_CACHE_SIZE
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.ANALYSIS_CACHE_TTL
        self._entries: OrderedDict[str, tuple[float, AnalysisResult]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(context: AnalysisContext) -> str:
        signature = {
            "question": context.research_question.strip().lower(),
            "context": context.additional_context.strip(),
            "educational": context.educational_mode,
            "mapping": context.column_mapping.model_dump(),
            "tables": [
                [t.name, t.row_count, t.column_names, t.source_size_bytes, _rows_digest(t)]
                for t in context.parsed_tables
            ],
        }
        return _sha256(json.dumps(signature, sort_keys=True, default=str))

    def get(self, context: AnalysisContext) -> Optional[AnalysisResult]:
        key = self.make_key(context)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        stored_at, result = entry
        if time.monotonic() - stored_at > self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return result

    def put(self, context: AnalysisContext, result: AnalysisResult) -> None:
        if self.max_size <= 0:
            return
        key = self.make_key(context)
        self._entries[key] = (time.monotonic(), result)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Evicted analysis cache entry %s", evicted[:8])

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> dict:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / total * 100, 1) if total else 0.0,
        }


def _rows_digest(table: ParsedTable) -> str:
    return _sha256(json.dumps(table.rows, sort_keys=True, default=str))


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
