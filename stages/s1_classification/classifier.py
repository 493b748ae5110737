"""Stage 1: Column Classification"""

from typing import Optional

from core.interfaces import Stage
from core.models import (
    ParsedTable, ColumnClassification, ColumnCandidate,
    ColumnSuggestion, ColumnTypeConfidence
)
from core.enums import ColumnType, SemanticTag, Priority
from utils.patterns import (
    REVENUE_PATTERN, QUANTITY_PATTERN, CATEGORY_PATTERN, matches_role
)
from utils.values import non_empty_sample, type_ratio, infer_column_type
from config import settings


# Share of a candidate score earned by a name match; the rest comes from type consistency
NAME_WEIGHT = 60.0
TYPE_WEIGHT = 40.0


class Classifier(Stage[ParsedTable, ColumnClassification]):
    """Stage 1: Tag columns with likely semantic roles.

    Classification is advisory: a column may appear in several candidate
    lists, and every column receives a suggestion so nothing is hidden from
    the user, only ordered.
    """

    @property
    def name(self) -> str:
        return "Column Classification"

    @property
    def stage_number(self) -> int:
        return 1

    def __init__(
        self,
        sample_size: Optional[int] = None,
        threshold: Optional[float] = None
    ):
        self.sample_size = sample_size or settings.CLASSIFIER_SAMPLE_SIZE
        self.threshold = threshold if threshold is not None else settings.TYPE_CONSISTENCY_THRESHOLD

    def validate_input(self, input_data: ParsedTable) -> bool:
        return isinstance(input_data, ParsedTable)

    async def execute(self, input_data: ParsedTable) -> ColumnClassification:
        """Execute classification stage"""
        return self.classify(input_data)

    def classify(self, table: ParsedTable) -> ColumnClassification:
        """Classify every column of a table; never raises"""
        identity, timestamp, event = [], [], []
        suggestions = []
        type_confidence = []

        for column in table.columns:
            samples = non_empty_sample(table.values(column.name), self.sample_size)

            inferred = infer_column_type(samples) if samples else column.inferred_type
            type_confidence.append(ColumnTypeConfidence(
                column=column.name,
                inferred_type=inferred,
                confidence=round(type_ratio(samples, inferred) * 100, 1) if samples else 0.0
            ))

            numeric_ratio = type_ratio(samples, ColumnType.NUMBER)
            date_ratio = type_ratio(samples, ColumnType.DATE)
            text_ratio = type_ratio(samples, ColumnType.STRING)
            present_ratio = 1.0 if samples else 0.0

            if matches_role(column.name, "identity"):
                identity.append(self._candidate(column.name, True, present_ratio))

            name_is_time = matches_role(column.name, "timestamp")
            if name_is_time or (samples and date_ratio >= self.threshold):
                timestamp.append(self._candidate(column.name, name_is_time, date_ratio))

            if matches_role(column.name, "event"):
                event.append(self._candidate(column.name, True, text_ratio))

            suggestions.append(self._suggest(column.name, samples, numeric_ratio))

        return ColumnClassification(
            identity_candidates=_rank(identity),
            timestamp_candidates=_rank(timestamp),
            event_candidates=_rank(event),
            suggestions=sorted(suggestions, key=lambda s: s.priority.rank),
            type_confidence=type_confidence
        )

    def is_numeric(self, samples: list) -> bool:
        return bool(samples) and type_ratio(samples, ColumnType.NUMBER) >= self.threshold

    def _candidate(self, column: str, name_match: bool, ratio: float) -> ColumnCandidate:
        score = (NAME_WEIGHT if name_match else 0.0) + TYPE_WEIGHT * ratio
        return ColumnCandidate(column=column, score=round(min(score, 100.0), 1))

    def _suggest(self, column: str, samples: list, numeric_ratio: float) -> ColumnSuggestion:
        confidence = round(numeric_ratio * 100, 1)

        if self.is_numeric(samples):
            if REVENUE_PATTERN.search(column):
                tag, priority = SemanticTag.REVENUE, Priority.HIGH
            elif QUANTITY_PATTERN.search(column):
                tag, priority = SemanticTag.QUANTITY, Priority.HIGH
            else:
                tag, priority = SemanticTag.METRIC, Priority.MEDIUM
            return ColumnSuggestion(
                column=column, tag=tag, priority=priority,
                is_numeric=True, confidence=confidence
            )

        if CATEGORY_PATTERN.search(column):
            return ColumnSuggestion(
                column=column, tag=SemanticTag.CATEGORY, priority=Priority.HIGH,
                confidence=round((1 - numeric_ratio) * 100, 1)
            )

        return ColumnSuggestion(
            column=column, tag=SemanticTag.TEXT, priority=Priority.LOW,
            confidence=round((1 - numeric_ratio) * 100, 1) if samples else 0.0
        )


def _rank(candidates: list[ColumnCandidate]) -> list[ColumnCandidate]:
    """Highest score first; ties keep column order"""
    return sorted(candidates, key=lambda c: -c.score)
