"""Stage 2: Data Validation"""

import json
import logging
from collections import Counter
from typing import Optional

from core.interfaces import Stage
from core.models import ParsedTable, ValidationVerdict
from core.enums import Confidence
from utils.patterns import GENERIC_NAME_PATTERN, ID_NAME_PATTERN, ROLE_PATTERNS
from utils.values import is_empty
from config import settings

logger = logging.getLogger(__name__)


LOW_COMPLETENESS = 50.0
HIGH_COMPLETENESS = 90.0
LARGE_DATASET_ROWS = 100


class DataValidator(Stage[ParsedTable, ValidationVerdict]):
    """Stage 2: Structural and semantic checks over a parsed table.

    Errors block analysis (``is_valid=False``); warnings only inform. The
    verdict is a pure function of the table, so validating an unchanged
    table twice yields identical verdicts.
    """

    @property
    def name(self) -> str:
        return "Data Validation"

    @property
    def stage_number(self) -> int:
        return 2

    def __init__(self, duplicate_sample_size: Optional[int] = None):
        self.duplicate_sample_size = duplicate_sample_size or settings.DUPLICATE_ROW_SAMPLE_SIZE

    def validate_input(self, input_data: ParsedTable) -> bool:
        return isinstance(input_data, ParsedTable)

    async def execute(self, input_data: ParsedTable) -> ValidationVerdict:
        """Execute validation stage"""
        return self.validate(input_data)

    def validate(self, table: ParsedTable) -> ValidationVerdict:
        """Validate a table; never raises"""
        errors: list[str] = []
        warnings: list[str] = []

        try:
            self._check_structure(table, errors, warnings)
            completeness = self._check_quality(table, errors, warnings)
            self._check_columns(table, errors, warnings)
            self._check_rows(table, errors, warnings)
            self._check_provenance(table, warnings)
        except Exception as e:
            logger.exception("Validation of %s failed", table.name)
            return ValidationVerdict(
                is_valid=False,
                confidence=Confidence.LOW,
                errors=[f"Validation failed: {e}"],
                warnings=[],
                completeness=0.0
            )

        verdict = ValidationVerdict(
            is_valid=not errors,
            confidence=_confidence(errors, completeness),
            errors=errors,
            warnings=warnings,
            completeness=completeness
        )
        if errors or warnings:
            logger.info(
                "Validated %s: %d errors, %d warnings, confidence %s",
                table.name, len(errors), len(warnings), verdict.confidence.value
            )
        return verdict

    def _check_structure(self, table: ParsedTable, errors: list[str], warnings: list[str]):
        if table.column_count == 0:
            errors.append("No columns found in dataset")
        if table.row_count == 0:
            errors.append("No rows found in dataset")
            return

        if table.row_count < 3:
            warnings.append("Dataset has very few rows (< 3), analysis may be limited")
        elif table.row_count < 10:
            warnings.append("Dataset has fewer than 10 rows, analysis may be limited")

        if table.misaligned_rows:
            warnings.append(f"{table.misaligned_rows} rows have inconsistent structure")

    def _check_quality(self, table: ParsedTable, errors: list[str], warnings: list[str]) -> float:
        total_cells = table.row_count * table.column_count
        if total_cells == 0:
            return 0.0

        filled = sum(
            1
            for row in table.rows
            for name in table.column_names
            if not is_empty(row.get(name))
        )
        completeness = round(filled / total_cells * 100, 1)

        if completeness < LOW_COMPLETENESS:
            warnings.append(
                f"High proportion of missing values: data completeness is {completeness:.1f}%"
            )

        empty_columns = [
            name for name in table.column_names
            if all(is_empty(row.get(name)) for row in table.rows)
        ]
        if empty_columns:
            warnings.append(
                f"{len(empty_columns)} columns are completely empty: {', '.join(empty_columns)}"
            )

        return completeness

    def _check_columns(self, table: ParsedTable, errors: list[str], warnings: list[str]):
        names = table.column_names
        if not names:
            return

        duplicates = [name for name, count in Counter(names).items() if count > 1]
        if duplicates:
            errors.append(f"Duplicate column names found: {', '.join(duplicates)}")

        generic = [name for name in names if GENERIC_NAME_PATTERN.match(name.strip())]
        if generic:
            warnings.append(f"Found columns with generic names: {', '.join(generic)}")

        if not any(ROLE_PATTERNS["timestamp"].search(name) for name in names):
            warnings.append("No timestamp column detected, time-based analysis will be limited")

        has_id = any(ID_NAME_PATTERN.search(name) for name in names)
        if not has_id and table.row_count > LARGE_DATASET_ROWS:
            warnings.append("No ID column detected in large dataset, consider adding unique identifiers")

    def _check_rows(self, table: ParsedTable, errors: list[str], warnings: list[str]):
        if table.row_count == 0:
            return

        empty_rows = sum(
            1 for row in table.rows if all(is_empty(value) for value in row.values())
        )
        if empty_rows == table.row_count:
            errors.append("All rows are empty")
        elif empty_rows:
            warnings.append(f"{empty_rows} completely empty rows found")

        sample = table.rows[:self.duplicate_sample_size]
        signatures = [json.dumps(row, sort_keys=True, default=str) for row in sample]
        duplicate_count = len(signatures) - len(set(signatures))
        if duplicate_count:
            warnings.append(
                f"Found {duplicate_count} duplicate rows in sample of {len(sample)} rows"
            )

    def _check_provenance(self, table: ParsedTable, warnings: list[str]):
        if table.dropped_columns:
            warnings.append(
                "Record keys with no matching column were dropped: "
                + ", ".join(table.dropped_columns)
            )
        if table.is_placeholder:
            warnings.append("Source was empty; placeholder data was generated")
        if table.is_synthetic:
            warnings.append("Data is synthetic demo data from a connector")


def _confidence(errors: list[str], completeness: float) -> Confidence:
    if errors:
        return Confidence.LOW
    if completeness >= HIGH_COMPLETENESS:
        return Confidence.HIGH
    if completeness >= LOW_COMPLETENESS:
        return Confidence.MEDIUM
    return Confidence.LOW
