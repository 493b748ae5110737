import pytest

from stages.s0_reception import Receiver
from stages.s2_validation import DataValidator
from core.models import RawSource, ParsedTable, ColumnInfo
from core.enums import Confidence


def _table(text: str, name: str = "data.csv") -> ParsedTable:
    return Receiver().parse(RawSource(name=name, content=text.encode("utf-8")))


def _events(rows: int) -> str:
    lines = ["user_id,timestamp,amount"]
    lines += [f"u{i},2024-01-{(i % 28) + 1:02d},{i}" for i in range(rows)]
    return "\n".join(lines)


def test_clean_table_is_valid_with_high_confidence():
    verdict = DataValidator().validate(_table(_events(20)))

    assert verdict.is_valid
    assert verdict.confidence == Confidence.HIGH
    assert verdict.errors == []
    assert verdict.completeness == 100.0


def test_zero_rows_is_an_error():
    verdict = DataValidator().validate(_table("a,b\n"))

    assert not verdict.is_valid
    assert "No rows found in dataset" in verdict.errors
    assert verdict.confidence == Confidence.LOW


def test_zero_columns_is_an_error():
    verdict = DataValidator().validate(ParsedTable())

    assert not verdict.is_valid
    assert "No columns found in dataset" in verdict.errors


def test_low_completeness_warns_without_invalidating():
    text = "user_id,timestamp,a,b\nu1,,,\nu2,,,\nu3,2024-01-01,,\n"
    verdict = DataValidator().validate(_table(text))

    assert verdict.is_valid
    assert verdict.completeness == pytest.approx(33.3)
    assert verdict.confidence == Confidence.LOW
    assert any(w.startswith("High proportion of missing values") for w in verdict.warnings)


def test_medium_confidence_band():
    lines = ["user_id,timestamp"] + [f"u{i},{'2024-01-01' if i % 2 else ''}" for i in range(10)]
    verdict = DataValidator().validate(_table("\n".join(lines)))

    assert verdict.completeness == 75.0
    assert verdict.confidence == Confidence.MEDIUM


def test_inconsistent_rows_are_a_warning():
    table = ParsedTable(
        columns=[ColumnInfo(name="a"), ColumnInfo(name="b")],
        rows=[{"a": 1, "b": 2}, {"a": 3}, {"a": 4, "b": 5}],
    )
    verdict = DataValidator().validate(table)

    assert verdict.is_valid
    assert "1 rows have inconsistent structure" in verdict.warnings


def test_few_rows_warning():
    verdict = DataValidator().validate(_table("user_id,timestamp\nu1,2024-01-01"))

    assert any("very few rows" in w for w in verdict.warnings)


def test_empty_columns_and_generic_names():
    verdict = DataValidator().validate(_table("column1,unused,timestamp\n1,,2024-01-01\n2,,2024-01-02"))

    assert "1 columns are completely empty: unused" in verdict.warnings
    assert "Found columns with generic names: column1" in verdict.warnings


def test_missing_timestamp_and_id_in_large_dataset():
    lines = ["label,score"] + [f"x{i},{i}" for i in range(150)]
    verdict = DataValidator().validate(_table("\n".join(lines)))

    assert any("No timestamp column" in w for w in verdict.warnings)
    assert any("No ID column" in w for w in verdict.warnings)


def test_all_rows_empty_is_an_error():
    table = ParsedTable(
        columns=[ColumnInfo(name="a"), ColumnInfo(name="b")],
        rows=[{"a": None, "b": ""}, {"a": "null", "b": None}],
    )
    verdict = DataValidator().validate(table)

    assert not verdict.is_valid
    assert "All rows are empty" in verdict.errors


def test_duplicate_rows_in_sample():
    text = "user_id,timestamp\nu1,2024-01-01\nu1,2024-01-01\nu2,2024-01-02"
    verdict = DataValidator().validate(_table(text))

    assert "Found 1 duplicate rows in sample of 3 rows" in verdict.warnings


def test_duplicate_column_names_are_an_error():
    table = ParsedTable(
        columns=[ColumnInfo(name="a"), ColumnInfo(name="a")],
        rows=[{"a": 1}],
    )
    verdict = DataValidator().validate(table)

    assert not verdict.is_valid
    assert "Duplicate column names found: a" in verdict.errors


def test_dropped_json_keys_are_flagged():
    text = '[{"id": 1}, {"id": 2, "extra": true}]'
    verdict = DataValidator().validate(_table(text, "records.json"))

    assert verdict.is_valid
    assert any("extra" in w and "dropped" in w for w in verdict.warnings)


def test_placeholder_tables_are_flagged():
    verdict = DataValidator().validate(_table("", "sales.csv"))

    assert verdict.is_valid
    assert "Source was empty; placeholder data was generated" in verdict.warnings


def test_validation_is_idempotent():
    validator = DataValidator()
    table = _table("user_id,timestamp,a\nu1,,3\nu2,2024-01-01,")

    assert validator.validate(table) == validator.validate(table)


@pytest.mark.asyncio
async def test_execute_matches_validate():
    validator = DataValidator()
    table = _table(_events(5))

    assert (await validator.execute(table)) == validator.validate(table)
