from __future__ import annotations

import pytest
from pydantic import ValidationError

from trip_sampler.domain.errors import FieldDecodeError, SchemaMismatch
from trip_sampler.domain.schema import (
    TAXI_SCHEMA,
    ColumnSpec,
    ColumnType,
    TableSchema,
    format_value,
)

TAXI_WIDTH = 19
TAXI_RETAINED = 17


def test_taxi_schema_layout():
    assert TAXI_SCHEMA.width == TAXI_WIDTH
    assert len(TAXI_SCHEMA.retained_names) == TAXI_RETAINED
    assert "vendor_id" not in TAXI_SCHEMA.retained_names
    assert "store_and_fwd_flag" not in TAXI_SCHEMA.retained_names
    assert TAXI_SCHEMA.retained_names[0] == "pickup_datetime"
    assert TAXI_SCHEMA.retained_names[-1] == "total_amount"


def test_taxi_schema_category_levels():
    by_name = {c.name: c for c in TAXI_SCHEMA.columns}
    assert by_name["rate_code_id"].levels == (1, 2, 3, 4, 5, 6)
    assert by_name["payment_type"].levels == (1, 2, 3, 4)


def test_decode_row_drops_skip_columns(tiny_schema: TableSchema):
    record = tiny_schema.decode_row(["99", "alice", "3", "1.25"])
    assert record == ("alice", 3, 1.25)


def test_decode_row_empty_fields_are_missing(tiny_schema: TableSchema):
    assert tiny_schema.decode_row(["", "", "", ""]) == (None, None, None)


def test_decode_row_wrong_width_is_schema_mismatch(tiny_schema: TableSchema):
    with pytest.raises(SchemaMismatch, match="expected 4 columns, got 3"):
        tiny_schema.decode_row(["1", "bob", "2"])


@pytest.mark.parametrize(
    ("spec", "raw"),
    [
        (ColumnSpec(name="n", type=ColumnType.INTEGER), "1.5"),
        (ColumnSpec(name="n", type=ColumnType.INTEGER), "abc"),
        (ColumnSpec(name="x", type=ColumnType.NUMBER), "twelve"),
        (ColumnSpec(name="x", type=ColumnType.NUMBER), "nan"),
        (ColumnSpec(name="c", type=ColumnType.CATEGORY, levels=(1, 2)), "3"),
        (ColumnSpec(name="c", type=ColumnType.CATEGORY, levels=(1, 2)), "x"),
    ],
)
def test_decode_rejects_bad_values(spec: ColumnSpec, raw: str):
    with pytest.raises(FieldDecodeError):
        spec.decode(raw)


def test_decode_category_within_levels():
    spec = ColumnSpec(name="payment_type", type=ColumnType.CATEGORY, levels=(1, 2, 3, 4))
    assert spec.decode(" 4 ") == 4


def test_schema_requires_retained_column():
    with pytest.raises(ValidationError, match="at least one non-skip"):
        TableSchema.from_pairs([("a", ColumnType.SKIP), ("b", "skip")])


def test_schema_rejects_duplicate_names():
    with pytest.raises(ValidationError, match="duplicate"):
        TableSchema.from_pairs([("a", ColumnType.TEXT), ("a", ColumnType.NUMBER)])


def test_category_requires_levels():
    with pytest.raises(ValidationError, match="needs at least one level"):
        ColumnSpec(name="c", type=ColumnType.CATEGORY)


def test_levels_only_on_category():
    with pytest.raises(ValidationError, match="only valid on category"):
        ColumnSpec(name="n", type=ColumnType.INTEGER, levels=(1,))


def test_schema_is_frozen_and_hashable(tiny_schema: TableSchema):
    with pytest.raises(ValidationError):
        tiny_schema.columns = ()
    assert hash(tiny_schema) == hash(tiny_schema)


def test_format_value_round_trips_floats():
    assert format_value(None) == ""
    assert format_value(3) == "3"
    assert float(format_value(0.1 + 0.2)) == 0.1 + 0.2
    assert format_value("2016-06-01 00:00:00") == "2016-06-01 00:00:00"


def test_decode_text_keeps_surrounding_whitespace():
    spec = ColumnSpec(name="t", type=ColumnType.TEXT)
    assert spec.decode(" padded ") == " padded "
    assert spec.decode("  ") == "  "
    assert spec.decode("") is None


def test_decode_numeric_ignores_surrounding_whitespace():
    assert ColumnSpec(name="n", type=ColumnType.INTEGER).decode(" 7 ") == 7
    assert ColumnSpec(name="x", type=ColumnType.NUMBER).decode("  ") is None


def test_decode_text_rejects_undecodable_bytes():
    raw = b"caf\xe9".decode("utf-8", errors="surrogateescape")
    with pytest.raises(FieldDecodeError, match="not valid UTF-8"):
        ColumnSpec(name="t", type=ColumnType.TEXT).decode(raw)
