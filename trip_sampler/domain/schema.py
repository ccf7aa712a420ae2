"""
Column schema declarations for the Trip Sampler.

A `TableSchema` is an ordered list of `ColumnSpec` entries that must line up
one-to-one with the physical columns of a source file. Each column carries a
`ColumnType` tag from a closed set, and every tag maps to one explicit decode
function. Columns tagged `SKIP` are read to keep positions aligned but are
dropped from decoded records and from written samples.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, PrivateAttr, model_validator

from trip_sampler.domain.errors import FieldDecodeError, SchemaMismatch

Value = Optional[Any]
Record = Tuple[Value, ...]


class ColumnType(str, Enum):
    SKIP = "skip"
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    CATEGORY = "category"


class ColumnSpec(BaseModel):
    """
    Declaration of one physical column.
    """

    name: str = Field(..., min_length=1, description="Column name used in output headers.")
    type: ColumnType = Field(..., description="Semantic type tag.")
    levels: Tuple[int, ...] = Field((), description="Allowed values for category columns.")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_levels(self) -> "ColumnSpec":
        if self.type is ColumnType.CATEGORY and not self.levels:
            raise ValueError(f"category column '{self.name}' needs at least one level")
        if self.type is not ColumnType.CATEGORY and self.levels:
            raise ValueError(f"levels are only valid on category columns ('{self.name}')")
        return self

    @property
    def retained(self) -> bool:
        return self.type is not ColumnType.SKIP

    def decode(self, raw: str) -> Value:
        """
        Decode one raw field. An empty field is a missing value for every type.

        Numeric and category fields ignore surrounding whitespace; text is kept
        exactly as read.
        """
        if self.type is not ColumnType.TEXT:
            raw = raw.strip()
        if raw == "":
            return None
        return _DECODERS[self.type](raw, self)


def _decode_text(text: str, spec: ColumnSpec) -> str:
    # undecodable source bytes arrive as lone surrogates
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise FieldDecodeError(f"{spec.name}: not valid UTF-8") from None
    return text


def _decode_integer(text: str, spec: ColumnSpec) -> int:
    try:
        return int(text)
    except ValueError:
        raise FieldDecodeError(f"{spec.name}: {text!r} is not an integer") from None


def _decode_number(text: str, spec: ColumnSpec) -> float:
    try:
        value = float(text)
    except ValueError:
        raise FieldDecodeError(f"{spec.name}: {text!r} is not a number") from None
    if not math.isfinite(value):
        raise FieldDecodeError(f"{spec.name}: {text!r} is not a finite number")
    return value


def _decode_category(text: str, spec: ColumnSpec) -> int:
    value = _decode_integer(text, spec)
    if value not in spec.levels:
        raise FieldDecodeError(f"{spec.name}: {value} is not one of {list(spec.levels)}")
    return value


_DECODERS: Dict[ColumnType, Callable[[str, ColumnSpec], Any]] = {
    ColumnType.TEXT: _decode_text,
    ColumnType.INTEGER: _decode_integer,
    ColumnType.NUMBER: _decode_number,
    ColumnType.CATEGORY: _decode_category,
}


def format_value(value: Value) -> str:
    """Render a decoded value for CSV output; missing values become an empty field."""
    if value is None:
        return ""
    if isinstance(value, float):
        return repr(value)
    return str(value)


class TableSchema(BaseModel):
    """
    Ordered column layout of a source file.

    The schema is frozen and safe to share read-only with every worker.
    """

    columns: Tuple[ColumnSpec, ...]

    model_config = {"frozen": True}

    _plan: Tuple[Tuple[int, ColumnSpec], ...] = PrivateAttr(default=())

    @model_validator(mode="after")
    def _check_columns(self) -> "TableSchema":
        names = [c.name for c in self.columns]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate column names: {duplicates}")
        if not any(c.retained for c in self.columns):
            raise ValueError("schema must retain at least one non-skip column")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._plan = tuple((i, c) for i, c in enumerate(self.columns) if c.retained)

    @classmethod
    def from_pairs(
        cls, pairs: Sequence[Tuple[str, ColumnType | str]], **levels: Sequence[int]
    ) -> "TableSchema":
        """Build a schema from `(name, type)` pairs; category levels are passed by column name."""
        columns: List[ColumnSpec] = []
        for name, type_ in pairs:
            columns.append(
                ColumnSpec(name=name, type=ColumnType(type_), levels=tuple(levels.get(name, ())))
            )
        return cls(columns=tuple(columns))

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def retained_names(self) -> List[str]:
        return [c.name for _, c in self._plan]

    def decode_row(self, row: Sequence[str]) -> Record:
        """
        Decode one physical row into a record of retained values.

        Raises
        ------
        SchemaMismatch
            If the row's column count differs from the schema width.
        FieldDecodeError
            If a retained field cannot be decoded to its declared type.
        """
        if len(row) != len(self.columns):
            raise SchemaMismatch(f"expected {len(self.columns)} columns, got {len(row)}")
        return tuple(spec.decode(row[i]) for i, spec in self._plan)


TAXI_SCHEMA = TableSchema.from_pairs(
    [
        ("vendor_id", ColumnType.SKIP),
        ("pickup_datetime", ColumnType.TEXT),
        ("dropoff_datetime", ColumnType.TEXT),
        ("passenger_count", ColumnType.INTEGER),
        ("trip_distance", ColumnType.NUMBER),
        ("pickup_longitude", ColumnType.NUMBER),
        ("pickup_latitude", ColumnType.NUMBER),
        ("rate_code_id", ColumnType.CATEGORY),
        ("store_and_fwd_flag", ColumnType.SKIP),
        ("dropoff_longitude", ColumnType.NUMBER),
        ("dropoff_latitude", ColumnType.NUMBER),
        ("payment_type", ColumnType.CATEGORY),
        ("fare_amount", ColumnType.NUMBER),
        ("extra", ColumnType.NUMBER),
        ("mta_tax", ColumnType.NUMBER),
        ("tip_amount", ColumnType.NUMBER),
        ("tolls_amount", ColumnType.NUMBER),
        ("improvement_surcharge", ColumnType.NUMBER),
        ("total_amount", ColumnType.NUMBER),
    ],
    rate_code_id=range(1, 7),
    payment_type=range(1, 5),
)


__all__ = [
    "ColumnType",
    "ColumnSpec",
    "TableSchema",
    "Record",
    "TAXI_SCHEMA",
    "format_value",
]
