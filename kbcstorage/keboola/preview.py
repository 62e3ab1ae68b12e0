"""Options, query parameters and CSV parsing for table data previews."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Union


class ColumnOrder(str, Enum):
    """Sort direction of a column."""

    ASC = "ASC"
    DESC = "DESC"

    def __str__(self) -> str:
        return self.value


class CompareOp(str, Enum):
    """Comparison operator of a where filter."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"

    def __str__(self) -> str:
        return self.value


class DataType(str, Enum):
    """Exact numeric type of a filtered or sorted column."""

    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"
    BIGINT = "BIGINT"
    REAL = "REAL"
    DECIMAL = "DECIMAL"

    def __str__(self) -> str:
        return self.value


_COMPARE_SYMBOLS = {
    "=": CompareOp.EQ,
    "!=": CompareOp.NE,
    "<": CompareOp.LT,
    "<=": CompareOp.LE,
    ">": CompareOp.GT,
    ">=": CompareOp.GE,
}


def parse_column_order(s: str) -> ColumnOrder:
    """Parse "ASC" or "DESC", case-insensitively."""
    try:
        return ColumnOrder(s.upper())
    except ValueError:
        raise ValueError(f'invalid column order "{s}"') from None


def parse_compare_op(s: str) -> CompareOp:
    """Parse an operator given by its identifier (eq, ne, ...) or symbol (=, !=, ...)."""
    s = s.lower()
    if s in _COMPARE_SYMBOLS:
        return _COMPARE_SYMBOLS[s]
    try:
        return CompareOp(s)
    except ValueError:
        raise ValueError(f'invalid comparison operator "{s}"') from None


def parse_data_type(s: str) -> DataType:
    """Parse a numeric data type name, case-insensitively."""
    try:
        return DataType(s.upper())
    except ValueError:
        raise ValueError(f'invalid data type "{s}"') from None


def _format_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


@dataclass
class WhereFilter:
    """A condition on the values of one column."""

    column: str
    operator: CompareOp
    values: list[str] = field(default_factory=list)
    data_type: Optional[DataType] = None

    def _apply(self, config: "PreviewConfig") -> None:
        config.where_filters.append(self)


@dataclass
class OrderBy:
    """Sorting by one column."""

    column: str
    order: ColumnOrder
    data_type: Optional[DataType] = None

    def _apply(self, config: "PreviewConfig") -> None:
        config.order_by.append(self)


@dataclass
class TablePreview:
    """Header and rows of previewed table data."""

    columns: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)


@dataclass
class PreviewConfig:
    """Collected preview options."""

    limit: int = 0
    changed_since: Optional[str] = None
    changed_until: Optional[str] = None
    columns: list[str] = field(default_factory=list)
    where_filters: list[WhereFilter] = field(default_factory=list)
    order_by: list[OrderBy] = field(default_factory=list)

    def to_query_params(self) -> dict[str, str]:
        """Encode the options as flat query parameters."""
        out: dict[str, str] = {}
        for i, where in enumerate(self.where_filters):
            out[f"whereFilters[{i}][column]"] = where.column
            out[f"whereFilters[{i}][operator]"] = where.operator.value
            for j, value in enumerate(where.values):
                out[f"whereFilters[{i}][values][{j}]"] = value
            if where.data_type is not None:
                out[f"whereFilters[{i}][dataType]"] = where.data_type.value
        for i, order in enumerate(self.order_by):
            out[f"orderBy[{i}][column]"] = order.column
            out[f"orderBy[{i}][order]"] = order.order.value
            if order.data_type is not None:
                out[f"orderBy[{i}][dataType]"] = order.data_type.value
        out["limit"] = str(self.limit)
        if self.changed_since is not None:
            out["changedSince"] = self.changed_since
        if self.changed_until is not None:
            out["changedUntil"] = self.changed_until
        if self.columns:
            out["columns"] = ",".join(self.columns)
        return out


@dataclass(frozen=True)
class _LimitRows:
    value: int

    def _apply(self, config: PreviewConfig) -> None:
        config.limit = self.value


@dataclass(frozen=True)
class _ChangedSince:
    value: str

    def _apply(self, config: PreviewConfig) -> None:
        config.changed_since = self.value


@dataclass(frozen=True)
class _ChangedUntil:
    value: str

    def _apply(self, config: PreviewConfig) -> None:
        config.changed_until = self.value


@dataclass(frozen=True)
class _ExportColumns:
    columns: tuple[str, ...]

    def _apply(self, config: PreviewConfig) -> None:
        config.columns = list(self.columns)


def _optional_data_type(data_type: Union[DataType, str, None]) -> Optional[DataType]:
    return None if data_type is None else DataType(data_type)


def with_where(
    column: str,
    op: Union[CompareOp, str],
    values: Iterable[Any],
    data_type: Union[DataType, str, None] = None,
) -> WhereFilter:
    """Filter rows by a column; values of any type are sent as strings."""
    return WhereFilter(
        column=column,
        operator=CompareOp(op),
        values=[_format_value(v) for v in values],
        data_type=_optional_data_type(data_type),
    )


def with_order_by(
    column: str,
    order: Union[ColumnOrder, str],
    data_type: Union[DataType, str, None] = None,
) -> OrderBy:
    """Sort rows by a column."""
    return OrderBy(column=column, order=ColumnOrder(order), data_type=_optional_data_type(data_type))


def with_limit_rows(value: int) -> _LimitRows:
    """Limit the number of returned rows (the server allows at most 1000)."""
    if value < 0:
        raise ValueError("limit must not be negative")
    return _LimitRows(value)


def with_changed_since(value: str) -> _ChangedSince:
    """Only rows imported since the given time (unix timestamp or relative date)."""
    return _ChangedSince(value)


def with_changed_until(value: str) -> _ChangedUntil:
    """Only rows imported until the given time (unix timestamp or relative date)."""
    return _ChangedUntil(value)


def with_export_columns(*columns: str) -> _ExportColumns:
    """Export only the given columns; all columns by default."""
    return _ExportColumns(tuple(columns))


def preview_config(*options: Any) -> PreviewConfig:
    """Build a preview configuration from options."""
    config = PreviewConfig()
    for option in options:
        apply = getattr(option, "_apply", None)
        if apply is None:
            raise TypeError(f"{type(option).__name__} is not a preview option")
        apply(config)
    return config


def parse_preview_csv(data: Union[bytes, str]) -> TablePreview:
    """Parse a CSV preview response: the first record is the header."""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    records = [row for row in csv.reader(io.StringIO(text, newline="")) if row]
    if not records:
        raise ValueError("failed to read body csv: no header record")
    width = len(records[0])
    for line, row in enumerate(records, start=1):
        if len(row) != width:
            raise ValueError(f"failed to read body csv: record {line}: wrong number of fields")
    return TablePreview(columns=records[0], rows=records[1:])