"""Configuration of an asynchronous table export."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Union

from .preview import (
    ColumnOrder,
    CompareOp,
    DataType,
    OrderBy,
    WhereFilter,
    with_order_by,
    with_where,
)


class UnloadFormat(str, Enum):
    """Format of the exported file."""

    # RFC 4180 CSV, the default.
    CSV = "rfc"
    # Only supported in projects with the Snowflake backend.
    JSON = "json"

    def __str__(self) -> str:
        return self.value


def _order_by_json(order: OrderBy) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if order.column:
        out["column"] = order.column
    if order.order:
        out["order"] = order.order.value
    if order.data_type is not None:
        out["dataType"] = order.data_type.value
    return out


def _where_json(where: WhereFilter) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if where.column:
        out["column"] = where.column
    if where.operator:
        out["operator"] = where.operator.value
    if where.values:
        out["values"] = list(where.values)
    if where.data_type is not None:
        out["dataType"] = where.data_type.value
    return out


@dataclass
class TableUnloadConfig:
    """Parameters of a table export; the with_ methods modify and return it."""

    limit: int = 0
    format: str = ""
    changed_since: str = ""
    changed_until: str = ""
    columns: str = ""
    order_by: list[OrderBy] = field(default_factory=list)
    where_filters: list[WhereFilter] = field(default_factory=list)

    def with_limit_rows(self, v: int) -> "TableUnloadConfig":
        """Limit the number of exported rows."""
        if v < 0:
            raise ValueError("limit must not be negative")
        self.limit = v
        return self

    def with_format(self, v: Union[UnloadFormat, str]) -> "TableUnloadConfig":
        """Set the output file format."""
        self.format = v.value if isinstance(v, UnloadFormat) else v
        return self

    def with_changed_since(self, v: str) -> "TableUnloadConfig":
        """Only rows imported since the given time."""
        self.changed_since = v
        return self

    def with_changed_until(self, v: str) -> "TableUnloadConfig":
        """Only rows imported until the given time."""
        self.changed_until = v
        return self

    def with_columns(self, *columns: str) -> "TableUnloadConfig":
        """Export only the given columns; all columns by default."""
        self.columns = ",".join(columns)
        return self

    def with_order_by(
        self,
        column: str,
        order: Union[ColumnOrder, str],
        data_type: Union[DataType, str, None] = None,
    ) -> "TableUnloadConfig":
        """Add sorting by a column."""
        self.order_by.append(with_order_by(column, order, data_type))
        return self

    def with_where(
        self,
        column: str,
        op: Union[CompareOp, str],
        values: Iterable[str],
        data_type: Optional[Union[DataType, str]] = None,
    ) -> "TableUnloadConfig":
        """Add a condition on a column."""
        self.where_filters.append(with_where(column, op, values, data_type))
        return self

    def to_body(self) -> dict[str, Any]:
        """JSON request body; empty values are left out."""
        body: dict[str, Any] = {}
        if self.limit:
            body["limit"] = self.limit
        if self.format:
            body["format"] = self.format
        if self.changed_since:
            body["changedSince"] = self.changed_since
        if self.changed_until:
            body["changedUntil"] = self.changed_until
        if self.columns:
            body["columns"] = self.columns
        if self.order_by:
            body["orderBy"] = [_order_by_json(o) for o in self.order_by]
        if self.where_filters:
            body["whereFilters"] = [_where_json(w) for w in self.where_filters]
        return body