"""Table definitions, column types, CSV headers and metadata request bodies."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence, TypeVar, Union

E = TypeVar("E", bound=Enum)


class TimePartitioningType(str, Enum):
    """Granularity of time partitioning."""

    DAY = "DAY"
    HOUR = "HOUR"
    MONTH = "MONTH"
    YEAR = "YEAR"

    def __str__(self) -> str:
        return self.value


class BaseType(str, Enum):
    """Backend independent type of a column."""

    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    FLOAT = "FLOAT"
    NUMERIC = "NUMERIC"
    STRING = "STRING"
    TIMESTAMP = "TIMESTAMP"

    def __str__(self) -> str:
        return self.value


def _enum_or_str(enum_type: type[E], value: Any) -> Union[E, str]:
    try:
        return enum_type(value)
    except ValueError:
        return str(value)


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


@dataclass
class TimePartitioning:
    """Time partitioning of a table."""

    type: Union[TimePartitioningType, str]
    expiration_ms: str = ""
    field: str = ""

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": _enum_value(self.type)}
        if self.expiration_ms:
            out["expirationMs"] = self.expiration_ms
        if self.field:
            out["field"] = self.field
        return out

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "TimePartitioning":
        return cls(
            type=_enum_or_str(TimePartitioningType, data.get("type") or ""),
            expiration_ms=data.get("expirationMs") or "",
            field=data.get("field") or "",
        )


@dataclass
class Range:
    """Bounds and step of range partitioning."""

    start: str = ""
    end: str = ""
    interval: str = ""

    def _to_json(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "interval": self.interval}

    @classmethod
    def _from_json(cls, data: Optional[Mapping[str, Any]]) -> "Range":
        data = data or {}
        return cls(
            start=data.get("start") or "",
            end=data.get("end") or "",
            interval=data.get("interval") or "",
        )


@dataclass
class RangePartitioning:
    """Range partitioning of a table."""

    field: str
    range: Range = field(default_factory=Range)

    def _to_json(self) -> dict[str, Any]:
        return {"field": self.field, "range": self.range._to_json()}

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "RangePartitioning":
        return cls(field=data.get("field") or "", range=Range._from_json(data.get("range")))


@dataclass
class Clustering:
    """Clustering fields of a table."""

    fields: list[str] = field(default_factory=list)

    def _to_json(self) -> dict[str, Any]:
        return {"fields": list(self.fields)}

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "Clustering":
        return cls(fields=list(data.get("fields") or []))


@dataclass
class ColumnDefinition:
    """Backend specific type of a column."""

    type: str
    length: str = ""
    nullable: bool = False
    default: str = ""

    def _to_json(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "length": self.length,
            "nullable": self.nullable,
            "default": self.default,
        }

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "ColumnDefinition":
        return cls(
            type=data.get("type") or "",
            length=data.get("length") or "",
            nullable=bool(data.get("nullable", False)),
            default=data.get("default") or "",
        )


@dataclass
class Column:
    """A table column with optional type information."""

    name: str
    definition: Optional[ColumnDefinition] = None
    base_type: Optional[Union[BaseType, str]] = None

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.definition is not None:
            out["definition"] = self.definition._to_json()
        if self.base_type is not None:
            out["basetype"] = _enum_value(self.base_type)
        return out

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "Column":
        definition = data.get("definition")
        base_type = data.get("basetype")
        return cls(
            name=data.get("name") or "",
            definition=None if definition is None else ColumnDefinition._from_json(definition),
            base_type=None if base_type is None else _enum_or_str(BaseType, base_type),
        )


class Columns(list):
    """A list of columns."""

    def names(self) -> list[str]:
        """Names of the columns, in order."""
        return [column.name for column in self]


@dataclass
class TableDefinition:
    """Typed definition of a table."""

    primary_key_names: list[str] = field(default_factory=list)
    columns: Columns = field(default_factory=Columns)
    time_partitioning: Optional[TimePartitioning] = None
    range_partitioning: Optional[RangePartitioning] = None
    clustering: Optional[Clustering] = None

    def __post_init__(self) -> None:
        if not isinstance(self.columns, Columns):
            self.columns = Columns(self.columns)

    def to_json(self) -> dict[str, Any]:
        """JSON representation; absent partitioning and clustering are left out."""
        out: dict[str, Any] = {
            "primaryKeysNames": list(self.primary_key_names),
            "columns": [column._to_json() for column in self.columns],
        }
        if self.time_partitioning is not None:
            out["timePartitioning"] = self.time_partitioning._to_json()
        if self.range_partitioning is not None:
            out["rangePartitioning"] = self.range_partitioning._to_json()
        if self.clustering is not None:
            out["clustering"] = self.clustering._to_json()
        return out

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> "TableDefinition":
        """Decode a definition from a JSON document or an already parsed mapping."""
        if isinstance(data, (str, bytes, bytearray)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise ValueError("table definition must be a JSON object")
        time_part = data.get("timePartitioning")
        range_part = data.get("rangePartitioning")
        clustering = data.get("clustering")
        return cls(
            primary_key_names=list(data.get("primaryKeysNames") or []),
            columns=Columns(Column._from_json(c) for c in data.get("columns") or []),
            time_partitioning=None if time_part is None else TimePartitioning._from_json(time_part),
            range_partitioning=None if range_part is None else RangePartitioning._from_json(range_part),
            clustering=None if clustering is None else Clustering._from_json(clustering),
        )


@dataclass
class TableMetadataRequest:
    """A table metadata entry to set."""

    key: str
    value: str

    def _to_json(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value}


@dataclass
class ColumnMetadataRequest:
    """A column metadata entry to set."""

    column_name: str
    key: str
    value: str

    def _to_json(self) -> dict[str, Any]:
        return {"columnName": self.column_name, "key": self.key, "value": self.value}


def _needs_quotes(value: str) -> bool:
    if value == "":
        return False
    if value == "\\.":
        return True
    if any(c in value for c in ',"\r\n'):
        return True
    return value[0].isspace()


def columns_to_csv_header(columns: Iterable[str]) -> bytes:
    """Encode column names as one CSV header line terminated by a newline."""
    fields = []
    for column in columns:
        if _needs_quotes(column):
            fields.append('"' + column.replace('"', '""') + '"')
        else:
            fields.append(column)
    return (",".join(fields) + "\n").encode("utf-8")


def create_table_definition_body(name: str, definition: TableDefinition) -> dict[str, Any]:
    """Request body creating a table with the given name and definition."""
    body = definition.to_json()
    body["name"] = name
    return body


def table_metadata_body(
    provider: str,
    table_metadata: Sequence[TableMetadataRequest],
    columns_metadata: Sequence[ColumnMetadataRequest],
) -> dict[str, Any]:
    """Request body setting table and column metadata; empty lists are left out."""
    body: dict[str, Any] = {"provider": provider}
    if table_metadata:
        body["metadata"] = [entry._to_json() for entry in table_metadata]
    if columns_metadata:
        body["columnsMetadata"] = {"all": [entry._to_json() for entry in columns_metadata]}
    return body


def decode_columns_metadata(data: Any) -> dict[str, list[dict[str, Any]]]:
    """Decode columns metadata; the API sends an empty value as an empty array."""
    if isinstance(data, (str, bytes, bytearray)):
        data = json.loads(data)
    if data is None:
        return {}
    if isinstance(data, list):
        if not data:
            return {}
        raise ValueError("columns metadata must be a JSON object")
    if not isinstance(data, Mapping):
        raise ValueError("columns metadata must be a JSON object")
    out: dict[str, list[dict[str, Any]]] = {}
    for column, entries in data.items():
        if entries is None:
            out[column] = []
            continue
        if not isinstance(entries, list) or not all(isinstance(e, Mapping) for e in entries):
            raise ValueError(f'metadata of column "{column}" must be a list of objects')
        out[column] = [dict(e) for e in entries]
    return out