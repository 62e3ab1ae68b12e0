"""Options for creating a table from a file and loading data into a table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..request.structmap import struct_to_map, wire_field


@dataclass
class CreateTableConfig:
    """Parameters of creating a table from a file resource."""

    delimiter: str = field(default="", metadata=wire_field("delimiter", write_optional=True))
    enclosure: str = field(default="", metadata=wire_field("enclosure", write_optional=True))
    escaped_by: str = field(default="", metadata=wire_field("escapedBy", write_optional=True))
    primary_key: str = field(default="", metadata=wire_field("primaryKey", write_optional=True))

    def to_params(self) -> dict[str, Any]:
        """Request parameters; empty values are left out."""
        return struct_to_map(self)


@dataclass
class LoadDataConfig:
    """Parameters of loading data into a table from a file resource."""

    delimiter: str = field(default="", metadata=wire_field("delimiter", write_optional=True))
    enclosure: str = field(default="", metadata=wire_field("enclosure", write_optional=True))
    escaped_by: str = field(default="", metadata=wire_field("escapedBy", write_optional=True))
    incremental_load: int = field(default=0, metadata=wire_field("incremental", write_optional=True))
    without_headers: int = field(default=0, metadata=wire_field("withoutHeaders", write_optional=True))
    columns: list[str] = field(default_factory=list, metadata=wire_field("columns", write_optional=True))

    def to_params(self) -> dict[str, Any]:
        """Request parameters; empty values are left out."""
        return struct_to_map(self)


@dataclass(frozen=True)
class _Delimiter:
    value: str

    def _apply_create(self, config: CreateTableConfig) -> None:
        config.delimiter = self.value

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.delimiter = self.value


@dataclass(frozen=True)
class _Enclosure:
    value: str

    def _apply_create(self, config: CreateTableConfig) -> None:
        config.enclosure = self.value

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.enclosure = self.value


@dataclass(frozen=True)
class _EscapedBy:
    value: str

    def _apply_create(self, config: CreateTableConfig) -> None:
        config.escaped_by = self.value

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.escaped_by = self.value


@dataclass(frozen=True)
class _PrimaryKey:
    value: str

    def _apply_create(self, config: CreateTableConfig) -> None:
        config.primary_key = self.value


@dataclass(frozen=True)
class _IncrementalLoad:
    value: bool

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.incremental_load = 1 if self.value else 0


@dataclass(frozen=True)
class _ColumnsHeaders:
    columns: tuple[str, ...]

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.columns = list(self.columns)


@dataclass(frozen=True)
class _WithoutHeader:
    value: bool

    def _apply_load(self, config: LoadDataConfig) -> None:
        config.without_headers = 1 if self.value else 0


def with_delimiter(d: str) -> _Delimiter:
    """Field delimiter of the CSV file; the server default is ','."""
    return _Delimiter(d)


def with_enclosure(e: str) -> _Enclosure:
    """Field enclosure of the CSV file; the server default is '"'."""
    return _Enclosure(e)


def with_escaped_by(e: str) -> _EscapedBy:
    """Escape character of the CSV file; cannot be combined with an enclosure."""
    return _EscapedBy(e)


def with_primary_key(pk: Iterable[str]) -> _PrimaryKey:
    """Primary key columns of the created table."""
    return _PrimaryKey(",".join(pk))


def with_incremental_load(i: bool) -> _IncrementalLoad:
    """Whether the table is kept (True) or truncated before the import."""
    return _IncrementalLoad(bool(i))


def with_columns_headers(c: Iterable[str]) -> _ColumnsHeaders:
    """Columns present in the file; its first line is then not a header."""
    return _ColumnsHeaders(tuple(c))


def without_header(h: bool) -> _WithoutHeader:
    """Whether the file lacks a header; columns are then matched by order."""
    return _WithoutHeader(bool(h))


def create_table_config(*options: Any) -> CreateTableConfig:
    """Build table creation parameters; options that do not apply raise TypeError."""
    config = CreateTableConfig()
    for option in options:
        apply = getattr(option, "_apply_create", None)
        if apply is None:
            raise TypeError(f"{type(option).__name__} does not apply to table creation")
        apply(config)
    return config


def load_data_config(*options: Any) -> LoadDataConfig:
    """Build data load parameters; options that do not apply raise TypeError."""
    config = LoadDataConfig()
    for option in options:
        apply = getattr(option, "_apply_load", None)
        if apply is None:
            raise TypeError(f"{type(option).__name__} does not apply to loading data")
        apply(config)
    return config