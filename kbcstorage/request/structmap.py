"""Conversion of request definitions to JSON and form bodies."""

from __future__ import annotations

import dataclasses
import enum
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Iterable, Optional

_WIRE_KEY = "kbcstorage.wire"


@dataclasses.dataclass(frozen=True)
class _WireSpec:
    name: Optional[str]
    readonly: bool
    write_optional: bool
    write_as: Optional[str]


def wire_field(
    name: Optional[str] = None,
    readonly: bool = False,
    write_optional: bool = False,
    write_as: Optional[str] = None,
) -> dict:
    """Return dataclass field metadata describing how a field goes on the wire.

    name is the JSON name ("-" excludes the field), write_as overrides it
    when writing, readonly fields are never written and write_optional
    fields are written only when they are not empty.
    """
    return {_WIRE_KEY: _WireSpec(name, readonly, write_optional, write_as)}


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str, bytes, bytearray)):
        return not value
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return len(value) == 0
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return all(_is_zero(getattr(value, f.name)) for f in dataclasses.fields(value))
    return False


def struct_to_map(obj: Any, allowed_fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
    """Convert a dataclass instance to a dict of writable wire fields.

    Only names in allowed_fields are kept; when it is None or empty,
    all writable fields are exported.
    """
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise TypeError(f"expected a dataclass instance, got {type(obj).__name__}")

    allowed = set(allowed_fields or ())
    out: dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        spec: Optional[_WireSpec] = f.metadata.get(_WIRE_KEY)
        value = getattr(obj, f.name)
        if spec is not None and spec.readonly:
            continue
        if spec is not None and spec.write_optional and _is_zero(value):
            continue
        wire_name = spec and (spec.write_as or spec.name)
        if not wire_name:
            raise ValueError(f'field "{f.name}" of {type(obj).__name__} has no json name')
        if wire_name == "-":
            continue
        if allowed and wire_name not in allowed:
            continue
        out[wire_name] = value
    return out


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def _to_string(value: Any) -> str:
    if isinstance(value, enum.Enum):
        value = value.value
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return str.__str__(value)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Mapping):
        return json.dumps(dict(value), separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, BaseException):
        return str(value)
    raise TypeError(f"cannot cast {type(value).__name__} to string")


def to_form_body(data: Mapping[str, Any]) -> dict[str, str]:
    """Flatten a JSON-like mapping to form fields, every value as a string.

    Lists become "key[i]" entries and string mappings "key[name]" entries.
    """
    out: dict[str, str] = {}
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                out[f"{key}[{index}]"] = _to_string(item)
        elif isinstance(value, Mapping) and all(isinstance(v, str) for v in value.values()):
            for name, item in value.items():
                out[f"{key}[{name}]"] = item
        else:
            out[key] = _to_string(value)
    return out