"""Workspaces: their JSON form, job parameters, errors and time encoding."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional, Union

WORKSPACES_COMPONENT = "keboola.sandboxes"

# Time format used by the Workspaces API; the trailing "Z" is a literal.
TIME_FORMAT = "2006-01-02T15:04:05Z"
_STRPTIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

WORKSPACE_SIZE_SMALL = "small"
WORKSPACE_SIZE_MEDIUM = "medium"
WORKSPACE_SIZE_LARGE = "large"

WORKSPACE_TYPE_SNOWFLAKE = "snowflake"
WORKSPACE_TYPE_PYTHON = "python"
WORKSPACE_TYPE_R = "r"

_DURATION_NUMBER = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)$")


def workspace_sizes_ordered() -> list[str]:
    """Workspace sizes from the smallest."""
    return [WORKSPACE_SIZE_SMALL, WORKSPACE_SIZE_MEDIUM, WORKSPACE_SIZE_LARGE]


def workspace_sizes_map() -> dict[str, bool]:
    """Workspace sizes as a lookup table."""
    return {size: True for size in workspace_sizes_ordered()}


def workspace_types_ordered() -> list[str]:
    """Supported workspace types."""
    return [WORKSPACE_TYPE_SNOWFLAKE, WORKSPACE_TYPE_PYTHON, WORKSPACE_TYPE_R]


def workspace_types_map() -> dict[str, bool]:
    """Supported workspace types as a lookup table."""
    return {typ: True for typ in workspace_types_ordered()}


def workspace_supports_sizes(typ: str) -> bool:
    """Whether a workspace of the type has a size (container workspaces only)."""
    return typ in (WORKSPACE_TYPE_PYTHON, WORKSPACE_TYPE_R)


def parse_workspaces_time(value: str) -> datetime:
    """Parse a Workspaces API time; the result is a naive local time."""
    if not isinstance(value, str):
        raise ValueError(f"invalid workspaces time {value!r}")
    try:
        return datetime.strptime(value, _STRPTIME_FORMAT)
    except ValueError:
        raise ValueError(f'cannot parse "{value}" as "{TIME_FORMAT}"') from None


def format_workspaces_time(value: datetime) -> str:
    """Format a time the way the Workspaces API expects it."""
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}Z"
    )


def parse_duration_seconds(value: Union[str, int, float]) -> timedelta:
    """Parse a duration given as a number of seconds."""
    text = str(value).strip()
    if not _DURATION_NUMBER.match(text):
        raise ValueError(f'time: invalid duration "{text}s"')
    try:
        seconds = Decimal(text)
    except InvalidOperation:
        raise ValueError(f'time: invalid duration "{text}s"') from None
    micros = int(seconds * 1_000_000)
    return timedelta(microseconds=micros)


def format_duration_seconds(value: Union[timedelta, int, float]) -> str:
    """Format a duration as a whole number of seconds, truncated toward zero."""
    seconds = value.total_seconds() if isinstance(value, timedelta) else value
    return str(int(seconds))


def _attr(obj: Any, name: str) -> Any:
    value = getattr(obj, name, None)
    return value() if callable(value) else value


class WorkspacesError(Exception):
    """An error reported by the Workspaces API."""

    def __init__(
        self,
        message: str = "",
        error_info: str = "",
        request: Any = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_info = error_info
        self.request = request
        self.response = response

    def __str__(self) -> str:
        msg = self.message
        if self.request is not None:
            msg += f', method: "{_attr(self.request, "method")}", url: "{_attr(self.request, "url")}"'
        if self.response is not None:
            msg += f', httpCode: "{self.status_code()}"'
        return msg

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> "WorkspacesError":
        """Decode the error body of a response."""
        if isinstance(data, (str, bytes, bytearray)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise ValueError("workspaces error must be a JSON object")
        return cls(message=data.get("message") or "", error_info=data.get("error") or "")

    def error_name(self) -> str:
        """Human-readable name of the error."""
        return self.error_info

    def error_user_message(self) -> str:
        """Message for the end user."""
        return self.message

    def status_code(self) -> int:
        """HTTP status code, or 0 when there is no response."""
        if self.response is None:
            return 0
        return int(_attr(self.response, "status_code") or 0)

    def set_request(self, request: Any) -> None:
        """Attach the HTTP request that failed."""
        self.request = request

    def set_response(self, response: Any) -> None:
        """Attach the HTTP response of the failure."""
        self.response = response


@dataclass
class WorkspaceDetails:
    """Connection details of a Snowflake workspace."""

    database: str = ""
    schema: str = ""
    warehouse: str = ""


def _optional_time(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return parse_workspaces_time(value)


@dataclass
class Workspace:
    """A workspace instance."""

    id: str = ""
    type: str = ""
    size: str = ""
    active: bool = False
    shared: bool = False
    user: str = ""
    host: str = ""
    url: str = ""
    password: str = ""
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    start: Optional[datetime] = None
    details: Optional[WorkspaceDetails] = None

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> "Workspace":
        """Decode a workspace from a JSON document or an already parsed mapping."""
        if isinstance(data, (str, bytes, bytearray)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise ValueError("workspace must be a JSON object")
        details = data.get("workspaceDetails")
        parsed_details = None
        if details is not None:
            connection = details.get("connection") or {}
            parsed_details = WorkspaceDetails(
                database=connection.get("database") or "",
                schema=connection.get("schema") or "",
                warehouse=connection.get("warehouse") or "",
            )
        return cls(
            id=str(data.get("id") or ""),
            type=data.get("type") or "",
            size=data.get("size") or "",
            active=bool(data.get("active", False)),
            shared=bool(data.get("shared", False)),
            user=data.get("user") or "",
            host=data.get("host") or "",
            url=data.get("url") or "",
            password=data.get("password") or "",
            created=_optional_time(data.get("createdTimestamp")),
            updated=_optional_time(data.get("updatedTimestamp")),
            start=_optional_time(data.get("startTimestamp")),
            details=parsed_details,
        )


def _config_name(config: Any) -> str:
    if isinstance(config, Mapping):
        return str(config.get("name") or "")
    return str(getattr(config, "name", "") or "")


def _config_content(config: Any) -> Any:
    if isinstance(config, Mapping):
        return config.get("configuration")
    return getattr(config, "content", None)


@dataclass
class WorkspaceWithConfig:
    """A workspace instance together with its configuration."""

    workspace: Workspace
    config: Any

    def __str__(self) -> str:
        ws = self.workspace
        name = _config_name(self.config)
        if workspace_supports_sizes(ws.type):
            return f"ID: {ws.id}, Type: {ws.type}, Size: {ws.size}, Name: {name}"
        return f"ID: {ws.id}, Type: {ws.type}, Name: {name}"


@dataclass
class WorkspaceParams:
    """Parameters of a workspace creation job."""

    type: str
    shared: bool = False
    expire_after_hours: int = 0
    size: str = ""
    image_version: str = ""

    def to_map(self) -> dict[str, Any]:
        """Job parameters; empty size and image version are left out."""
        out: dict[str, Any] = {
            "task": "create",
            "type": self.type,
            "shared": self.shared,
            "expirationAfterHours": self.expire_after_hours,
        }
        if self.size:
            out["size"] = self.size
        if self.image_version:
            out["imageVersion"] = self.image_version
        return out


CreateWorkspaceOption = Callable[[WorkspaceParams], None]


def with_shared(v: bool) -> CreateWorkspaceOption:
    """Share the workspace with the project."""

    def apply(params: WorkspaceParams) -> None:
        params.shared = bool(v)

    return apply


def with_expire_after_hours(v: int) -> CreateWorkspaceOption:
    """Delete the workspace after the given number of hours."""
    if v < 0:
        raise ValueError("expiration hours must not be negative")

    def apply(params: WorkspaceParams) -> None:
        params.expire_after_hours = int(v)

    return apply


def with_size(v: str) -> CreateWorkspaceOption:
    """Size of a container workspace."""

    def apply(params: WorkspaceParams) -> None:
        params.size = v

    return apply


def with_image_version(v: str) -> CreateWorkspaceOption:
    """Image version of a container workspace."""

    def apply(params: WorkspaceParams) -> None:
        params.image_version = v

    return apply


def workspace_params(workspace_type: str, *options: CreateWorkspaceOption) -> WorkspaceParams:
    """Build workspace creation parameters from options."""
    params = WorkspaceParams(type=workspace_type)
    for option in options:
        option(params)
    return params


def create_workspace_job_data(workspace_type: str, *options: CreateWorkspaceOption) -> dict[str, Any]:
    """Configuration data of a job creating a workspace."""
    return {"parameters": workspace_params(workspace_type, *options).to_map()}


def delete_workspace_job_data(workspace_id: str) -> dict[str, Any]:
    """Configuration data of a job deleting a workspace."""
    return {"parameters": {"task": "delete", "id": str(workspace_id)}}


def get_workspace_id(content: Any) -> str:
    """Read the workspace ID stored in a workspace configuration content."""
    if content is None:
        raise ValueError("config is missing parameters.id")
    current: Any = content
    path = ("parameters", "id")
    for depth, key in enumerate(path):
        if not isinstance(current, Mapping):
            prefix = ".".join(path[:depth])
            raise ValueError(f'key "{prefix}" is not an object')
        if key not in current:
            raise ValueError("config is missing parameters.id")
        current = current[key]
    if not isinstance(current, str):
        raise ValueError("config.parameters.id is not a string")
    return current


def combine_workspaces(configs: Iterable[Any], instances: Iterable[Workspace]) -> list[WorkspaceWithConfig]:
    """Pair configurations with their instances, in configuration order.

    Configurations without a valid workspace ID or without an existing
    instance are skipped.
    """
    by_id = {str(instance.id): instance for instance in instances}
    out: list[WorkspaceWithConfig] = []
    for config in configs:
        try:
            workspace_id = get_workspace_id(_config_content(config))
        except ValueError:
            continue
        instance = by_id.get(workspace_id)
        if instance is None:
            continue
        out.append(WorkspaceWithConfig(workspace=instance, config=config))
    return out