"""Storage API tokens: their JSON form and the options of creating one."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union

from ..request.structmap import struct_to_map, wire_field


class BucketPermission(str, Enum):
    """Access a token has to a bucket."""

    READ = "read"
    WRITE = "write"

    def __str__(self) -> str:
        return self.value


_ISO8601 = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2}):(\d{2})(\.\d+)?"
    r"(Z|z|[+-]\d{2}(?::?\d{2})?)?$"
)
_ZERO_TIME = "0001-01-01T00:00:00Z"


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"invalid time value {value!r}")
    match = _ISO8601.match(value)
    if match is None:
        raise ValueError(f'invalid time "{value}"')
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction[1:] + "000000")[:6]) if fraction else 0
    if zone is None or zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        digits = zone[1:].replace(":", "")
        offset = timedelta(hours=int(digits[:2]), minutes=int(digits[2:4] or 0))
        tz = timezone(sign * offset)
    parsed = datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
    )
    if parsed == datetime(1, 1, 1, tzinfo=timezone.utc):
        return None
    return parsed


def _format_time(value: Optional[datetime]) -> str:
    if value is None:
        return _ZERO_TIME
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.isoformat()
    return text[:-6] + "Z" if text.endswith("+00:00") else text


def _load(data: Union[Mapping[str, Any], str, bytes, bytearray]) -> Mapping[str, Any]:
    if isinstance(data, (str, bytes, bytearray)):
        data = json.loads(data)
    if not isinstance(data, Mapping):
        raise ValueError("expected a JSON object")
    return data


def _permission(value: Any) -> Union[BucketPermission, str]:
    try:
        return BucketPermission(value)
    except ValueError:
        return str(value)


def _check_bucket_id(value: str) -> str:
    stage, sep, name = value.partition(".")
    if not value or not sep or not stage or not name or "." in name:
        raise ValueError(f'invalid bucket ID "{value}"')
    return value


def decode_bucket_permissions(data: Any) -> dict[str, Union[BucketPermission, str]]:
    """Decode bucket permissions; the API sends an empty value as an empty array."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise ValueError(f"cannot decode bucket permissions: {exc}") from exc
    if data is None or data == []:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError("cannot decode bucket permissions: expected a JSON object")
    out: dict[str, Union[BucketPermission, str]] = {}
    for bucket_id, perm in data.items():
        try:
            _check_bucket_id(str(bucket_id))
        except ValueError as exc:
            raise ValueError(f"cannot decode bucket permissions: {exc}") from exc
        out[str(bucket_id)] = _permission(perm)
    return out


@dataclass
class TokenOwner:
    """The project a token belongs to."""

    id: int = 0
    name: str = ""
    features: list[str] = field(default_factory=list)
    has_mysql: bool = False
    has_synapse: bool = False
    has_redshift: bool = False
    has_snowflake: bool = False
    has_exasol: bool = False
    has_teradata: bool = False
    has_bigquery: bool = False
    default_backend: str = ""
    file_storage_provider: str = ""

    _KEYS = (
        ("has_mysql", "hasMysql"),
        ("has_synapse", "hasSynapse"),
        ("has_redshift", "hasRedshift"),
        ("has_snowflake", "hasSnowflake"),
        ("has_exasol", "hasExasol"),
        ("has_teradata", "hasTeradata"),
        ("has_bigquery", "hasBigquery"),
    )

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "name": self.name, "features": list(self.features)}
        for attr, key in self._KEYS:
            out[key] = getattr(self, attr)
        out["defaultBackend"] = self.default_backend
        out["fileStorageProvider"] = self.file_storage_provider
        return out

    @classmethod
    def _from_json(cls, data: Optional[Mapping[str, Any]]) -> "TokenOwner":
        data = data or {}
        owner = cls(
            id=int(data.get("id") or 0),
            name=data.get("name") or "",
            features=list(data.get("features") or []),
            default_backend=data.get("defaultBackend") or "",
            file_storage_provider=data.get("fileStorageProvider") or "",
        )
        for attr, key in cls._KEYS:
            setattr(owner, attr, bool(data.get(key, False)))
        return owner


@dataclass
class TokenAdmin:
    """Admin part of a master token."""

    name: str = ""
    id: int = 0
    is_organization_member: bool = False
    role: str = ""
    features: list[str] = field(default_factory=list)

    def _to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "id": self.id,
            "isOrganizationMember": self.is_organization_member,
            "role": self.role,
            "features": list(self.features),
        }

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "TokenAdmin":
        return cls(
            name=data.get("name") or "",
            id=int(data.get("id") or 0),
            is_organization_member=bool(data.get("isOrganizationMember", False)),
            role=data.get("role") or "",
            features=list(data.get("features") or []),
        )


@dataclass
class CreatorToken:
    """The token that created another token."""

    id: int = 0
    description: str = ""

    def _to_json(self) -> dict[str, Any]:
        return {"id": self.id, "description": self.description}

    @classmethod
    def _from_json(cls, data: Mapping[str, Any]) -> "CreatorToken":
        return cls(id=int(data.get("id") or 0), description=data.get("description") or "")


@dataclass
class Token:
    """A Storage API token and its permissions."""

    token: str = ""
    id: str = ""
    description: str = ""
    is_master: bool = False
    can_manage_buckets: bool = False
    can_manage_tokens: bool = False
    can_read_all_file_uploads: bool = False
    can_purge_trash: bool = False
    created: Optional[datetime] = None
    refreshed: Optional[datetime] = None
    expires: Optional[datetime] = None
    is_expired: bool = False
    is_disabled: bool = False
    owner: TokenOwner = field(default_factory=TokenOwner)
    admin: Optional[TokenAdmin] = None
    creator: Optional[CreatorToken] = None
    bucket_permissions: dict[str, Union[BucketPermission, str]] = field(default_factory=dict)
    component_access: list[str] = field(default_factory=list)

    def project_id(self) -> int:
        """ID of the project the token belongs to."""
        return self.owner.id

    def project_name(self) -> str:
        """Name of the project the token belongs to."""
        return self.owner.name

    def to_json(self) -> dict[str, Any]:
        """JSON representation; empty optional parts are left out."""
        out: dict[str, Any] = {
            "token": self.token,
            "id": self.id,
            "description": self.description,
            "isMasterToken": self.is_master,
            "canManageBuckets": self.can_manage_buckets,
            "canManageTokens": self.can_manage_tokens,
            "canReadAllFileUploads": self.can_read_all_file_uploads,
            "canPurgeTrash": self.can_purge_trash,
            "created": _format_time(self.created),
            "refreshed": _format_time(self.refreshed),
            "expires": None if self.expires is None else _format_time(self.expires),
            "isExpired": self.is_expired,
            "isDisabled": self.is_disabled,
            "owner": self.owner._to_json(),
        }
        if self.admin is not None:
            out["admin"] = self.admin._to_json()
        if self.creator is not None:
            out["creatorToken"] = self.creator._to_json()
        if self.bucket_permissions:
            out["bucketPermissions"] = {
                str(k): (v.value if isinstance(v, Enum) else str(v))
                for k, v in self.bucket_permissions.items()
            }
        if self.component_access:
            out["componentAccess"] = list(self.component_access)
        return out

    @classmethod
    def from_json(cls, data: Union[Mapping[str, Any], str, bytes]) -> "Token":
        """Decode a token from a JSON document or an already parsed mapping."""
        data = _load(data)
        admin = data.get("admin")
        creator = data.get("creatorToken")
        return cls(
            token=data.get("token") or "",
            id=str(data.get("id") or ""),
            description=data.get("description") or "",
            is_master=bool(data.get("isMasterToken", False)),
            can_manage_buckets=bool(data.get("canManageBuckets", False)),
            can_manage_tokens=bool(data.get("canManageTokens", False)),
            can_read_all_file_uploads=bool(data.get("canReadAllFileUploads", False)),
            can_purge_trash=bool(data.get("canPurgeTrash", False)),
            created=_parse_time(data.get("created")),
            refreshed=_parse_time(data.get("refreshed")),
            expires=_parse_time(data.get("expires")),
            is_expired=bool(data.get("isExpired", False)),
            is_disabled=bool(data.get("isDisabled", False)),
            owner=TokenOwner._from_json(data.get("owner")),
            admin=None if admin is None else TokenAdmin._from_json(admin),
            creator=None if creator is None else CreatorToken._from_json(creator),
            bucket_permissions=decode_bucket_permissions(data.get("bucketPermissions")),
            component_access=list(data.get("componentAccess") or []),
        )


@dataclass
class CreateTokenOptions:
    """Parameters of a new token."""

    description: str = field(default="", metadata=wire_field(write_as="description"))
    bucket_permissions: dict[str, str] = field(
        default_factory=dict, metadata=wire_field(write_as="bucketPermissions", write_optional=True)
    )
    component_access: list[str] = field(
        default_factory=list, metadata=wire_field(write_as="componentAccess", write_optional=True)
    )
    can_manage_buckets: bool = field(default=False, metadata=wire_field(write_as="canManageBuckets"))
    can_read_all_file_uploads: bool = field(
        default=False, metadata=wire_field(write_as="canReadAllFileUploads")
    )
    can_purge_trash: bool = field(default=False, metadata=wire_field(write_as="canPurgeTrash"))
    expires_in: int = field(default=0, metadata=wire_field(write_as="expiresIn", write_optional=True))

    def to_body(self) -> dict[str, Any]:
        """JSON request body; empty optional values are left out."""
        body = struct_to_map(self)
        if "bucketPermissions" in body:
            body["bucketPermissions"] = dict(body["bucketPermissions"])
        if "componentAccess" in body:
            body["componentAccess"] = list(body["componentAccess"])
        return body


CreateTokenOption = Callable[[CreateTokenOptions], None]


def _perm_value(perm: Union[BucketPermission, str]) -> str:
    return perm.value if isinstance(perm, Enum) else str(perm)


def with_description(description: str) -> CreateTokenOption:
    """Set the token description."""

    def apply(options: CreateTokenOptions) -> None:
        options.description = description

    return apply


def with_bucket_permission(bucket_id: Any, perm: Union[BucketPermission, str]) -> CreateTokenOption:
    """Allow the token to read or write the given bucket."""

    def apply(options: CreateTokenOptions) -> None:
        options.bucket_permissions[str(bucket_id)] = _perm_value(perm)

    return apply


def with_bucket_permissions(
    permissions: Mapping[Any, Union[BucketPermission, str]],
) -> CreateTokenOption:
    """Replace all bucket permissions of the token."""

    def apply(options: CreateTokenOptions) -> None:
        options.bucket_permissions = {str(k): _perm_value(v) for k, v in permissions.items()}

    return apply


def with_component_access(component: str) -> CreateTokenOption:
    """Add a component the token may access."""

    def apply(options: CreateTokenOptions) -> None:
        options.component_access.append(component)

    return apply


def with_can_manage_buckets(value: bool) -> CreateTokenOption:
    """Allow the token to manage buckets."""

    def apply(options: CreateTokenOptions) -> None:
        options.can_manage_buckets = value

    return apply


def with_can_read_all_file_uploads(value: bool) -> CreateTokenOption:
    """Allow access to all file uploads, not only those made with the token."""

    def apply(options: CreateTokenOptions) -> None:
        options.can_read_all_file_uploads = value

    return apply


def with_can_purge_trash(value: bool) -> CreateTokenOption:
    """Allow the token to delete configurations permanently."""

    def apply(options: CreateTokenOptions) -> None:
        options.can_purge_trash = value

    return apply


def with_expires_in(expires_in: Union[timedelta, int, float]) -> CreateTokenOption:
    """Set how long the token lives; a timedelta or a number of seconds."""
    seconds = expires_in.total_seconds() if isinstance(expires_in, timedelta) else expires_in

    def apply(options: CreateTokenOptions) -> None:
        options.expires_in = int(seconds)

    return apply


def create_token_options(*options: CreateTokenOption) -> CreateTokenOptions:
    """Build token creation parameters from options."""
    result = CreateTokenOptions()
    for option in options:
        option(result)
    return result