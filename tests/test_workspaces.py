from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import pytest

from kbcstorage.keboola.workspaces import (
    Workspace,
    WorkspaceParams,
    WorkspacesError,
    WorkspaceWithConfig,
    combine_workspaces,
    create_workspace_job_data,
    delete_workspace_job_data,
    format_duration_seconds,
    format_workspaces_time,
    get_workspace_id,
    parse_duration_seconds,
    parse_workspaces_time,
    with_expire_after_hours,
    with_image_version,
    with_shared,
    with_size,
    workspace_params,
    workspace_sizes_map,
    workspace_sizes_ordered,
    workspace_supports_sizes,
    workspace_types_map,
    workspace_types_ordered,
)


@dataclass
class _Config:
    id: str
    name: str
    content: Any = field(default_factory=dict)


@dataclass
class _Request:
    method: str
    url: str


@dataclass
class _Response:
    status_code: int


def _config(config_id, name, workspace_id):
    return _Config(config_id, name, {"parameters": {"id": workspace_id}})


def test_create_python_job_data():
    data = create_workspace_job_data(
        "python", with_expire_after_hours(1), with_size("medium")
    )
    assert data == {
        "parameters": {
            "task": "create",
            "type": "python",
            "shared": False,
            "expirationAfterHours": 1,
            "size": "medium",
        }
    }


def test_create_snowflake_job_data():
    data = create_workspace_job_data("snowflake", with_expire_after_hours(1))
    assert data == {
        "parameters": {
            "task": "create",
            "type": "snowflake",
            "shared": False,
            "expirationAfterHours": 1,
        }
    }


def test_workspace_params_all_options():
    params = workspace_params(
        "r", with_shared(True), with_size("large"), with_image_version("1.2.3")
    )
    assert params == WorkspaceParams(
        type="r", shared=True, expire_after_hours=0, size="large", image_version="1.2.3"
    )
    assert params.to_map()["imageVersion"] == "1.2.3"
    assert params.to_map()["shared"] is True


def test_negative_expiration_rejected():
    with pytest.raises(ValueError):
        with_expire_after_hours(-1)


def test_delete_job_data():
    assert delete_workspace_job_data("123") == {"parameters": {"task": "delete", "id": "123"}}


def test_sizes_and_types():
    assert workspace_sizes_ordered() == ["small", "medium", "large"]
    assert workspace_sizes_map() == {"small": True, "medium": True, "large": True}
    assert workspace_types_ordered() == ["snowflake", "python", "r"]
    assert workspace_types_map() == {"snowflake": True, "python": True, "r": True}


@pytest.mark.parametrize(
    "typ,expected", [("python", True), ("r", True), ("snowflake", False), ("other", False)]
)
def test_supports_sizes(typ, expected):
    assert workspace_supports_sizes(typ) is expected


def test_time_round_trip():
    value = parse_workspaces_time("2022-03-04T05:06:07Z")
    assert value == datetime(2022, 3, 4, 5, 6, 7)
    assert format_workspaces_time(value) == "2022-03-04T05:06:07Z"


@pytest.mark.parametrize("text", ["2022-03-04", "2022-03-04T05:06:07", "garbage", ""])
def test_time_invalid(text):
    with pytest.raises(ValueError):
        parse_workspaces_time(text)


def test_duration_seconds():
    assert parse_duration_seconds("90") == timedelta(seconds=90)
    assert parse_duration_seconds(1.5) == timedelta(seconds=1.5)
    assert format_duration_seconds(timedelta(seconds=90.9)) == "90"
    assert format_duration_seconds(parse_duration_seconds("3600")) == "3600"


@pytest.mark.parametrize("text", ["", "abc", "1h", "1s"])
def test_duration_invalid(text):
    with pytest.raises(ValueError):
        parse_duration_seconds(text)


def test_error_message_without_context():
    err = WorkspacesError(message="Not found", error_info="notFound")
    assert str(err) == "Not found"
    assert err.error_name() == "notFound"
    assert err.error_user_message() == "Not found"
    assert err.status_code() == 0


def test_error_message_with_request_and_response():
    err = WorkspacesError(message="Not found")
    err.set_request(_Request("GET", "https://sandboxes.example.com/sandboxes/1"))
    err.set_response(_Response(404))
    assert err.status_code() == 404
    assert str(err) == (
        'Not found, method: "GET", url: "https://sandboxes.example.com/sandboxes/1", httpCode: "404"'
    )


def test_error_from_json():
    err = WorkspacesError.from_json('{"message": "Bad", "error": "badRequest"}')
    assert err.error_name() == "badRequest"
    assert err.error_user_message() == "Bad"


def test_workspace_from_json():
    ws = Workspace.from_json(
        {
            "id": "42",
            "type": "snowflake",
            "active": True,
            "user": "user",
            "password": "password",
            "createdTimestamp": "2021-01-02T03:04:05Z",
            "workspaceDetails": {
                "connection": {"database": "DB", "schema": "SCH", "warehouse": "WH"}
            },
        }
    )
    assert ws.id == "42"
    assert ws.active is True
    assert ws.created == datetime(2021, 1, 2, 3, 4, 5)
    assert ws.updated is None
    assert ws.details.database == "DB"
    assert ws.details.warehouse == "WH"


def test_workspace_with_config_str():
    python_ws = WorkspaceWithConfig(
        Workspace(id="1", type="python", size="small"), _Config("c1", "My WS")
    )
    snowflake_ws = WorkspaceWithConfig(
        Workspace(id="2", type="snowflake"), _Config("c2", "Other")
    )
    assert str(python_ws) == "ID: 1, Type: python, Size: small, Name: My WS"
    assert str(snowflake_ws) == "ID: 2, Type: snowflake, Name: Other"


def test_get_workspace_id():
    assert get_workspace_id({"parameters": {"id": "abc"}}) == "abc"


def test_get_workspace_id_errors():
    with pytest.raises(ValueError, match="config is missing parameters.id"):
        get_workspace_id({"parameters": {}})
    with pytest.raises(ValueError, match="config.parameters.id is not a string"):
        get_workspace_id({"parameters": {"id": 5}})
    with pytest.raises(ValueError):
        get_workspace_id({"parameters": "x"})


def test_combine_workspaces():
    configs = [
        _config("c1", "one", "w1"),
        _Config("c2", "invalid", {"parameters": {}}),
        _config("c3", "missing", "w9"),
        _config("c4", "four", "w4"),
    ]
    instances = [Workspace(id="w4", type="r"), Workspace(id="w1", type="python")]
    combined = combine_workspaces(configs, instances)
    assert [(c.config.id, c.workspace.id) for c in combined] == [("c1", "w1"), ("c4", "w4")]


def test_combine_workspaces_accepts_mapping_configs():
    configs = [{"name": "n", "configuration": {"parameters": {"id": "w1"}}}]
    combined = combine_workspaces(configs, [Workspace(id="w1", type="snowflake")])
    assert len(combined) == 1
    assert str(combined[0]) == "ID: w1, Type: snowflake, Name: n"