# kbcstorage

Building blocks for talking to a Storage API: a cancellable `Context`,
immutable HTTP request definitions, API requests with callbacks, concurrent
request groups, and the payload helpers used for tables, tokens and
workspaces.

The package uses only the standard library.

## Installation

```
pip install kbcstorage
```

To run the test suite:

```
pip install "kbcstorage[test]"
pytest
```

## Modules

- `kbcstorage.request.context` – `Context`, a cancellable scope with an
  optional deadline: `cancel()`, `err()`, `with_timeout(seconds)`, `child()`,
  and use as a context manager (leaving the block cancels it). An ended
  context reports `CancelledError` or `DeadlineExceededError`.
- `kbcstorage.request.httprequest` – `HTTPRequest`, an immutable request
  definition; every `with_*` / `and_*` method returns a new request. It is
  sent by a `Sender` and yields an `HTTPResponse` wrapping a `RawResponse`.
  `ReqDefinitionError` is an error that is raised only when sent. `NoResult`
  marks requests whose response is not mapped.
- `kbcstorage.request.apirequest` – `APIRequest`, which sends one or more
  sendables in parallel and returns a result, with `with_before`,
  `with_on_success`, `with_on_error` and `with_on_complete` callbacks;
  `new_api_request`, `new_no_operation_api_request` and `parallel`.
- `kbcstorage.request.groups` – `RunGroup` (schedule with `add`, then
  `run_and_wait`; stops at the first error and raises it) and `WaitGroup`
  (`send` starts at once; `wait` raises the only error or a `MultiError`).
- `kbcstorage.request.structmap` – `struct_to_map` and `wire_field` for
  turning dataclasses into request bodies, `to_form_body` for form fields.
- `kbcstorage.keboola.preview` – table preview options, query parameters and
  `parse_preview_csv`.
- `kbcstorage.keboola.loadoptions` – options for creating a table from a file
  (`create_table_config`) and loading data (`load_data_config`).
- `kbcstorage.keboola.unload` – `TableUnloadConfig` and `UnloadFormat` for
  table exports.
- `kbcstorage.keboola.tables` – `TableDefinition`, `Column`, `Columns`,
  partitioning and clustering, `columns_to_csv_header` and metadata bodies.
- `kbcstorage.keboola.tokens` – `Token` with JSON encoding and decoding,
  token creation options.
- `kbcstorage.keboola.workspaces` – `Workspace`, `WorkspacesError`, creation
  and deletion job data, time and duration encoding, and `combine_workspaces`
  to pair configurations with instances.

## Sending a request

A sender is any object with `send(ctx, request)` returning the raw response
and the mapped result:

```python
from kbcstorage.request.apirequest import new_api_request
from kbcstorage.request.context import Context
from kbcstorage.request.httprequest import HTTPRequest, RawResponse


class OkSender:
    def send(self, ctx, request):
        return RawResponse(status_code=200, body=b"OK"), request.result_def()


base = HTTPRequest(OkSender()).with_base_url("https://storage.example.com/v2/storage")
req = base.with_get("tickets").and_header("X-StorageApi-Token", "token")
print(req.url())  # https://storage.example.com/v2/storage/tickets

with Context() as ctx:
    response, _ = req.send(ctx)
    print(response.status_code(), response.is_success())  # 200 True

    result = {}
    api = new_api_request(result, req.with_result(result)).with_on_success(
        lambda ctx, r: r.setdefault("done", True)
    )
    print(api.send(ctx))  # {'done': True}
```

Errors are raised. A listener added with `with_on_error` may return `None`
to recover from the error.

## Form bodies

```python
from kbcstorage.request.structmap import to_form_body

to_form_body({"slice": ["a", "b"], "map": {"k0": "v0"}, "number": 100})
# {'slice[0]': 'a', 'slice[1]': 'b', 'map[k0]': 'v0', 'number': '100'}
```

## Table preview parameters

```python
from kbcstorage.keboola.preview import (
    parse_column_order,
    parse_compare_op,
    parse_data_type,
    preview_config,
    with_export_columns,
    with_limit_rows,
    with_order_by,
    with_where,
)

integer = parse_data_type("INTEGER")
config = preview_config(
    with_limit_rows(200),
    with_export_columns("a", "b"),
    with_where("b", parse_compare_op(">"), [100], integer),
    with_order_by("b", parse_column_order("desc"), integer),
)
params = config.to_query_params()
# {'whereFilters[0][column]': 'b', 'whereFilters[0][operator]': 'gt', ...,
#  'limit': '200', 'columns': 'a,b'}
```

Unknown operators, orders or data types raise `ValueError`.

## Token options

```python
from kbcstorage.keboola.tokens import (
    create_token_options,
    with_can_manage_buckets,
    with_component_access,
    with_description,
)

body = create_token_options(
    with_description("ci token"),
    with_can_manage_buckets(True),
    with_component_access("keboola.ex-aws-s3"),
).to_body()
```

## Workspaces

```python
from kbcstorage.keboola.workspaces import (
    create_workspace_job_data,
    with_expire_after_hours,
    with_size,
    workspace_sizes_ordered,
    workspace_supports_sizes,
)

workspace_sizes_ordered()           # ['small', 'medium', 'large']
workspace_supports_sizes("python")  # True
data = create_workspace_job_data("python", with_size("medium"), with_expire_after_hours(1))
```

## What the package does not do

There is no HTTP client inside: no `Sender` performs network calls, so you
supply one. There are no ready-made Storage API calls (listing tables,
creating tokens, running workspace jobs, waiting for jobs) and no file
upload or download; the `kbcstorage.keboola` modules build and decode the
payloads of such calls only. There is no command-line tool.