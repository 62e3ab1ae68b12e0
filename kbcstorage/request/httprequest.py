"""Immutable HTTP request definitions, their responses and senders."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Protocol, Union, runtime_checkable
from urllib.parse import SplitResult, urlencode, urljoin, urlsplit, urlunsplit

from .context import Context

CompleteListener = Callable[[Context, "HTTPResponse", Optional[BaseException]], Optional[BaseException]]

_TOKEN_CHARS = set("!#$%&'*+-.^_`|~")


@dataclass(frozen=True)
class NoResult:
    """Result of a request whose response is not mapped to a value."""


@dataclass
class RawResponse:
    """A received HTTP response as produced by a sender."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    request: Any = None


@runtime_checkable
class Sender(Protocol):
    """Something that performs an HTTP request.

    send returns the raw response and the mapped result; on failure it
    raises, optionally with a raw_response attribute on the exception.
    """

    def send(self, ctx: Context, request: "HTTPRequest") -> tuple[Optional[RawResponse], Any]:
        """Perform the request."""


@runtime_checkable
class Sendable(Protocol):
    """An HTTP or API request that can be sent."""

    def send_or_err(self, ctx: Context) -> None:
        """Send the request, raising on failure."""


class ReqDefinitionError(Exception):
    """A request definition error, raised only once the request is sent."""

    def __init__(self, error: BaseException) -> None:
        super().__init__(str(error))
        self.error = error
        self.__cause__ = error

    def send_or_err(self, ctx: Context) -> None:
        """Raise the definition error."""
        raise self


def _canonical_header_key(key: str) -> str:
    if not key or any(not (c.isascii() and (c.isalnum() or c in _TOKEN_CHARS)) for c in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class HTTPRequest:
    """An immutable HTTP request; every with_/and_ method returns a new request."""

    def __init__(self, sender: Sender) -> None:
        self._sender = sender
        self._method = ""
        self._base_url: Optional[SplitResult] = None
        self._url: Optional[SplitResult] = None
        self._header: dict[str, str] = {}
        self._query: dict[str, str] = {}
        self._path: dict[str, str] = {}
        self._body: Any = None
        self._result_def: Any = None
        self._error_def: Optional[BaseException] = None
        self._listeners: tuple[CompleteListener, ...] = ()

    def _evolve(self, **changes: Any) -> "HTTPRequest":
        clone = copy.copy(self)
        for name, value in changes.items():
            setattr(clone, "_" + name, value)
        return clone

    # Read-only view

    def method(self) -> str:
        """HTTP method; raises ValueError when unset."""
        if not self._method:
            raise ValueError("request method is not set")
        return self._method

    def url(self) -> str:
        """Full URL, resolved against the base URL when it is relative."""
        if self._url is None:
            raise ValueError("request url is not set")
        target = self._url
        if self._base_url is not None and not target.scheme:
            target = target._replace(path=target.path.lstrip("/"))
            return urljoin(urlunsplit(self._base_url), urlunsplit(target))
        return urlunsplit(target)

    def request_header(self) -> dict[str, str]:
        return dict(self._header)

    def query_params(self) -> dict[str, str]:
        return dict(self._query)

    def path_params(self) -> dict[str, str]:
        return dict(self._path)

    def request_body(self) -> Any:
        return self._body

    def error_def(self) -> Optional[BaseException]:
        return self._error_def

    def result_def(self) -> Any:
        return self._result_def

    # Builders

    def with_head(self, url: str) -> "HTTPRequest":
        return self.with_method("HEAD").with_url(url)

    def with_get(self, url: str) -> "HTTPRequest":
        return self.with_method("GET").with_url(url)

    def with_post(self, url: str) -> "HTTPRequest":
        return self.with_method("POST").with_url(url)

    def with_patch(self, url: str) -> "HTTPRequest":
        return self.with_method("PATCH").with_url(url)

    def with_put(self, url: str) -> "HTTPRequest":
        return self.with_method("PUT").with_url(url)

    def with_delete(self, url: str) -> "HTTPRequest":
        return self.with_method("DELETE").with_url(url)

    def with_method(self, method: str) -> "HTTPRequest":
        return self._evolve(method=method)

    def with_base_url(self, base_url: str) -> "HTTPRequest":
        try:
            parsed = urlsplit(base_url.rstrip("/"))
        except ValueError as exc:
            raise ValueError(f'base url "{base_url}" is not valid: {exc}') from exc
        return self._evolve(base_url=parsed._replace(path=parsed.path.rstrip("/") + "/"))

    def with_url(self, url: str) -> "HTTPRequest":
        try:
            parsed = urlsplit(url)
        except ValueError as exc:
            raise ValueError(f'url "{url}" is not valid: {exc}') from exc
        return self._evolve(url=parsed)

    def with_url_value(self, value: Union[SplitResult, Any]) -> "HTTPRequest":
        """Set the URL from an already parsed value (SplitResult or ParseResult)."""
        return self._evolve(url=urlsplit(value.geturl()))

    def and_header(self, header: str, value: str) -> "HTTPRequest":
        return self._evolve(header={**self._header, _canonical_header_key(header): value})

    def and_query_param(self, key: str, value: str) -> "HTTPRequest":
        return self._evolve(query={**self._query, key: value})

    def with_query_params(self, params: Mapping[str, str]) -> "HTTPRequest":
        return self._evolve(query=dict(params))

    def and_path_param(self, key: str, value: str) -> "HTTPRequest":
        return self._evolve(path={**self._path, key: value})

    def with_path_params(self, params: Mapping[str, str]) -> "HTTPRequest":
        return self._evolve(path=dict(params))

    def with_form_body(self, form: Mapping[str, str]) -> "HTTPRequest":
        body = urlencode(sorted(form.items()))
        return self._evolve(body=body).and_header("Content-Type", "application/x-www-form-urlencoded")

    def with_json_body(self, body: Any) -> "HTTPRequest":
        return self._evolve(body=body).and_header("Content-Type", "application/json")

    def with_body(self, body: Any) -> "HTTPRequest":
        return self._evolve(body=body)

    def with_content_type(self, content_type: str) -> "HTTPRequest":
        return self.and_header("Content-Type", content_type)

    def with_error(self, error: BaseException) -> "HTTPRequest":
        """Register the exception instance an error response is mapped to."""
        if not isinstance(error, BaseException):
            raise TypeError("error must be defined by an exception instance")
        return self._evolve(error_def=error)

    def with_result(self, result: Any) -> "HTTPRequest":
        """Register the mutable target a successful response is mapped to."""
        if result is None or isinstance(result, (str, bytes, int, float, complex, tuple, frozenset)):
            raise TypeError("result must be defined by a mutable target")
        return self._evolve(result_def=result)

    def with_on_complete(self, fn: CompleteListener) -> "HTTPRequest":
        """Add a listener fn(ctx, response, error) returning the resulting error or None."""
        return self._evolve(listeners=self._listeners + (fn,))

    def with_on_success(self, fn: Callable[[Context, "HTTPResponse"], Any]) -> "HTTPRequest":
        """Add a listener run only when there is no error; raising sets the error."""

        def listener(ctx: Context, response: HTTPResponse, error: Optional[BaseException]):
            if error is None:
                fn(ctx, response)
            return error

        return self.with_on_complete(listener)

    def with_on_error(self, fn: CompleteListener) -> "HTTPRequest":
        """Add a listener run only on error; it returns the new error or None to recover."""

        def listener(ctx: Context, response: HTTPResponse, error: Optional[BaseException]):
            if error is not None:
                return fn(ctx, response, error)
            return error

        return self.with_on_complete(listener)

    # Sending

    def send(self, ctx: Context) -> tuple["HTTPResponse", Any]:
        """Send the request and return the response and mapped result; raise on error."""
        ctx_err = ctx.err()
        if ctx_err is not None:
            raise ctx_err

        error: Optional[BaseException] = None
        try:
            raw, result = self._sender.send(ctx, self)
        except Exception as exc:
            raw, result, error = getattr(exc, "raw_response", None), None, exc

        response = HTTPResponse(self, raw, result, error)
        for listener in self._listeners:
            ctx_err = ctx.err()
            if ctx_err is not None:
                raise ctx_err
            try:
                error = listener(ctx, response, error)
            except Exception as exc:
                error = exc
            response._error = error

        if error is not None:
            raise error
        return response, response.result()

    def send_or_err(self, ctx: Context) -> None:
        """Send the request, discarding the result; raise on error."""
        self.send(ctx)


class HTTPResponse:
    """A completed request with its raw response, mapped result and error."""

    def __init__(
        self,
        request: HTTPRequest,
        raw_response: Optional[RawResponse],
        result: Any,
        error: Optional[BaseException],
    ) -> None:
        self.request = request
        self._raw = raw_response
        self._result = result
        self._error = error

    def _require_raw(self) -> RawResponse:
        if self._raw is None:
            raise RuntimeError("no HTTP response was received")
        return self._raw

    def method(self) -> str:
        return self.request.method()

    def url(self) -> str:
        return self.request.url()

    def request_header(self) -> dict[str, str]:
        return self.request.request_header()

    def query_params(self) -> dict[str, str]:
        return self.request.query_params()

    def path_params(self) -> dict[str, str]:
        return self.request.path_params()

    def request_body(self) -> Any:
        return self.request.request_body()

    def error_def(self) -> Optional[BaseException]:
        return self.request.error_def()

    def result_def(self) -> Any:
        return self.request.result_def()

    def response_header(self) -> dict[str, str]:
        return dict(self._require_raw().headers)

    def status_code(self) -> int:
        return self._require_raw().status_code

    def raw_request(self) -> Any:
        if self._raw is not None and self._raw.request is not None:
            return self._raw.request
        return None

    def raw_response(self) -> Optional[RawResponse]:
        return self._raw

    def is_success(self) -> bool:
        """True for status codes 200 to 299."""
        return 199 < self.status_code() < 300

    def is_error(self) -> bool:
        """True for status codes 400 and above."""
        return self.status_code() > 399

    def result(self) -> Any:
        return self._result

    def error(self) -> Optional[BaseException]:
        return self._error