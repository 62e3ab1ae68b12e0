from dataclasses import dataclass
from urllib.parse import SplitResult

import pytest

from kbcstorage.request.context import CancelledError, Context
from kbcstorage.request.httprequest import (
    HTTPRequest,
    HTTPResponse,
    NoResult,
    RawResponse,
    ReqDefinitionError,
)


class Error1(Exception):
    pass


class Error2(Exception):
    pass


@dataclass
class Result1:
    value: int = 1


@dataclass
class Result2:
    value: int = 2


class SendFailure(Exception):
    def __init__(self, raw_response):
        super().__init__("request failed")
        self.raw_response = raw_response


class FakeSender:
    def __init__(self, status=200, result="OK", error=None):
        self.status = status
        self.result = result
        self.error = error
        self.calls = []

    def send(self, ctx, request):
        self.calls.append(f"{request.method()} {request.url()}")
        if self.error is not None:
            raise self.error
        return RawResponse(status_code=self.status, headers={"X-Test": "1"}), self.result


def test_immutability_methods_and_urls():
    a = HTTPRequest(FakeSender())
    for name, method in [
        ("with_head", "HEAD"),
        ("with_get", "GET"),
        ("with_post", "POST"),
        ("with_patch", "PATCH"),
        ("with_put", "PUT"),
        ("with_delete", "DELETE"),
    ]:
        a = getattr(a, name)("/foo1")
        b = getattr(a, name)("/foo2")
        assert a.method() == method
        assert a.url() == "/foo1"
        assert b.method() == method
        assert b.url() == "/foo2"

    a = a.with_method("GET")
    b = a.with_method("POST")
    assert a.method() == "GET"
    assert b.method() == "POST"

    a = a.with_base_url("/base1")
    b = a.with_base_url("/base2")
    assert a.url() == "/base1/foo1"
    assert b.url() == "/base2/foo1"

    a = a.with_url("/url1")
    b = a.with_url("/url2")
    assert a.url() == "/base1/url1"
    assert b.url() == "/base1/url2"

    a = a.with_url_value(SplitResult("", "", "/url3", "", ""))
    b = a.with_url_value(SplitResult("", "", "/url4", "", ""))
    assert a.url() == "/base1/url3"
    assert b.url() == "/base1/url4"


def test_immutability_headers_and_params():
    a = HTTPRequest(FakeSender())
    a = a.and_header("key1", "value1")
    b = a.and_header("key2", "value2")
    assert a.request_header() == {"Key1": "value1"}
    assert b.request_header() == {"Key1": "value1", "Key2": "value2"}

    a = a.and_query_param("key1", "value1")
    b = a.and_query_param("key2", "value2")
    assert a.query_params() == {"key1": "value1"}
    assert b.query_params() == {"key1": "value1", "key2": "value2"}

    a = a.with_query_params({"foo1": "bar1"})
    b = a.with_query_params({"foo2": "bar2"})
    assert a.query_params() == {"foo1": "bar1"}
    assert b.query_params() == {"foo2": "bar2"}

    a = a.and_path_param("key1", "value1")
    b = a.and_path_param("key2", "value2")
    assert a.path_params() == {"key1": "value1"}
    assert b.path_params() == {"key1": "value1", "key2": "value2"}

    a = a.with_path_params({"foo1": "bar1"})
    b = a.with_path_params({"foo2": "bar2"})
    assert a.path_params() == {"foo1": "bar1"}
    assert b.path_params() == {"foo2": "bar2"}


def test_immutability_bodies_and_defs():
    a = HTTPRequest(FakeSender())
    a = a.with_form_body({"foo1": "bar1"})
    b = a.with_form_body({"foo2": "bar2"})
    assert a.request_body() == "foo1=bar1"
    assert b.request_body() == "foo2=bar2"
    assert a.request_header()["Content-Type"] == "application/x-www-form-urlencoded"

    a = a.with_json_body(123)
    b = a.with_json_body(456)
    assert a.request_body() == 123
    assert b.request_body() == 456
    assert a.request_header()["Content-Type"] == "application/json"

    e1, e2 = Error1(), Error2()
    a = a.with_error(e1)
    b = a.with_error(e2)
    assert a.error_def() is e1
    assert b.error_def() is e2

    a = a.with_result(Result1())
    b = a.with_result(Result2())
    assert a.result_def() == Result1()
    assert b.result_def() == Result2()


def test_immutability_listeners():
    calls = []

    def l1(ctx, response, err):
        calls.append("l1")
        return err

    def l2(ctx, response, err):
        calls.append("l2")
        return err

    a = HTTPRequest(FakeSender()).with_get("/x").with_on_complete(l1)
    b = a.with_on_complete(l2)
    response_a, result_a = a.send(Context())
    assert result_a == "OK"
    assert response_a.status_code() == 200
    assert calls == ["l1"]
    calls.clear()
    response_b, result_b = b.send(Context())
    assert result_b == "OK"
    assert response_b.url() == "/x"
    assert calls == ["l1", "l2"]


def test_unset_method_and_url_raise():
    request = HTTPRequest(FakeSender())
    with pytest.raises(ValueError, match="method is not set"):
        request.method()
    with pytest.raises(ValueError, match="url is not set"):
        request.url()


def test_base_url_with_host():
    request = HTTPRequest(FakeSender()).with_base_url("https://example.com").with_get("foo1")
    assert request.url() == "https://example.com/foo1"
    absolute = request.with_url("https://other.example.com/bar")
    assert absolute.url() == "https://other.example.com/bar"


def test_header_is_replaced_with_canonical_key():
    request = HTTPRequest(FakeSender()).with_content_type("text/csv").and_header("content-type", "text/plain")
    assert request.request_header() == {"Content-Type": "text/plain"}


def test_invalid_definitions_raise():
    request = HTTPRequest(FakeSender())
    with pytest.raises(TypeError):
        request.with_result(None)
    with pytest.raises(TypeError):
        request.with_error("not an exception")


def test_send_returns_response_and_result():
    sender = FakeSender(result={"id": "1"})
    seen = []
    request = (
        HTTPRequest(sender)
        .with_base_url("https://example.com")
        .with_get("foo")
        .with_on_success(lambda ctx, response: seen.append(response.status_code()))
    )
    response, result = request.send(Context())
    assert result == {"id": "1"}
    assert response.result() == {"id": "1"}
    assert response.is_success()
    assert response.response_header() == {"X-Test": "1"}
    assert response.url() == "https://example.com/foo"
    assert response.error() is None
    assert seen == [200]
    assert sender.calls == ["GET https://example.com/foo"]


def test_sender_error_is_raised_and_on_error_can_recover():
    failure = SendFailure(RawResponse(status_code=401))
    sender = FakeSender(error=failure)
    request = HTTPRequest(sender).with_get("/foo")
    with pytest.raises(SendFailure):
        request.send(Context())

    seen = []

    def recover(ctx, response, err):
        seen.append((response.status_code(), response.is_error(), err))
        return None

    response, result = request.with_on_error(recover).send(Context())
    assert result is None
    assert seen == [(401, True, failure)]
    assert response.error() is None


def test_on_success_exception_becomes_error():
    def fail(ctx, response):
        raise Error1("listener failed")

    seen = []
    request = (
        HTTPRequest(FakeSender())
        .with_get("/foo")
        .with_on_success(fail)
        .with_on_complete(lambda ctx, response, err: seen.append(err) or err)
    )
    with pytest.raises(Error1, match="listener failed"):
        request.send_or_err(Context())
    assert len(seen) == 1 and str(seen[0]) == "listener failed"


def test_cancelled_context_prevents_sending():
    sender = FakeSender()
    ctx = Context()
    ctx.cancel()
    with pytest.raises(CancelledError):
        HTTPRequest(sender).with_get("/foo").send(ctx)
    assert sender.calls == []


@pytest.mark.parametrize(
    ("status", "success", "error"),
    [(199, False, False), (200, True, False), (299, True, False), (300, False, False), (399, False, False), (400, False, True)],
)
def test_response_status_classification(status, success, error):
    response = HTTPResponse(HTTPRequest(FakeSender()), RawResponse(status_code=status), None, None)
    assert response.is_success() is success
    assert response.is_error() is error


def test_response_without_raw_response():
    response = HTTPResponse(HTTPRequest(FakeSender()), None, None, None)
    assert response.raw_request() is None
    assert response.raw_response() is None
    with pytest.raises(RuntimeError):
        response.status_code()


def test_raw_request_is_exposed():
    raw = RawResponse(status_code=200, request="GET /foo")
    response = HTTPResponse(HTTPRequest(FakeSender()), raw, None, None)
    assert response.raw_request() == "GET /foo"


def test_req_definition_error_raises_itself():
    cause = ValueError("table and file must be from the same branch")
    definition_error = ReqDefinitionError(cause)
    with pytest.raises(ReqDefinitionError) as info:
        definition_error.send_or_err(Context())
    assert info.value.error is cause
    assert str(info.value) == "table and file must be from the same branch"


def test_no_result_passes_through_send():
    sender = FakeSender(result=NoResult())
    response, result = HTTPRequest(sender).with_delete("/x").send(Context())
    assert result == NoResult()
    assert response.result() == NoResult()
    assert sender.calls == ["DELETE /x"]