"""API requests: one or more HTTP requests whose responses map to a result."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Optional, TypeVar

from .context import Context
from .groups import WaitGroup
from .httprequest import Sendable

R = TypeVar("R")

BeforeListener = Callable[[Context], Any]
AfterListener = Callable[[Context, Any, Optional[BaseException]], Optional[BaseException]]


@dataclass(frozen=True)
class APIRequest(Generic[R]):
    """An immutable API request; every with_ method returns a new request."""

    result: R
    requests: tuple = ()
    before: tuple = field(default=())
    after: tuple = field(default=())

    def with_before(self, fn: BeforeListener) -> "APIRequest[R]":
        """Run fn(ctx) before sending; if it raises, nothing is sent."""
        return replace(self, before=self.before + (fn,))

    def with_on_complete(self, fn: AfterListener) -> "APIRequest[R]":
        """Run fn(ctx, result, error) after sending; it returns the resulting error or None."""
        return replace(self, after=self.after + (fn,))

    def with_on_success(self, fn: Callable[[Context, R], Any]) -> "APIRequest[R]":
        """Run fn(ctx, result) when there is no error; raising sets the error."""

        def listener(ctx: Context, result: R, error: Optional[BaseException]):
            if error is None:
                fn(ctx, result)
            return error

        return self.with_on_complete(listener)

    def with_on_error(
        self, fn: Callable[[Context, BaseException], Optional[BaseException]]
    ) -> "APIRequest[R]":
        """Run fn(ctx, error) on error; it returns the new error or None to recover."""

        def listener(ctx: Context, result: R, error: Optional[BaseException]):
            if error is not None:
                return fn(ctx, error)
            return error

        return self.with_on_complete(listener)

    def send(self, ctx: Context) -> R:
        """Send all requests in parallel, run the listeners and return the result."""
        err = ctx.err()
        if err is not None:
            raise err

        for fn in self.before:
            fn(ctx)

        err = ctx.err()
        if err is not None:
            raise err

        group = WaitGroup(ctx)
        for request in self.requests:
            group.send(request)

        error: Optional[BaseException] = None
        try:
            group.wait()
        except Exception as exc:
            error = exc

        for fn in self.after:
            err = ctx.err()
            if err is not None:
                raise err
            try:
                error = fn(ctx, self.result, error)
            except Exception as exc:
                error = exc

        if error is not None:
            raise error
        return self.result

    def send_or_err(self, ctx: Context) -> None:
        """Send the request, discarding the result; raise on error."""
        self.send(ctx)


@dataclass(frozen=True)
class ParallelAPIRequests:
    """Several requests sent in parallel as one sendable."""

    requests: tuple = ()

    def send_or_err(self, ctx: Context) -> None:
        """Send all requests and wait; raise the collected errors, if any."""
        group = WaitGroup(ctx)
        for request in self.requests:
            group.send(request)
        group.wait()


def new_api_request(result: R, *requests: Sendable) -> APIRequest[R]:
    """Create an API request from one or more HTTP or API requests."""
    if not requests:
        raise ValueError("at least one request must be provided")
    return APIRequest(result=result, requests=tuple(requests))


def new_no_operation_api_request(result: R) -> APIRequest[R]:
    """Create an API request that returns the result without sending anything."""
    return APIRequest(result=result)


def parallel(*requests: Sendable) -> ParallelAPIRequests:
    """Wrap requests to be sent in parallel as one sendable."""
    return ParallelAPIRequests(requests=tuple(requests))