"""Concurrent sending of requests: fail-fast run groups and collecting wait groups."""

from __future__ import annotations

import threading
from typing import Optional, Sequence

from .context import Context
from .httprequest import Sendable

RUN_GROUP_CONCURRENCY_LIMIT = 32
WAIT_GROUP_CONCURRENCY_LIMIT = 8

_POLL_INTERVAL = 0.01


class MultiError(Exception):
    """Several errors that occurred while sending requests concurrently."""

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(self._format())

    def _format(self) -> str:
        if len(self.errors) == 1:
            return f"1 error occurred:\n\t* {self.errors[0]}\n\n"
        points = "\n\t".join(f"* {err}" for err in self.errors)
        return f"{len(self.errors)} errors occurred:\n\t{points}\n\n"

    def __str__(self) -> str:
        return self._format()


def _acquire(semaphore: threading.BoundedSemaphore, ctx: Context) -> None:
    """Acquire one slot, giving up with the context error once it ends."""
    while True:
        err = ctx.err()
        if err is not None:
            raise err
        if semaphore.acquire(timeout=_POLL_INTERVAL):
            return


class _TaskCounter:
    """Counts running tasks so that a waiter can block until all are done."""

    def __init__(self) -> None:
        self.cond = threading.Condition()
        self.pending = 0

    def done(self) -> None:
        with self.cond:
            self.pending -= 1
            self.cond.notify_all()

    def wait_idle(self) -> None:
        with self.cond:
            self.cond.wait_for(lambda: self.pending == 0)


class RunGroup:
    """Schedules requests with add and sends them concurrently on run_and_wait.

    Sending stops at the first error, which run_and_wait raises. Requests may
    be added from callbacks while run_and_wait is still in progress.
    """

    def __init__(self, ctx: Context, sender=None, limit: int = RUN_GROUP_CONCURRENCY_LIMIT) -> None:
        self.sender = sender
        self._ctx = ctx.child()
        self._semaphore = threading.BoundedSemaphore(limit)
        self._tasks = _TaskCounter()
        self._started = False
        self._queued: list[Sendable] = []
        self._first_error: Optional[BaseException] = None

    def add(self, request: Sendable) -> None:
        """Add a request; it is sent once run_and_wait has been called."""
        with self._tasks.cond:
            self._tasks.pending += 1
            if not self._started:
                self._queued.append(request)
                return
        self._spawn(request)

    def run_and_wait(self) -> None:
        """Start sending and wait for all requests; raise the first error."""
        with self._tasks.cond:
            if self._started:
                raise RuntimeError("run group has already been started")
            self._started = True
            queued, self._queued = self._queued, []
        for request in queued:
            self._spawn(request)

        self._tasks.wait_idle()
        with self._tasks.cond:
            error = self._first_error
        self._ctx.cancel()
        if error is not None:
            raise error

    def _spawn(self, request: Sendable) -> None:
        threading.Thread(target=self._run, args=(request,), daemon=True).start()

    def _run(self, request: Sendable) -> None:
        try:
            try:
                _acquire(self._semaphore, self._ctx)
            except Exception as exc:
                self._fail(exc)
                return
            try:
                request.send_or_err(self._ctx)
            except Exception as exc:
                self._fail(exc)
            finally:
                self._semaphore.release()
        finally:
            self._tasks.done()

    def _fail(self, error: BaseException) -> None:
        with self._tasks.cond:
            first = self._first_error is None
            if first:
                self._first_error = error
        if first:
            self._ctx.cancel()


class WaitGroup:
    """Sends requests immediately and concurrently; wait collects all errors.

    An error does not stop other requests. wait raises the only error, or a
    MultiError when there were several.
    """

    def __init__(self, ctx: Context, limit: int = WAIT_GROUP_CONCURRENCY_LIMIT) -> None:
        self._ctx = ctx
        self._semaphore = threading.BoundedSemaphore(limit)
        self._tasks = _TaskCounter()
        self._errors: list[BaseException] = []

    def send(self, request: Sendable) -> None:
        """Start sending the request in the background."""
        with self._tasks.cond:
            self._tasks.pending += 1
        threading.Thread(target=self._run, args=(request,), daemon=True).start()

    def wait(self) -> None:
        """Wait for all requests to complete; raise if any of them failed."""
        self._tasks.wait_idle()
        with self._tasks.cond:
            errors = list(self._errors)
        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise MultiError(errors)

    def _run(self, request: Sendable) -> None:
        try:
            try:
                _acquire(self._semaphore, self._ctx)
            except Exception:
                return
            try:
                request.send_or_err(self._ctx)
            except Exception as exc:
                with self._tasks.cond:
                    self._errors.append(exc)
            finally:
                self._semaphore.release()
        finally:
            self._tasks.done()