"""Cancellation and deadline propagation shared by a tree of requests."""

from __future__ import annotations

import threading
import time
from typing import Optional


class CancelledError(Exception):
    """The context was cancelled explicitly."""

    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(TimeoutError):
    """The context deadline has passed."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class Context:
    """A cancellable scope with an optional deadline.

    Cancelling a context cancels all contexts derived from it; a derived
    context never outlives the deadline of its parent.
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._err: Optional[BaseException] = None
        self._children: set[Context] = set()
        self._parent = parent
        self._timer: Optional[threading.Timer] = None

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline

        if parent is not None:
            parent._adopt(self)

        if deadline is not None and not self._done.is_set():
            delay = deadline - time.monotonic()
            if delay <= 0:
                self._finish(DeadlineExceededError())
            else:
                timer = threading.Timer(delay, self._expire)
                timer.daemon = True
                with self._lock:
                    if self._err is None:
                        self._timer = timer
                        timer.start()

    @property
    def deadline(self) -> Optional[float]:
        """Deadline as a time.monotonic() value, or None."""
        return self._deadline

    @property
    def done(self) -> threading.Event:
        """Event set once the context is cancelled or expired."""
        return self._done

    def err(self) -> Optional[BaseException]:
        """Return the reason the context ended, or None while it is active."""
        with self._lock:
            err = self._err
        if err is None and self._deadline is not None and time.monotonic() >= self._deadline:
            self._finish(DeadlineExceededError())
        with self._lock:
            return self._err

    def cancel(self) -> None:
        """Cancel the context and everything derived from it."""
        self._finish(CancelledError())

    def with_timeout(self, seconds: float) -> "Context":
        """Derive a context that expires after the given number of seconds."""
        return Context(self, time.monotonic() + seconds)

    def child(self) -> "Context":
        """Derive a context that can be cancelled on its own."""
        return Context(self)

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()

    def _expire(self) -> None:
        self._finish(DeadlineExceededError())

    def _adopt(self, child: "Context") -> None:
        with self._lock:
            err = self._err
            if err is None:
                self._children.add(child)
        if err is not None:
            child._finish(err)

    def _release(self, child: "Context") -> None:
        with self._lock:
            self._children.discard(child)

    def _finish(self, err: BaseException) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            children = list(self._children)
            self._children.clear()
            timer, self._timer = self._timer, None
            self._done.set()
        if timer is not None:
            timer.cancel()
        for child in children:
            child._finish(err)
        if self._parent is not None:
            self._parent._release(self)